"""Actuator sinks receiving one command per frame.

Sends are fire-and-forget: a sink reports a `SinkStatus` but the caller never
waits for actuation or retries a failed send.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from follower.core.types import Command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SinkStatus:
    ok: bool
    detail: str = ""


class ActuatorSink(ABC):
    """Destination for actuator commands, scoped to one session."""

    @abstractmethod
    def send(self, command: Command) -> SinkStatus:
        """Deliver `command` without blocking on actuation."""

        raise NotImplementedError

    def close(self) -> None:
        """Release any underlying resources."""


class LoggingSink(ActuatorSink):
    """Log every command; keeps the last one for inspection."""

    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level
        self.last_command: Command | None = None

    def send(self, command: Command) -> SinkStatus:
        self.last_command = command
        logger.log(
            self.level,
            "turn=%.3f speed=%.3f sit=%d stand=%d walk=%d",
            command.turn,
            command.speed,
            command.sit,
            command.stand,
            command.walk,
        )
        return SinkStatus(ok=True)


class MemorySink(ActuatorSink):
    """Keep every command in memory (replays and offline evaluation)."""

    def __init__(self) -> None:
        self.commands: list[Command] = []

    def send(self, command: Command) -> SinkStatus:
        self.commands.append(command)
        return SinkStatus(ok=True)


def make_sink(kind: str, endpoint: str | None = None) -> ActuatorSink:
    """Create a sink by name (`log`, `memory` or `zmq`)."""

    kind_l = str(kind).strip().lower()
    if kind_l == "log":
        return LoggingSink(level=logging.INFO)
    if kind_l == "memory":
        return MemorySink()
    if kind_l == "zmq":
        if not endpoint:
            raise ValueError("zmq sink requires an endpoint, e.g. tcp://127.0.0.1:5556")
        from follower.core.actuators.zmq_sink import ZmqSink

        return ZmqSink(endpoint)
    raise ValueError(f"Unknown sink kind: {kind}")
