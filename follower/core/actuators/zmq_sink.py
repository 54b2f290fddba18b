"""ZeroMQ actuator sink.

Commands are pushed as JSON to a robot-side controller process. The PUSH
socket never blocks the frame loop: when the peer is not keeping up the
command is dropped and reported as a failed send.
"""

from __future__ import annotations

import json
import logging
import time

import zmq

from follower.core.actuators.base import ActuatorSink, SinkStatus
from follower.core.types import Command

logger = logging.getLogger(__name__)


class ZmqSink(ActuatorSink):
    def __init__(self, endpoint: str, context: zmq.Context | None = None) -> None:
        self.endpoint = endpoint
        self._context = context or zmq.Context.instance()
        self._socket = self._context.socket(zmq.PUSH)
        self._socket.setsockopt(zmq.LINGER, 0)
        self._socket.setsockopt(zmq.SNDHWM, 1)
        self._socket.connect(endpoint)
        self._seq = 0
        logger.info("Actuator sink connected to %s", endpoint)

    def send(self, command: Command) -> SinkStatus:
        self._seq += 1
        payload = {"seq": self._seq, "sent_at": time.time(), **command.to_dict()}
        try:
            self._socket.send_string(json.dumps(payload), flags=zmq.NOBLOCK)
        except zmq.Again:
            return SinkStatus(ok=False, detail="peer not ready, command dropped")
        except zmq.ZMQError as exc:
            return SinkStatus(ok=False, detail=str(exc))
        return SinkStatus(ok=True)

    def close(self) -> None:
        self._socket.close()
