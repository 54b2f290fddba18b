"""Shared type definitions used across the follower.

Small, stable value types (detections, decisions, commands) live here so the
detector, arbitration, steering and API code can stay strongly typed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from follower.core.geometry import BoundingBox

Frame = np.ndarray


class Regime(str, Enum):
    """Per-frame classification of how much the target signal can be trusted."""

    INITIALIZING = "initializing"
    TRACKING = "tracking"
    DEGRADED = "degraded"
    IDLE = "idle"


class BoxRole(str, Enum):
    """What a visualization box represents."""

    DETECTION = "detection"
    TRACKER = "tracker"


@dataclass(frozen=True)
class Detection:
    """One detector output in pixel coordinates."""

    label: int
    score: float
    box: BoundingBox


@dataclass(frozen=True)
class Decision:
    """Outcome of arbitrating one frame."""

    regime: Regime
    primary_box: BoundingBox | None
    frame_size: tuple[int, int]  # (width, height)
    visualization_boxes: tuple[tuple[BoundingBox, BoxRole], ...] = ()
    reinitialized: bool = False


@dataclass(frozen=True)
class Command:
    """Actuator command produced once per frame."""

    turn: float = 0.0
    speed: float = 0.0
    sit: bool = False
    stand: bool = True
    walk: bool = False

    @classmethod
    def neutral(cls) -> Command:
        """Stop and stand: the safe command when no target is followed."""

        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn": float(self.turn),
            "speed": float(self.speed),
            "sit": bool(self.sit),
            "stand": bool(self.stand),
            "walk": bool(self.walk),
        }


@dataclass
class FrameResult:
    """Everything produced for one processed frame."""

    frame_id: int
    timestamp: float
    decision: Decision
    command: Command
    detections: list[Detection] = field(default_factory=list)
    fps: float = 0.0
    profile: dict[str, float] | None = None

    @property
    def frame_size(self) -> tuple[int, int]:
        return self.decision.frame_size
