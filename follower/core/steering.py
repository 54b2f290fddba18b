"""Map an arbitration decision to an actuator command.

The mapping is pure: every call returns a fresh `Command` and no value is
carried over from the previous frame.
"""

from __future__ import annotations

from dataclasses import dataclass

from follower.core.geometry import BoundingBox
from follower.core.types import Command, Decision, Regime


@dataclass(frozen=True)
class SteeringConfig:
    """Thresholds and gains for the steering law."""

    # Target covering more than this fraction of the frame is close enough: stop.
    stop_area_threshold: float = 0.6
    tracking_gain: float = 2.0
    # Weaker evidence is compensated with a larger corrective turn.
    degraded_gain: float = 6.0

    def gain_for(self, regime: Regime) -> float:
        if regime is Regime.DEGRADED:
            return self.degraded_gain
        return self.tracking_gain


def turn_from_box(box: BoundingBox, frame_width: int, gain: float) -> float:
    """Horizontal offset of the box center from the frame center, scaled by `gain`.

    Negative when the target is left of center, positive when it is right.
    """

    if frame_width <= 0:
        return 0.0
    offset = (box.x1 + box.x2) / float(frame_width) / 2.0 - 0.5
    return offset * float(gain)


def area_fraction(box: BoundingBox, frame_size: tuple[int, int]) -> float:
    """Fraction of the frame area covered by `box`."""

    w, h = frame_size
    frame_area = float(w) * float(h)
    if frame_area <= 0.0:
        return 0.0
    return box.area / frame_area


def steer(decision: Decision, config: SteeringConfig | None = None) -> Command:
    """Return the command for one decision.

    `idle` and `initializing` both map to the neutral stop-and-stand command.
    A followed target that fills more than `stop_area_threshold` of the frame
    halts the robot without turning.
    """

    cfg = config or SteeringConfig()
    box = decision.primary_box
    if decision.regime not in (Regime.TRACKING, Regime.DEGRADED) or box is None:
        return Command.neutral()

    if area_fraction(box, decision.frame_size) > cfg.stop_area_threshold:
        return Command(stand=True, walk=False)

    turn = turn_from_box(box, decision.frame_size[0], cfg.gain_for(decision.regime))
    return Command(turn=turn, stand=False, walk=True)
