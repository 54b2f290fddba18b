"""Single-object tracker interface and factory."""

from __future__ import annotations

from typing import Protocol

from follower.core.errors import TrackerUnavailable
from follower.core.geometry import BoundingBox
from follower.core.types import Frame

TRACKER_KINDS = ("csrt", "kcf", "mil", "hold")


class Tracker(Protocol):
    """Appearance-model tracker following one target."""

    def init(self, frame: Frame, box: BoundingBox) -> None:
        """(Re)start the appearance model from `box` on `frame`."""

    def track(self, frame: Frame) -> BoundingBox:
        """Return the estimate of the target box on `frame`."""


class HoldTracker:
    """Tracker that holds the last initialization box.

    Useful when no appearance model is available: between re-initializations
    the estimate simply does not move.
    """

    def __init__(self) -> None:
        self.box: BoundingBox | None = None

    def init(self, frame: Frame, box: BoundingBox) -> None:
        self.box = box

    def track(self, frame: Frame) -> BoundingBox:
        if self.box is None:
            raise RuntimeError("HoldTracker.track() called before init()")
        return self.box


def make_tracker(kind: str) -> Tracker:
    """Create a tracker by name (`csrt`, `kcf`, `mil` or `hold`)."""

    kind_l = str(kind).strip().lower()
    if kind_l == "hold":
        return HoldTracker()
    if kind_l not in TRACKER_KINDS:
        raise TrackerUnavailable(f"Unknown tracker kind: {kind}")

    from follower.core.trackers.opencv import OpenCVTracker

    return OpenCVTracker(kind_l)
