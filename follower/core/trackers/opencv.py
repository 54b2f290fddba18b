"""OpenCV single-object trackers (CSRT / KCF / MIL)."""

from __future__ import annotations

import logging
from typing import Any

import cv2

from follower.core.errors import TrackerFailure, TrackerUnavailable
from follower.core.geometry import BoundingBox
from follower.core.types import Frame

logger = logging.getLogger(__name__)

_FACTORY_NAMES = {
    "csrt": "TrackerCSRT_create",
    "kcf": "TrackerKCF_create",
    "mil": "TrackerMIL_create",
}


def _create_opencv_tracker(kind: str) -> Any:
    """Create an OpenCV tracker, trying the main namespace then `cv2.legacy`."""

    name = _FACTORY_NAMES.get(kind)
    if name is None:
        raise TrackerUnavailable(f"Unknown OpenCV tracker kind: {kind}")

    for namespace in (cv2, getattr(cv2, "legacy", None)):
        factory = getattr(namespace, name, None) if namespace is not None else None
        if callable(factory):
            return factory()
    raise TrackerUnavailable(
        f"OpenCV build does not provide {name} (CSRT/KCF need opencv-contrib-python)"
    )


class OpenCVTracker:
    """`Tracker` backed by one of OpenCV's appearance-model trackers.

    A fresh OpenCV tracker is created on every `init`, which discards the
    previous appearance model. When OpenCV loses the target, `track` keeps
    returning the last estimate and lets the arbitration decide.
    """

    def __init__(self, kind: str = "mil") -> None:
        self.kind = kind
        # Fail early when the OpenCV build cannot provide this tracker.
        _create_opencv_tracker(kind)
        self._tracker: Any | None = None
        self._last_box: BoundingBox | None = None
        self.lost_frames = 0

    def init(self, frame: Frame, box: BoundingBox) -> None:
        h, w = frame.shape[:2]
        clamped = box.clamp_to_frame(w, h)
        x, y, bw, bh = (int(round(v)) for v in clamped.to_xywh())
        if bw <= 0 or bh <= 0:
            raise TrackerFailure(f"Cannot initialize tracker on empty box {box}")

        tracker = _create_opencv_tracker(self.kind)
        ok = tracker.init(frame, (x, y, bw, bh))
        # OpenCV >= 4.5 returns None from init(); older builds return a bool.
        if ok is False:
            raise TrackerFailure(f"OpenCV {self.kind} tracker refused box {box}")
        self._tracker = tracker
        self._last_box = box
        self.lost_frames = 0

    def track(self, frame: Frame) -> BoundingBox:
        if self._tracker is None or self._last_box is None:
            raise RuntimeError("OpenCVTracker.track() called before init()")

        ok, rect = self._tracker.update(frame)
        if not ok:
            self.lost_frames += 1
            logger.debug("%s tracker lost target (%d frames)", self.kind, self.lost_frames)
            return self._last_box
        self.lost_frames = 0
        self._last_box = BoundingBox.from_xywh(*rect)
        return self._last_box
