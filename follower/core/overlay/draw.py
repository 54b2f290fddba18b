"""Overlay drawing helpers (OpenCV).

Detections are drawn in green and tracker estimates in blue, as in the
recorded videos of the follower.
"""

from __future__ import annotations

import cv2
import numpy as np

from follower.core.types import BoxRole, Decision

DETECTION_COLOR = (0, 255, 0)
TRACKER_COLOR = (255, 0, 0)
TEXT_COLOR = (255, 255, 255)
BOX_THICKNESS = 3

_ROLE_COLORS = {
    BoxRole.DETECTION: DETECTION_COLOR,
    BoxRole.TRACKER: TRACKER_COLOR,
}


def draw_decision(frame: np.ndarray, decision: Decision, *, label: bool = True) -> np.ndarray:
    """Return a copy of `frame` with the decision's boxes and regime label drawn.

    With `label=False` and no visualization boxes, `frame` itself is returned
    uncopied.
    """

    if not decision.visualization_boxes and not label:
        return frame

    img = frame.copy()
    h, w = img.shape[:2]
    for box, role in decision.visualization_boxes:
        x1, y1, x2, y2 = box.clamp_to_frame(w, h).as_int_tuple()
        cv2.rectangle(img, (x1, y1), (x2, y2), _ROLE_COLORS[role], BOX_THICKNESS)

    if label:
        cv2.putText(
            img,
            decision.regime.value,
            (8, 20),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            TEXT_COLOR,
            1,
            cv2.LINE_AA,
        )
    return img
