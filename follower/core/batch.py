"""Single-image batch detection.

Writes one ``file label score xmin ymin xmax ymax`` line per detection that
clears the confidence threshold.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TextIO

import cv2

from follower.core.detectors.base import Detector
from follower.core.detectors.records import format_detection_record, parse_detections
from follower.core.errors import SourceUnavailable


def detect_images(
    paths: Iterable[str],
    detector: Detector,
    confidence_threshold: float,
    out: TextIO,
) -> int:
    """Run `detector` on every image in `paths` and write the accepted records.

    Returns the number of lines written.
    """

    written = 0
    for path in paths:
        img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
        if img is None or img.size == 0:
            raise SourceUnavailable(f"Unable to decode image {path}")
        h, w = img.shape[:2]
        for det in parse_detections(detector.detect(img), w, h):
            if det.score >= confidence_threshold:
                out.write(format_detection_record(path, det) + "\n")
                written += 1
    return written
