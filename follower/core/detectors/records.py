"""Detector wire format.

Detectors report one record per candidate box::

    [image_id, label, score, xmin, ymin, xmax, ymax]

with coordinates normalized to ``[0, 1]``. Records whose ``image_id`` or
``label`` is ``-1`` are padding and carry no detection.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from follower.core.errors import MalformedDetection
from follower.core.geometry import BoundingBox
from follower.core.types import Detection

RECORD_FIELDS = 7
INVALID_MARKER = -1


def _is_padding(record: Sequence[float]) -> bool:
    return int(record[0]) == INVALID_MARKER or int(record[1]) == INVALID_MARKER


def parse_detections(
    records: Iterable[Sequence[float]], width: int, height: int
) -> list[Detection]:
    """Convert raw detector records into pixel-space `Detection` objects.

    Raises:
        MalformedDetection: a record does not have exactly seven fields.
    """

    out: list[Detection] = []
    for index, record in enumerate(records):
        if len(record) != RECORD_FIELDS:
            raise MalformedDetection(
                f"detection record {index} has {len(record)} fields, expected {RECORD_FIELDS}"
            )
        if _is_padding(record):
            continue
        _image_id, label, score, x1, y1, x2, y2 = (float(v) for v in record)
        out.append(
            Detection(
                label=int(label),
                score=score,
                box=BoundingBox.from_normalized(x1, y1, x2, y2, width, height),
            )
        )
    return out


def format_detection_record(path: str, detection: Detection) -> str:
    """Render the batch output line ``file label score xmin ymin xmax ymax``."""

    x1, y1, x2, y2 = detection.box.as_int_tuple()
    return f"{path} {detection.label} {detection.score:g} {x1} {y1} {x2} {y2}"
