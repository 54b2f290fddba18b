"""Axis-aligned bounding boxes in pixel coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass

from follower.core.errors import DegenerateGeometry

Point = tuple[float, float]


@dataclass(frozen=True)
class BoundingBox:
    """Immutable box with edges ``(x1, y1, x2, y2)``.

    Edges are expected to be ordered (``x1 <= x2``, ``y1 <= y2``) by the caller;
    inverted edges are not rejected but yield a zero area. Only non-finite
    coordinates are refused.
    """

    x1: float
    y1: float
    x2: float
    y2: float

    def __post_init__(self) -> None:
        for name in ("x1", "y1", "x2", "y2"):
            value = float(getattr(self, name))
            if not math.isfinite(value):
                raise DegenerateGeometry(f"{name} must be finite, got {value!r}")
            object.__setattr__(self, name, value)

    @classmethod
    def from_normalized(
        cls, x1: float, y1: float, x2: float, y2: float, width: int, height: int
    ) -> BoundingBox:
        """Scale normalized ``[0, 1]`` coordinates to a ``width`` x ``height`` frame."""

        w = float(width)
        h = float(height)
        return cls(float(x1) * w, float(y1) * h, float(x2) * w, float(y2) * h)

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> BoundingBox:
        """Build a box from an OpenCV-style ``(x, y, w, h)`` rect."""

        return cls(float(x), float(y), float(x) + float(w), float(y) + float(h))

    @property
    def width(self) -> float:
        return max(0.0, self.x2 - self.x1)

    @property
    def height(self) -> float:
        return max(0.0, self.y2 - self.y1)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Point:
        return ((self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0)

    @property
    def is_degenerate(self) -> bool:
        """True when the box covers no area (zero width or height)."""

        return self.area <= 0.0

    def iou(self, other: BoundingBox) -> float:
        """Return the intersection-over-union with ``other`` in ``[0, 1]``."""

        inter_w = max(0.0, min(self.x2, other.x2) - max(self.x1, other.x1))
        inter_h = max(0.0, min(self.y2, other.y2) - max(self.y1, other.y1))
        inter = inter_w * inter_h
        if inter <= 0.0:
            return 0.0
        union = self.area + other.area - inter
        if union <= 0.0:
            return 0.0
        return min(1.0, inter / union)

    def clamp_to_frame(self, width: int, height: int) -> BoundingBox:
        """Return a copy with every edge clipped to the frame (drawing only)."""

        w = float(width)
        h = float(height)
        return BoundingBox(
            min(max(self.x1, 0.0), w),
            min(max(self.y1, 0.0), h),
            min(max(self.x2, 0.0), w),
            min(max(self.y2, 0.0), h),
        )

    def to_xywh(self) -> tuple[float, float, float, float]:
        return (self.x1, self.y1, self.width, self.height)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    def as_int_tuple(self) -> tuple[int, int, int, int]:
        """Truncate edges to integers (the format of the batch output records)."""

        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """Compute the intersection-over-union (IoU) of two boxes."""

    return a.iou(b)
