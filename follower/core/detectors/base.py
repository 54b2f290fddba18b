"""Detector interface."""

from __future__ import annotations

from typing import Any, Protocol

import numpy as np

from follower.core.detectors.records import RECORD_FIELDS
from follower.core.types import Frame


class Detector(Protocol):
    """Anything that turns a frame into detector records."""

    def detect(self, frame: Frame) -> Any:
        """Return a sequence of 7-field records, empty when nothing is found."""


class EmptyDetector:
    """Detector that never finds anything (dry runs without a model)."""

    def detect(self, frame: Frame) -> np.ndarray:
        return np.zeros((0, RECORD_FIELDS), dtype=np.float32)
