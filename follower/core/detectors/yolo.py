"""Ultralytics YOLO detector integration.

The detector emits records in the follower wire format (see
`follower.core.detectors.records`). Torch stays an optional runtime
dependency: ONNX exports run without importing it.
"""

from __future__ import annotations

import importlib
import logging
import os
from contextlib import nullcontext
from typing import Any

import numpy as np
from ultralytics import YOLO

from follower.core.detectors.records import RECORD_FIELDS
from follower.core.types import Frame

logger = logging.getLogger(__name__)

YOLO11_MODEL_SIZES = ("n", "s", "m", "l")
YOLO11_DEFAULT_MODEL = "yolo11n.pt"
COCO_PERSON_CLASS = 0


def resolve_model_name(model_name: str | None, model_size: str | None) -> str:
    """Resolve the YOLO11 model name from an optional size override.

    Args:
        model_name: Explicit model path/name (used when model_size is None).
        model_size: Optional size selector ("n", "s", "m", "l") to build yolo11{size}.pt.
    """

    if model_size:
        size = str(model_size).strip().lower()
        if size not in YOLO11_MODEL_SIZES:
            raise ValueError("model_size must be one of: n, s, m, l")
        return f"yolo11{size}.pt"
    return model_name or YOLO11_DEFAULT_MODEL


def _to_numpy(value: Any) -> np.ndarray:
    if hasattr(value, "cpu"):
        value = value.cpu()
    return value.numpy() if hasattr(value, "numpy") else np.asarray(value)


class YoloDetector:
    """Person detector wrapper around Ultralytics YOLO.

    Only the COCO person class is kept. Detections are reported under
    `person_label` so downstream arbitration does not depend on the label map
    of the model that produced them.
    """

    _torch_threads_configured: bool = False

    def __init__(
        self,
        model_name: str = YOLO11_DEFAULT_MODEL,
        conf: float = 0.01,
        person_label: int = 15,
        task: str | None = None,
    ):
        self._configure_torch_threads_from_env()

        self.model_name = model_name
        self.is_onnx = model_name.lower().endswith(".onnx")
        self.device: str = "cpu"
        self.person_label = int(person_label)
        self._torch_inference_mode: Any | None = None
        if not self.is_onnx:
            try:
                torch = importlib.import_module("torch")
                self._torch_inference_mode = torch.inference_mode
            except Exception:
                self._torch_inference_mode = None
        self.model = YOLO(model_name, task=task)

        # Avoid .to(device) on ONNX exports; Ultralytics raises TypeError.
        if not self.is_onnx:
            try:
                self.model.to(self.device)
            except Exception:
                logger.debug("Model %s does not support .to(); relying on predict(device=)", model_name)
        self.conf = conf
        self._predict_kwargs: dict[str, Any] = {
            "conf": self.conf,
            "verbose": False,
            "classes": [COCO_PERSON_CLASS],
            "device": self.device,
        }

    @classmethod
    def _configure_torch_threads_from_env(cls) -> None:
        """Configure torch thread counts from `FOLLOW_TORCH_THREADS` (one-time)."""

        if cls._torch_threads_configured:
            return
        cls._torch_threads_configured = True

        threads_s = os.getenv("FOLLOW_TORCH_THREADS")
        if threads_s is None or not threads_s.strip():
            return

        try:
            torch = importlib.import_module("torch")
            torch.set_num_threads(max(1, int(threads_s)))
        except Exception:
            logger.warning("Ignoring FOLLOW_TORCH_THREADS=%r", threads_s)

    def detect(self, frame: Frame) -> np.ndarray:
        """Run inference on a single frame.

        Returns:
            An ``(N, 7)`` float array of ``[0, label, score, x1, y1, x2, y2]`` rows
            with coordinates normalized to the frame size.
        """

        empty = np.zeros((0, RECORD_FIELDS), dtype=np.float32)
        infer_ctx = (
            self._torch_inference_mode()
            if self._torch_inference_mode is not None
            else nullcontext()
        )
        with infer_ctx:
            results = self.model.predict(frame, **self._predict_kwargs)

        if not results:
            return empty

        boxes = getattr(results[0], "boxes", None)
        if boxes is None or len(boxes) == 0:
            return empty

        xyxyn = getattr(boxes, "xyxyn", None)
        confs = getattr(boxes, "conf", None)
        if xyxyn is None or confs is None:
            return empty

        xyxyn_np = _to_numpy(xyxyn).reshape(-1, 4)
        confs_np = _to_numpy(confs).reshape(-1)
        n = int(xyxyn_np.shape[0])

        out = np.zeros((n, RECORD_FIELDS), dtype=np.float32)
        out[:, 1] = float(self.person_label)
        out[:, 2] = confs_np[:n]
        out[:, 3:7] = np.clip(xyxyn_np, 0.0, 1.0)
        return out
