"""Per-frame processing pipeline.

Runs the detector and then the arbitration engine, strictly in that order,
and packages the outcome as a `FrameResult`.
"""

from __future__ import annotations

import time

from follower.core.arbitration import ArbitrationEngine
from follower.core.config.settings import (
    FollowerSettings,
    arbitration_from_settings,
    steering_from_settings,
)
from follower.core.detectors.base import Detector
from follower.core.detectors.records import parse_detections
from follower.core.errors import EmptyFrame
from follower.core.trackers.base import Tracker, make_tracker
from follower.core.types import Frame, FrameResult


class FollowPipeline:
    """Detector + arbitration engine for one frame stream."""

    def __init__(self, detector: Detector, engine: ArbitrationEngine) -> None:
        self.detector = detector
        self.engine = engine
        self.frame_id = 0
        self._last_fps_at = time.perf_counter()
        self._fps = 0.0

    def begin_session(self) -> None:
        """Reset the frame counter and the engine for a new frame source."""

        self.frame_id = 0
        self._fps = 0.0
        self._last_fps_at = time.perf_counter()
        self.engine.begin_session()

    def _process_internal(self, frame: Frame, profile: bool) -> FrameResult:
        timings: dict[str, float] = {}
        t_all0 = time.perf_counter() if profile else 0.0

        if frame is None or getattr(frame, "size", 0) == 0:
            raise EmptyFrame(f"empty frame after frame {self.frame_id}")
        self.frame_id += 1
        h, w = frame.shape[:2]

        t_det0 = time.perf_counter() if profile else 0.0
        records = self.detector.detect(frame)
        detections = parse_detections(records, w, h)
        if profile:
            timings["detect_ms"] = (time.perf_counter() - t_det0) * 1000.0

        t_arb0 = time.perf_counter() if profile else 0.0
        decision, command = self.engine.arbitrate_frame(frame, detections)
        if profile:
            timings["arbitrate_ms"] = (time.perf_counter() - t_arb0) * 1000.0

        now_perf = time.perf_counter()
        dt = now_perf - self._last_fps_at
        if dt > 0:
            instant_fps = 1.0 / dt
            alpha = 0.1
            self._fps = (
                instant_fps if self._fps == 0 else (self._fps * (1.0 - alpha) + instant_fps * alpha)
            )
        self._last_fps_at = now_perf

        if profile:
            timings["pipeline_ms"] = (time.perf_counter() - t_all0) * 1000.0
        return FrameResult(
            frame_id=self.frame_id,
            timestamp=time.time(),
            decision=decision,
            command=command,
            detections=detections,
            fps=self._fps,
            profile=timings if profile else None,
        )

    def process(self, frame: Frame) -> FrameResult:
        """Process one frame."""

        return self._process_internal(frame, profile=False)

    def process_with_profile(self, frame: Frame) -> FrameResult:
        """Process one frame and attach stage durations (milliseconds) to the result."""

        return self._process_internal(frame, profile=True)


def build_pipeline(
    settings: FollowerSettings,
    detector: Detector | None = None,
    tracker: Tracker | None = None,
) -> FollowPipeline:
    """Assemble a pipeline from settings, with optional injected components."""

    if detector is None:
        from follower.core.detectors.yolo import YoloDetector

        detector = YoloDetector(
            settings.model_name,
            conf=settings.confidence_threshold,
            person_label=settings.person_label,
            task=settings.model_task,
        )
    engine = ArbitrationEngine(
        tracker or make_tracker(settings.tracker_kind),
        config=arbitration_from_settings(settings),
        steering=steering_from_settings(settings),
    )
    return FollowPipeline(detector, engine)
