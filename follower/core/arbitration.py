"""Detection/tracking arbitration.

Each frame the engine picks the most relevant person detection, decides
whether to trust the tracker, re-initialize it from the detector, or report
that no usable target exists, and hands the resulting box to the steering
law. The tracker is the only state carried from one frame to the next.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from follower.core.errors import EmptyFrame
from follower.core.geometry import BoundingBox
from follower.core.steering import SteeringConfig, steer
from follower.core.trackers.base import Tracker
from follower.core.types import BoxRole, Command, Decision, Detection, Frame, Regime

logger = logging.getLogger(__name__)

VOC_PERSON_LABEL = 15


@dataclass(frozen=True)
class ArbitrationConfig:
    """Score and overlap thresholds used to arbitrate detector vs tracker."""

    # Detections below this score are ignored entirely.
    confidence_threshold: float = 0.01
    # A person must score strictly above this to be followed.
    good_confidence_threshold: float = 0.5
    # Weakest person score that still keeps the tracker running.
    existence_threshold: float = 0.3
    # Below this IoU the detector overrides the tracker.
    disagreement_threshold: float = 0.7
    person_label: int = VOC_PERSON_LABEL


@dataclass(frozen=True)
class TargetSelection:
    """Result of scanning one frame's detections."""

    closest: Detection | None
    best_person_score: float


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    TRACKING = "tracking"
    DEGRADED = "degraded"
    IDLE = "idle"


_STATE_FOR_REGIME = {
    Regime.INITIALIZING: EngineState.TRACKING,
    Regime.TRACKING: EngineState.TRACKING,
    Regime.DEGRADED: EngineState.DEGRADED,
    Regime.IDLE: EngineState.IDLE,
}


def select_target(detections: Iterable[Detection], config: ArbitrationConfig) -> TargetSelection:
    """Pick the largest confident person and the best person score of the frame.

    Only detections scoring at least `confidence_threshold` are considered.
    The closest person is the one with the largest area among those scoring
    above `good_confidence_threshold`; the first one wins on equal areas.
    """

    closest: Detection | None = None
    max_area = -1.0
    best_score = -1.0
    for det in detections:
        if det.score < config.confidence_threshold or det.label != config.person_label:
            continue
        area = det.box.area
        if det.score > config.good_confidence_threshold and area > max_area:
            max_area = area
            closest = det
        if det.score > best_score:
            best_score = det.score
    return TargetSelection(closest=closest, best_person_score=best_score)


def _frame_size(frame: Frame | None) -> tuple[int, int]:
    if frame is None or getattr(frame, "size", 0) == 0:
        raise EmptyFrame("frame source delivered an empty frame")
    h, w = frame.shape[:2]
    if w <= 0 or h <= 0:
        raise EmptyFrame(f"frame has invalid size {w}x{h}")
    return int(w), int(h)


class ArbitrationEngine:
    """Per-session state machine deciding which box to follow each frame.

    States: `uninitialized` until the tracker is first initialized, then
    `tracking`, `degraded` or `idle` depending on the last frame. There is no
    terminal state; `begin_session()` starts over.
    """

    def __init__(
        self,
        tracker: Tracker,
        config: ArbitrationConfig | None = None,
        steering: SteeringConfig | None = None,
    ) -> None:
        self.tracker = tracker
        self.config = config or ArbitrationConfig()
        self.steering = steering or SteeringConfig()
        self._tracker_initialized = False
        self._state = EngineState.UNINITIALIZED

    @property
    def tracker_initialized(self) -> bool:
        return self._tracker_initialized

    @property
    def state(self) -> EngineState:
        return self._state

    def begin_session(self) -> None:
        """Forget the tracker's target; the next usable detection re-initializes it."""

        logger.info("Starting new tracking session")
        self._tracker_initialized = False
        self._state = EngineState.UNINITIALIZED

    def arbitrate_frame(
        self, frame: Frame, detections: Iterable[Detection]
    ) -> tuple[Decision, Command]:
        """Arbitrate one frame and return its decision and actuator command.

        Raises:
            EmptyFrame: `frame` is empty.
        """

        decision = self._decide(frame, detections)
        if self._tracker_initialized:
            self._state = _STATE_FOR_REGIME[decision.regime]
        return decision, steer(decision, self.steering)

    def _decide(self, frame: Frame, detections: Iterable[Detection]) -> Decision:
        frame_size = _frame_size(frame)
        selection = select_target(detections, self.config)
        closest = selection.closest

        if not self._tracker_initialized and closest is not None:
            self.tracker.init(frame, closest.box)
            self._tracker_initialized = True
            logger.debug("Tracker initialized on %s", closest.box)
            return Decision(
                regime=Regime.INITIALIZING,
                primary_box=closest.box,
                frame_size=frame_size,
                visualization_boxes=((closest.box, BoxRole.DETECTION),),
                reinitialized=True,
            )

        if self._tracker_initialized and closest is not None:
            estimate = self.tracker.track(frame)
            reinit = self._disagree(estimate, closest.box)
            if reinit:
                # Steering still uses this frame's estimate; the new model applies next frame.
                self.tracker.init(frame, closest.box)
                logger.debug(
                    "Detector overrides tracker (iou=%.3f), re-initialized on %s",
                    estimate.iou(closest.box),
                    closest.box,
                )
            return Decision(
                regime=Regime.TRACKING,
                primary_box=estimate,
                frame_size=frame_size,
                visualization_boxes=(
                    (closest.box, BoxRole.DETECTION),
                    (estimate, BoxRole.TRACKER),
                ),
                reinitialized=reinit,
            )

        if (
            self._tracker_initialized
            and selection.best_person_score >= self.config.existence_threshold
        ):
            estimate = self.tracker.track(frame)
            return Decision(
                regime=Regime.DEGRADED,
                primary_box=estimate,
                frame_size=frame_size,
                visualization_boxes=((estimate, BoxRole.TRACKER),),
            )

        return Decision(regime=Regime.IDLE, primary_box=None, frame_size=frame_size)

    def _disagree(self, estimate: BoundingBox, detection_box: BoundingBox) -> bool:
        return estimate.iou(detection_box) < self.config.disagreement_threshold
