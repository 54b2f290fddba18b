import numpy as np
import pytest

from follower.core.arbitration import (
    ArbitrationConfig,
    ArbitrationEngine,
    EngineState,
    select_target,
)
from follower.core.errors import ContractViolation, EmptyFrame
from follower.core.geometry import BoundingBox
from follower.core.types import BoxRole, Detection, Regime


class ScriptedTracker:
    """Records init calls and returns queued estimates from track()."""

    def __init__(self, estimates=None):
        self.inits: list[BoundingBox] = []
        self.track_calls = 0
        self._estimates = list(estimates or [])
        self._box: BoundingBox | None = None

    def init(self, frame, box):
        self.inits.append(box)
        self._box = box

    def track(self, frame):
        self.track_calls += 1
        if self._estimates:
            return self._estimates.pop(0)
        return self._box


def _frame(w=640, h=480):
    return np.zeros((h, w, 3), dtype=np.uint8)


def _person(score, x1, y1, x2, y2, label=15):
    return Detection(label=label, score=score, box=BoundingBox(x1, y1, x2, y2))


def test_select_target_prefers_largest_confident_person():
    cfg = ArbitrationConfig()
    small = _person(0.95, 0, 0, 10, 10)
    large = _person(0.6, 0, 0, 100, 100)
    weak_huge = _person(0.4, 0, 0, 300, 300)
    not_person = _person(0.99, 0, 0, 400, 400, label=7)

    sel = select_target([small, large, weak_huge, not_person], cfg)
    assert sel.closest is large
    assert sel.best_person_score == pytest.approx(0.95)


def test_select_target_first_wins_on_equal_area():
    cfg = ArbitrationConfig()
    first = _person(0.6, 0, 0, 10, 10)
    second = _person(0.9, 20, 20, 30, 30)
    assert select_target([first, second], cfg).closest is first


def test_select_target_ignores_detections_below_confidence_threshold():
    cfg = ArbitrationConfig(confidence_threshold=0.2)
    sel = select_target([_person(0.1, 0, 0, 10, 10)], cfg)
    assert sel.closest is None
    assert sel.best_person_score == -1.0


def test_score_exactly_at_good_threshold_is_not_followed():
    cfg = ArbitrationConfig()
    sel = select_target([_person(0.5, 0, 0, 10, 10)], cfg)
    assert sel.closest is None
    assert sel.best_person_score == 0.5


def test_first_confident_person_initializes_tracker():
    tracker = ScriptedTracker()
    engine = ArbitrationEngine(tracker)
    det = Detection(15, 0.9, BoundingBox.from_normalized(0.1, 0.1, 0.3, 0.3, 640, 480))

    decision, command = engine.arbitrate_frame(_frame(), [det])

    assert decision.regime is Regime.INITIALIZING
    assert decision.reinitialized is True
    assert decision.frame_size == (640, 480)
    assert tracker.inits[0].as_tuple() == pytest.approx((64.0, 48.0, 192.0, 144.0))
    assert tracker.track_calls == 0
    assert decision.visualization_boxes == ((det.box, BoxRole.DETECTION),)
    assert command.walk is False
    assert command.turn == 0.0
    assert engine.tracker_initialized
    assert engine.state is EngineState.TRACKING


def test_no_detections_before_initialization_is_idle():
    tracker = ScriptedTracker()
    engine = ArbitrationEngine(tracker)

    decision, command = engine.arbitrate_frame(_frame(), [])

    assert decision.regime is Regime.IDLE
    assert decision.primary_box is None
    assert command.walk is False
    assert command.stand is True
    assert tracker.inits == []
    assert engine.state is EngineState.UNINITIALIZED


def test_weak_person_before_initialization_does_not_init():
    tracker = ScriptedTracker()
    engine = ArbitrationEngine(tracker)
    decision, _ = engine.arbitrate_frame(_frame(), [_person(0.45, 0, 0, 50, 50)])
    assert decision.regime is Regime.IDLE
    assert tracker.inits == []
    assert tracker.track_calls == 0


def test_tracking_agreement_keeps_model():
    box = BoundingBox(100, 100, 200, 300)
    tracker = ScriptedTracker()
    engine = ArbitrationEngine(tracker)
    engine.arbitrate_frame(_frame(), [Detection(15, 0.9, box)])

    decision, command = engine.arbitrate_frame(_frame(), [Detection(15, 0.9, box)])

    assert decision.regime is Regime.TRACKING
    assert decision.reinitialized is False
    assert decision.primary_box == box
    assert len(tracker.inits) == 1
    assert decision.visualization_boxes == (
        (box, BoxRole.DETECTION),
        (box, BoxRole.TRACKER),
    )
    assert command.walk is True
    assert command.stand is False
    # center x = 150 -> (150/640 - 0.5) * 2.0
    assert command.turn == pytest.approx((150.0 / 640.0 - 0.5) * 2.0)


def test_disagreement_reinitializes_but_steers_on_estimate():
    first = BoundingBox(64, 48, 192, 144)
    drifted = BoundingBox(400, 300, 500, 400)
    tracker = ScriptedTracker(estimates=[drifted])
    engine = ArbitrationEngine(tracker)
    engine.arbitrate_frame(_frame(), [Detection(15, 0.9, first)])

    decision, command = engine.arbitrate_frame(_frame(), [Detection(15, 0.9, first)])

    assert decision.regime is Regime.TRACKING
    assert decision.reinitialized is True
    assert decision.primary_box == drifted
    assert tracker.inits == [first, first]
    assert command.turn == pytest.approx((450.0 / 640.0 - 0.5) * 2.0)

    # The re-initialized model is what the next frame sees.
    decision, _ = engine.arbitrate_frame(_frame(), [Detection(15, 0.9, first)])
    assert decision.primary_box == first
    assert decision.reinitialized is False


def test_iou_exactly_at_threshold_keeps_tracker():
    det_box = BoundingBox(0, 0, 100, 100)
    # inter 70*100, union 100*100 -> iou 0.7
    estimate = BoundingBox(0, 0, 70, 100)
    tracker = ScriptedTracker(estimates=[estimate])
    engine = ArbitrationEngine(tracker)
    engine.arbitrate_frame(_frame(), [Detection(15, 0.9, det_box)])

    decision, _ = engine.arbitrate_frame(_frame(), [Detection(15, 0.9, det_box)])
    assert decision.reinitialized is False
    assert len(tracker.inits) == 1


def test_weak_evidence_after_init_is_degraded():
    box = BoundingBox(0, 0, 100, 100)
    tracker = ScriptedTracker()
    engine = ArbitrationEngine(tracker)
    engine.arbitrate_frame(_frame(), [Detection(15, 0.9, box)])

    decision, command = engine.arbitrate_frame(_frame(), [_person(0.35, 0, 0, 50, 50)])

    assert decision.regime is Regime.DEGRADED
    assert decision.primary_box == box
    assert decision.visualization_boxes == ((box, BoxRole.TRACKER),)
    assert command.turn == pytest.approx((50.0 / 640.0 - 0.5) * 6.0)
    assert engine.state is EngineState.DEGRADED


def test_existence_threshold_is_inclusive():
    tracker = ScriptedTracker()
    engine = ArbitrationEngine(tracker)
    engine.arbitrate_frame(_frame(), [_person(0.9, 0, 0, 100, 100)])
    decision, _ = engine.arbitrate_frame(_frame(), [_person(0.3, 0, 0, 50, 50)])
    assert decision.regime is Regime.DEGRADED


def test_evidence_below_existence_after_init_is_idle():
    tracker = ScriptedTracker()
    engine = ArbitrationEngine(tracker)
    engine.arbitrate_frame(_frame(), [_person(0.9, 0, 0, 100, 100)])
    calls_before = tracker.track_calls

    decision, command = engine.arbitrate_frame(_frame(), [_person(0.2, 0, 0, 50, 50)])

    assert decision.regime is Regime.IDLE
    assert tracker.track_calls == calls_before
    assert command.walk is False
    assert engine.state is EngineState.IDLE
    # Tracker stays initialized: the next good detection is tracking, not initializing.
    decision, _ = engine.arbitrate_frame(_frame(), [_person(0.9, 0, 0, 100, 100)])
    assert decision.regime is Regime.TRACKING


def test_begin_session_forgets_tracker():
    tracker = ScriptedTracker()
    engine = ArbitrationEngine(tracker)
    engine.arbitrate_frame(_frame(), [_person(0.9, 0, 0, 100, 100)])

    engine.begin_session()
    assert not engine.tracker_initialized
    assert engine.state is EngineState.UNINITIALIZED

    decision, _ = engine.arbitrate_frame(_frame(), [_person(0.9, 10, 10, 110, 110)])
    assert decision.regime is Regime.INITIALIZING
    assert len(tracker.inits) == 2


def test_empty_frame_is_a_contract_violation():
    engine = ArbitrationEngine(ScriptedTracker())
    with pytest.raises(EmptyFrame):
        engine.arbitrate_frame(np.zeros((0, 0, 3), dtype=np.uint8), [])
    with pytest.raises(ContractViolation):
        engine.arbitrate_frame(None, [])


def test_large_target_stops_the_robot():
    # 0.65 of a 640x480 frame
    box = BoundingBox(0, 0, 640, 480 * 0.65)
    engine = ArbitrationEngine(ScriptedTracker())
    engine.arbitrate_frame(_frame(), [Detection(15, 0.9, box)])

    _, command = engine.arbitrate_frame(_frame(), [Detection(15, 0.9, box)])
    assert command.stand is True
    assert command.walk is False
    assert command.turn == 0.0
