from __future__ import annotations

import time
from pathlib import Path

import cv2
import numpy as np
import pytest

import follower.api.services.engine as engine_mod
import follower.api.services.state as state
from follower.api.services.engine import FollowEngine
from follower.core.actuators.base import MemorySink
from follower.core.arbitration import ArbitrationEngine
from follower.core.config.settings import FollowerSettings
from follower.core.detectors.base import EmptyDetector
from follower.core.pipeline import FollowPipeline
from follower.core.trackers.base import HoldTracker
from follower.core.types import Regime
from follower.core.video_sources.base import FrameSource


class DummyEngine:
    def __init__(self, settings: FollowerSettings):
        self.settings = settings
        self.started = 0
        self.stopped = 0

    def start(self):
        self.started += 1

    def stop(self):
        self.stopped += 1


class ListSource(FrameSource):
    def __init__(self, frames):
        self.frames = list(frames)
        self.closed = False

    def read(self):
        return self.frames.pop(0) if self.frames else None

    def close(self):
        self.closed = True


class PersonDetector:
    def detect(self, frame):
        return [[0, 15, 0.9, 0.4, 0.2, 0.6, 0.8]]


@pytest.fixture
def fresh_state(monkeypatch: pytest.MonkeyPatch) -> state.FollowerState:
    holder = state.FollowerState()
    monkeypatch.setattr(state, "_state", holder)
    return holder


def test_get_settings_initializes_once(monkeypatch: pytest.MonkeyPatch, fresh_state):
    calls = {"n": 0}

    def _load():
        calls["n"] += 1
        return FollowerSettings(tracker_kind="hold")

    monkeypatch.setattr(state, "load_settings", _load)

    assert state.get_settings().tracker_kind == "hold"
    assert state.get_settings().tracker_kind == "hold"
    assert calls["n"] == 1


def test_reload_settings_recreates_existing_engine(monkeypatch: pytest.MonkeyPatch, fresh_state):
    old_engine = DummyEngine(FollowerSettings())
    fresh_state.engine = old_engine
    monkeypatch.setattr(state, "FollowEngine", DummyEngine)
    monkeypatch.setattr(state, "load_settings", lambda: FollowerSettings())

    updated = state.reload_settings({"tracking_gain": 1.0})
    assert updated.tracking_gain == 1.0
    assert old_engine.stopped == 1
    assert fresh_state.engine is not old_engine
    assert fresh_state.engine.started == 1
    assert fresh_state.engine.settings.tracking_gain == 1.0


def test_reload_settings_does_not_start_an_engine(monkeypatch: pytest.MonkeyPatch, fresh_state):
    monkeypatch.setattr(state, "load_settings", lambda: FollowerSettings(degraded_gain=5.0))
    assert state.reload_settings(None).degraded_gain == 5.0
    assert fresh_state.engine is None


def test_get_engine_creates_and_starts_once(monkeypatch: pytest.MonkeyPatch, fresh_state):
    fresh_state.settings = FollowerSettings()
    monkeypatch.setattr(state, "FollowEngine", DummyEngine)

    first = state.get_engine()
    assert state.get_engine() is first
    assert first.started == 1


def test_stop_engine_stops_and_clears_engine(fresh_state):
    old_engine = DummyEngine(FollowerSettings())
    fresh_state.engine = old_engine
    state.stop_engine()
    assert old_engine.stopped == 1
    assert fresh_state.engine is None


def test_engine_runs_sessions_and_records_latest_result(monkeypatch: pytest.MonkeyPatch):
    frames = [np.zeros((480, 640, 3), dtype=np.uint8) for _ in range(3)]
    source = ListSource(frames)
    sinks: list[MemorySink] = []

    def _sink(self):
        sink = MemorySink()
        sinks.append(sink)
        return sink

    monkeypatch.setattr(engine_mod, "make_sources", lambda *a, **k: iter([source]))
    monkeypatch.setattr(FollowEngine, "_make_sink", _sink)

    pipeline = FollowPipeline(PersonDetector(), ArbitrationEngine(HoldTracker()))
    engine = FollowEngine(FollowerSettings(), pipeline=pipeline)
    engine.start()
    engine._thread.join(timeout=5)

    assert engine.running is False
    assert engine.last_error is None
    assert engine.frames_processed == 3
    assert engine.sessions_completed == 1
    assert source.closed
    assert len(sinks[0].commands) == 3
    assert engine.latest_result().decision.regime is Regime.TRACKING
    assert engine.latest_result().command.walk is True


def test_engine_reports_pipeline_failure(monkeypatch: pytest.MonkeyPatch):
    def _boom(settings):
        raise RuntimeError("no model")

    monkeypatch.setattr(engine_mod, "build_pipeline", _boom)
    engine = FollowEngine(FollowerSettings())
    engine.start()
    assert engine.running is False
    assert engine.last_error == "Failed to initialize pipeline"


def test_engine_reports_loop_failure(monkeypatch: pytest.MonkeyPatch):
    def _sources(*args, **kwargs):
        raise RuntimeError("camera gone")

    monkeypatch.setattr(engine_mod, "make_sources", _sources)
    pipeline = FollowPipeline(PersonDetector(), ArbitrationEngine(HoldTracker()))
    engine = FollowEngine(FollowerSettings(), pipeline=pipeline)
    engine.start()
    engine._thread.join(timeout=5)
    assert engine.running is False
    assert engine.last_error == "Follow loop failed"


def _wait_for(predicate, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _polled_engine(tmp_path: Path, **overrides) -> FollowEngine:
    settings = FollowerSettings(
        source_kind="from_file",
        source_location=str(tmp_path / "live.png"),
        poll_idle_timeout=None,
        sink_kind="memory",
        **overrides,
    )
    pipeline = FollowPipeline(EmptyDetector(), ArbitrationEngine(HoldTracker()))
    return FollowEngine(settings, pipeline=pipeline)


def test_stop_ends_loop_waiting_on_polled_image(tmp_path: Path):
    engine = _polled_engine(tmp_path)
    engine.start()
    assert _wait_for(lambda: engine._source is not None)

    engine.stop()

    assert not engine._thread.is_alive()
    assert engine.running is False
    assert engine.last_error is None
    assert engine._source is None


def test_stop_closes_recorder_after_loop_exits(tmp_path: Path):
    assert cv2.imwrite(str(tmp_path / "live.png"), np.zeros((48, 64, 3), dtype=np.uint8))
    video = tmp_path / "run.avi"
    engine = _polled_engine(tmp_path, record_video_path=str(video))
    engine.start()
    assert _wait_for(lambda: engine.frames_processed >= 1)

    engine.stop()

    assert not engine._thread.is_alive()
    assert engine._recorder is None
    assert engine.frames_processed == 1
    assert video.exists()
