from __future__ import annotations

import logging
import threading

from follower.core.actuators.base import ActuatorSink, make_sink
from follower.core.config.settings import FollowerSettings
from follower.core.overlay.draw import draw_decision
from follower.core.overlay.recorder import VideoRecorder
from follower.core.pipeline import FollowPipeline, build_pipeline
from follower.core.session import run_session
from follower.core.types import Frame, FrameResult
from follower.core.video_sources.base import FrameSource, make_sources

logger = logging.getLogger(__name__)


class FollowEngine:
    """Runs the follow loop (capture → detect → arbitrate → actuate) in a thread.

    Sessions run back to back for every source the configured entry yields.
    The engine stops on its own at the end of the last source or on a fatal
    error, which is reported through `last_error`.
    """

    def __init__(self, settings: FollowerSettings, pipeline: FollowPipeline | None = None) -> None:
        self.settings = settings
        self._pipeline = pipeline
        self.running = False
        self.last_error: str | None = None
        self.frames_processed = 0
        self.sessions_completed = 0
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._latest_result: FrameResult | None = None
        self._recorder: VideoRecorder | None = None
        self._source: FrameSource | None = None

    def _make_sink(self) -> ActuatorSink:
        return make_sink(self.settings.sink_kind, self.settings.zmq_endpoint)

    def start(self) -> None:
        """Start the background thread.

        Safe to call multiple times; subsequent calls while running are ignored.
        """

        if self.running:
            return
        if self._pipeline is None:
            try:
                self._pipeline = build_pipeline(self.settings)
            except Exception:
                self.last_error = "Failed to initialize pipeline"
                logger.exception(self.last_error)
                return
        recorder = (
            VideoRecorder(self.settings.record_video_path, self.settings.record_fps)
            if self.settings.record_video_path
            else None
        )
        with self._lock:
            self._recorder = recorder
        self.running = True
        self.last_error = None
        self._thread = threading.Thread(
            target=self._run_loop, args=(self._pipeline,), daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the follow loop and wait for its thread to exit.

        The active source is interrupted so a blocked `read()` returns; the
        thread itself closes the source, the sink and the recorder.
        """

        self.running = False
        with self._lock:
            source = self._source
        if source is not None:
            source.interrupt()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2)
            if self._thread.is_alive():
                logger.warning("Follow loop did not exit within 2s of stop()")

    def _on_result(self, frame: Frame, result: FrameResult) -> None:
        with self._lock:
            self._latest_result = result
            self.frames_processed += 1
            recorder = self._recorder
        if recorder is not None:
            recorder.write(draw_decision(frame, result.decision))

    def _run_loop(self, pipeline: FollowPipeline) -> None:
        logger.debug("Follow loop started")
        try:
            sources = make_sources(
                self.settings.source_kind,
                self.settings.source_location,
                poll_interval=self.settings.poll_interval,
                max_backoff=self.settings.poll_max_backoff,
                idle_timeout=self.settings.poll_idle_timeout,
            )
            for source in sources:
                with self._lock:
                    self._source = source
                try:
                    # stop() may have run before the source was published.
                    if not self.running:
                        break
                    sink = self._make_sink()
                    try:
                        run_session(
                            source,
                            pipeline,
                            sink,
                            on_result=self._on_result,
                            should_stop=lambda: not self.running,
                        )
                    finally:
                        sink.close()
                finally:
                    with self._lock:
                        self._source = None
                    source.close()
                self.sessions_completed += 1
        except Exception:
            self.last_error = "Follow loop failed"
            logger.exception(self.last_error)
        finally:
            with self._lock:
                recorder, self._recorder = self._recorder, None
            if recorder is not None:
                recorder.close()
            self.running = False

    def latest_result(self) -> FrameResult | None:
        """Return the latest processed frame result."""

        with self._lock:
            return self._latest_result
