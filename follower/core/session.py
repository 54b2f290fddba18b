"""Frame loop: one tracking session over one frame source."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field

from follower.core.actuators.base import ActuatorSink
from follower.core.pipeline import FollowPipeline
from follower.core.types import Frame, FrameResult, Regime
from follower.core.video_sources.base import FrameSource

logger = logging.getLogger(__name__)


@dataclass
class SessionStats:
    frames: int = 0
    regimes: Counter[Regime] = field(default_factory=Counter)
    reinitializations: int = 0
    sink_failures: int = 0


def run_session(
    source: FrameSource,
    pipeline: FollowPipeline,
    sink: ActuatorSink,
    *,
    max_frames: int = 0,
    on_result: Callable[[Frame, FrameResult], None] | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> SessionStats:
    """Arbitrate every frame of `source` and send each command to `sink`.

    Frames are handled one at a time: detection, arbitration and the command
    send for frame N complete before frame N+1 is read. The session ends at
    end of stream, after `max_frames` frames (0 = unlimited), or when
    `should_stop()` returns True. Contract violations propagate to the caller.
    The caller owns (and closes) `source` and `sink`.
    """

    stats = SessionStats()
    pipeline.begin_session()
    while should_stop is None or not should_stop():
        frame = source.read()
        if frame is None:
            break
        result = pipeline.process(frame)
        status = sink.send(result.command)
        if not status.ok:
            stats.sink_failures += 1
            logger.warning("Actuator sink rejected command: %s", status.detail or "unknown error")

        stats.frames += 1
        stats.regimes[result.decision.regime] += 1
        if result.decision.reinitialized:
            stats.reinitializations += 1
        if on_result is not None:
            on_result(frame, result)
        if max_frames and stats.frames >= max_frames:
            break

    logger.info(
        "Session finished: %d frames, %d tracker (re)initializations, %d sink failures",
        stats.frames,
        stats.reinitializations,
        stats.sink_failures,
    )
    return stats
