"""Run the follower over the entries of a list file.

Each non-empty line of the list file names one input; `--file-type` says how
to interpret it:

* ``image``          detect only, write ``file label score xmin ymin xmax ymax`` lines
* ``video``          one session over a video file
* ``webcam``         one session over a camera (the line is the camera index)
* ``videos_folder``  one session per sequence folder under the given root
* ``from_file``      one session over an image file rewritten in place
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import ExitStack
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from follower.core.actuators.base import make_sink
from follower.core.batch import detect_images
from follower.core.config.settings import FollowerSettings, load_settings
from follower.core.detectors.base import EmptyDetector
from follower.core.overlay.draw import draw_decision
from follower.core.overlay.recorder import VideoRecorder
from follower.core.pipeline import build_pipeline
from follower.core.session import run_session
from follower.core.trackers.base import HoldTracker
from follower.core.types import Frame, FrameResult
from follower.core.video_sources.base import SourceKind, make_sources


def _to_jsonable(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj):
        return _to_jsonable(asdict(obj))
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(v) for v in obj]
    return obj


def _read_list_file(path: str) -> list[str]:
    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def _settings_from_args(args: argparse.Namespace) -> FollowerSettings:
    settings = load_settings()
    overrides = {
        "model_name": args.model,
        "confidence_threshold": args.conf,
        "tracker_kind": args.tracker,
        "sink_kind": args.sink,
        "zmq_endpoint": args.zmq_endpoint,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)
    return settings


def run(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    kind = SourceKind(args.file_type)
    entries = _read_list_file(args.list_file)

    if args.mock:
        pipeline = build_pipeline(settings, detector=EmptyDetector(), tracker=HoldTracker())
    else:
        pipeline = build_pipeline(settings)

    if kind is SourceKind.IMAGE:
        with ExitStack() as stack:
            out = (
                stack.enter_context(open(args.out_file, "w", encoding="utf-8"))
                if args.out_file
                else sys.stdout
            )
            written = detect_images(entries, pipeline.detector, settings.confidence_threshold, out)
        print(f"Wrote {written} detection records", file=sys.stderr)
        return 0

    outputs: list[dict[str, Any]] = []
    recorder = VideoRecorder(args.out_video, settings.record_fps) if args.out_video else None

    def _on_result(frame: Frame, result: FrameResult) -> None:
        if args.output_json:
            outputs.append(_to_jsonable(result))
        if recorder is not None:
            recorder.write(draw_decision(frame, result.decision))

    try:
        for entry in entries:
            for source in make_sources(
                kind,
                entry,
                poll_interval=settings.poll_interval,
                max_backoff=settings.poll_max_backoff,
                idle_timeout=settings.poll_idle_timeout,
            ):
                sink = make_sink(settings.sink_kind, settings.zmq_endpoint)
                try:
                    stats = run_session(
                        source, pipeline, sink, max_frames=args.max_frames, on_result=_on_result
                    )
                finally:
                    sink.close()
                    source.close()
                print(f"{entry}: {stats.frames} frames", file=sys.stderr)
    finally:
        if recorder is not None:
            recorder.close()

    if args.output_json:
        out_path = Path(args.output_json)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(outputs, f, indent=2)
        print(f"Wrote {len(outputs)} frame results to {out_path}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Follow a person with detector + tracker arbitration")
    parser.add_argument("list_file", help="File with one input path per line")
    parser.add_argument(
        "--file-type",
        default=SourceKind.IMAGE.value,
        choices=[k.value for k in SourceKind],
        help="How to interpret the entries of the list file",
    )
    parser.add_argument("--out-file", help="Where to write image detection records (default stdout)")
    parser.add_argument("--output-json", help="Where to save per-frame results as JSON")
    parser.add_argument("--out-video", help="Where to save the annotated video (MJPG)")
    parser.add_argument("--model", default=None)
    parser.add_argument("--conf", type=float, default=None, help="Detection confidence threshold")
    parser.add_argument("--tracker", default=None, help="csrt|kcf|mil|hold")
    parser.add_argument("--sink", default=None, help="log|memory|zmq")
    parser.add_argument("--zmq-endpoint", default=None)
    parser.add_argument("--max-frames", type=int, default=0, help="Limit frames per session")
    parser.add_argument(
        "--mock", action="store_true", help="Use an empty detector and hold tracker (no model download)"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
