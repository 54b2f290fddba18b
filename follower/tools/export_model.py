"""Convert the follower's person detector to ONNX for CPU-only robots.

The exported file can be set as ``model_name`` (or ``FOLLOW_MODEL_NAME``);
`YoloDetector` recognizes the ``.onnx`` suffix and skips torch.
"""

from __future__ import annotations

import argparse
import os
import sys

from follower.core.config.settings import load_settings
from follower.core.detectors.yolo import resolve_model_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export the person detector to ONNX")
    parser.add_argument("--model", default=None, help="Model to export (default: configured model_name)")
    parser.add_argument("--size", default=None, help="YOLO11 size n|s|m|l, overrides --model")
    parser.add_argument("--imgsz", type=int, default=640, help="Square input size baked into the graph")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # Stay on CPU: stop Ultralytics from pulling GPU runtimes during export.
    os.environ.setdefault("ULTRALYTICS_AUTOUPDATE", "0")

    from ultralytics import YOLO

    try:
        source = resolve_model_name(args.model or load_settings().model_name, args.size)
    except ValueError as e:
        print(f"Invalid model selection: {e}", file=sys.stderr)
        return 2

    print(f"Exporting {source} (imgsz={args.imgsz}) to ONNX...")
    try:
        path = YOLO(source).export(format="onnx", device="cpu", imgsz=args.imgsz)
    except Exception as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1
    print(f"Wrote {path}; set FOLLOW_MODEL_NAME={path} to use it")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
