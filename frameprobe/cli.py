from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import load_config
from .errors import FrameProbeError
from .evidence import write_evidence
from .pipeline import AnalysisPipeline
from .policy import recommended_frame_count
from .sampling import extract_frames, open_video_source
from .types import ProgressEvent


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def _quality(value: str) -> float:
    number = float(value)
    if not 0.0 < number <= 1.0:
        raise argparse.ArgumentTypeError(f"must be in (0, 1]: {value}")
    return number


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="frameprobe")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze_p = sub.add_parser("analyze", help="Analyze a video for AI generation.")
    analyze_p.add_argument("video_path", help="Path to input video.")
    analyze_p.add_argument(
        "--out", dest="out_dir", help="Optional output folder for evidence."
    )
    analyze_p.add_argument(
        "--config", dest="config_path", help="Optional JSON config file."
    )
    analyze_p.add_argument(
        "--frames", dest="frames", type=_positive_int, help="Override the number of frames."
    )

    sample_p = sub.add_parser("sample", help="Extract frames without classifying them.")
    sample_p.add_argument("video_path", help="Path to input video.")
    sample_p.add_argument("--out", dest="out_dir", required=True, help="Output folder.")
    sample_p.add_argument("--frames", dest="frames", type=_positive_int, help="Number of frames.")
    sample_p.add_argument(
        "--quality", dest="quality", type=_quality, default=0.8, help="JPEG quality in (0, 1]."
    )

    policy_p = sub.add_parser("policy", help="Show the frame count for a duration.")
    policy_p.add_argument("duration", type=float, help="Video duration in seconds.")

    return parser.parse_args(argv)


def _print_progress(event: ProgressEvent) -> None:
    print(f"[{event.progress:5.1f}%] {event.step.value}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        if args.command == "analyze":
            cfg = load_config(getattr(args, "config_path", None))
            if args.frames is not None:
                cfg.sampling.max_frames = args.frames
            pipeline = AnalysisPipeline(cfg, on_progress=_print_progress)
            result = pipeline.run(open_video_source(args.video_path))
            print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
            if args.out_dir:
                write_evidence(args.out_dir, result, cfg, frames=pipeline.frames)
            return 0

        if args.command == "sample":
            source = open_video_source(args.video_path)
            count = args.frames or recommended_frame_count(source.duration)
            frames = extract_frames(source, count, quality=args.quality)
            out = Path(args.out_dir)
            out.mkdir(parents=True, exist_ok=True)
            for frame in frames:
                (out / f"frame_{frame.index + 1:02d}.jpg").write_bytes(frame.image)
                print(f"frame {frame.index + 1}: t={frame.timestamp:.3f}s")
            return 0

        if args.command == "policy":
            print(recommended_frame_count(args.duration))
            return 0
    except FrameProbeError as exc:
        print(f"error: {exc.user_message}", file=sys.stderr)
        return 1

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
