"""
Highlight Detection CLI
Main entry point for analysing a video and exporting highlight clips.

  --validate  Check configuration validity and exit
"""

import argparse
import json
import logging
import signal
import sys
from pathlib import Path
from threading import Event as ThreadEvent
from typing import Any

from . import __version__
from .callbacks import AnalysisCallbacks
from .clips import ClipScheduler, FfmpegTrimmer
from .config import (
    ANALYSIS_PRESETS,
    AppConfig,
    ConfigValidationError,
    apply_env_overrides,
    build_app_config,
    find_config_file,
    load_raw_config,
    print_validation_result,
    validate_config_full,
)
from .errors import VideoAnalysisError
from .inference import build_detector
from .models import AnalysisResult, ClipResult, EventDetected
from .orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)

# Module-level shutdown signal for SIGTERM/SIGINT handling
_shutdown_signal = ThreadEvent()


def _setup_signal_handlers(orchestrator: AnalysisOrchestrator) -> None:
    """Register signal handlers that stop the run gracefully."""

    def handle(signum, _frame):
        signal_name = "SIGTERM" if signum == signal.SIGTERM else "SIGINT"
        # Note: print is safer than logger in signal handlers
        print(f"\nReceived {signal_name}, stopping analysis...")
        _shutdown_signal.set()
        orchestrator.stop()

    signal.signal(signal.SIGTERM, handle)
    signal.signal(signal.SIGINT, handle)


def setup_logging(quiet: bool = False) -> None:
    """
    Setup logging configuration.

    Args:
        quiet: If True, only show warnings and errors
    """
    level = logging.WARNING if quiet else logging.INFO

    # Custom formatter with shorter module names
    class ShortNameFormatter(logging.Formatter):
        def format(self, record):
            record.name = record.name.replace("highlight_detection.", "hd.")
            return super().format(record)

    handler = logging.StreamHandler()
    handler.setFormatter(
        ShortNameFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S"
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(level)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Highlight Detection - find scoring events in sports video and cut clips",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m highlight_detection game.mp4                      # Analyse and export clips
  python -m highlight_detection game.mp4 --start 60 --end 600 # Analyse 1:00 - 10:00
  python -m highlight_detection game.mp4 --no-clips --json-out events.json
  python -m highlight_detection --validate                    # Check config validity

Environment Variables:
  HIGHLIGHT_MODEL_FILE - Override detector.model_file
  HIGHLIGHT_API_KEY    - Override detector.api_key
  HIGHLIGHT_CLIP_DIR   - Override clips.output_directory
        """,
    )

    parser.add_argument("video", nargs="?", help="Video file to analyse")

    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config file (default: ./config.yaml, then ~/.config/highlight-detection/)",
    )

    parser.add_argument(
        "--preset",
        choices=ANALYSIS_PRESETS,
        help="Analysis preset (overrides the config file)",
    )

    parser.add_argument("--start", type=float, help="Start time in seconds")
    parser.add_argument("--end", type=float, help="End time in seconds")

    parser.add_argument("--no-clips", action="store_true", help="Detect events without exporting clips")

    parser.add_argument("--json-out", metavar="FILE", help="Write a JSON summary of the run")

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and show derived settings",
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Quiet mode - only show warnings and errors",
    )

    return parser.parse_args(argv)


def apply_cli_overrides(raw: dict[str, Any], args: argparse.Namespace) -> dict[str, Any]:
    """Layer command line options over the raw config dict."""
    raw = dict(raw)
    if args.preset:
        raw["preset"] = args.preset

    analysis = dict(raw.get("analysis") or {})
    if args.start is not None:
        analysis["start_time"] = args.start
    if args.end is not None:
        analysis["end_time"] = args.end
    if analysis:
        raw["analysis"] = analysis

    if args.no_clips:
        raw["clips_enabled"] = False
    return raw


def load_raw(args: argparse.Namespace) -> dict[str, Any]:
    """Find and read the config file, then apply environment and CLI overrides."""
    config_file = find_config_file(args.config)
    raw = load_raw_config(config_file) if config_file else {}
    return apply_cli_overrides(apply_env_overrides(raw), args)


def print_banner(config: AppConfig, video: str) -> None:
    """Print startup banner."""
    analysis = config.analysis

    print("\n" + "=" * 70)
    print(f"HIGHLIGHT DETECTION v{__version__}")
    print("=" * 70)

    detector = config.detector
    print(f"\nVideo: {video}")
    if detector.type == "yolo":
        print(f"Model: {detector.model_file}")
    else:
        print(f"Endpoint: {detector.endpoint}")
    print(f"Preset: {config.preset}")

    start = analysis.start_time if analysis.start_time is not None else 0.0
    end = f"{analysis.end_time:.1f}s" if analysis.end_time is not None else "end"
    print("\nRuntime:")
    print(f"  Range: {start:.1f}s - {end}")
    print(f"  Clips: {'enabled' if config.clips_enabled else 'disabled'}")
    print("  Press Ctrl+C to stop early")
    print("=" * 70)
    print()


def print_summary(
    result: AnalysisResult | None,
    clips: list[ClipResult],
    error: Exception | None,
) -> None:
    """Print final status and clip locations."""
    print(f"\n{'=' * 70}")

    if error is not None:
        print(f"Analysis failed: {error}")
    elif result is not None:
        if _shutdown_signal.is_set():
            print("Stopped early by signal")
        print(f"Frames: {result.total_frames} in {result.duration:.1f}s ({result.average_fps:.1f} fps)")
        print(f"Events: {len(result.events)}")
        for i, event in enumerate(result.events, start=1):
            minutes, seconds = divmod(event.timestamp, 60)
            print(f"  {i:3d}. {int(minutes)}:{seconds:05.2f}")

    if clips:
        print(f"\nClips ({len(clips)}):")
        for clip in sorted(clips, key=lambda c: c.index):
            print(f"  {clip.path}")

    print("=" * 70 + "\n")


def write_json_summary(
    path: str,
    video: str,
    result: AnalysisResult | None,
    clips: list[ClipResult],
    error: Exception | None,
) -> None:
    summary = {
        "video": video,
        "result": result.to_dict() if result else None,
        "clips": [c.to_dict() for c in sorted(clips, key=lambda c: c.index)],
        "error": str(error) if error else None,
    }
    Path(path).write_text(json.dumps(summary, indent=2), encoding="utf-8")
    logger.info(f"Summary written to {path}")


def run_validate(args: argparse.Namespace) -> int:
    """Run validation mode."""
    try:
        raw = load_raw(args)
    except ConfigValidationError as e:
        print(f"Configuration error: {e}")
        return 1

    result = validate_config_full(raw)
    print_validation_result(result)
    return 0 if result.valid else 1


def run_analysis(args: argparse.Namespace) -> int:
    """Analyse one video; returns the process exit code."""
    try:
        raw = load_raw(args)
        validation = validate_config_full(raw)
        if not validation.valid:
            print_validation_result(validation)
            return 1
        for warning in validation.warnings:
            logger.warning(warning)
        config = build_app_config(raw)
    except ConfigValidationError as e:
        logger.error(f"Configuration error: {e}")
        for error in e.errors:
            logger.error(f"  {error}")
        return 1

    try:
        detector = build_detector(config.detector, config.analysis.inference)
    except VideoAnalysisError as e:
        logger.error(f"Detector setup failed: {e}")
        return 1

    scheduler = None
    if config.clips_enabled:
        try:
            trimmer = FfmpegTrimmer()
        except RuntimeError as e:
            logger.error(str(e))
            return 1
        scheduler = ClipScheduler(config.clips, trimmer, duration_probe=trimmer.probe_duration)

    print_banner(config, args.video)

    clips: list[ClipResult] = []
    outcome: dict[str, Any] = {"result": None, "error": None}

    def on_event(event):
        if isinstance(event, EventDetected):
            print(f"  >> Event at {event.timestamp:.2f}s")

    callbacks = AnalysisCallbacks(
        on_event=on_event,
        on_clip_created=clips.append,
        on_completion=lambda result: outcome.update(result=result),
        on_error=lambda error: outcome.update(error=error),
    )

    orchestrator = AnalysisOrchestrator(detector, config.analysis, clip_scheduler=scheduler)
    _setup_signal_handlers(orchestrator)

    orchestrator.start(args.video, callbacks)
    # Join in short slices so signal handlers run promptly
    while not orchestrator.wait(timeout=1.0):
        pass

    if scheduler is not None and scheduler.active_count:
        logger.info("Waiting for clip exports to finish...")
    orchestrator.shutdown(wait=True)

    print_summary(outcome["result"], clips, outcome["error"])
    if args.json_out:
        write_json_summary(args.json_out, args.video, outcome["result"], clips, outcome["error"])

    return 1 if outcome["error"] is not None else 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(quiet=args.quiet or args.validate)

    if args.validate:
        sys.exit(run_validate(args))

    if not args.video:
        logger.error("No video given. Usage: python -m highlight_detection VIDEO [options]")
        sys.exit(2)

    sys.exit(run_analysis(args))
