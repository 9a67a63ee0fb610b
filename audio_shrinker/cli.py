from __future__ import annotations

import argparse
import sys
from typing import NoReturn, Optional

from .config import DEFAULT_QUALITY, DEFAULT_SILENCE_MODE, DEFAULT_THRESHOLD, SILENCE_MODES, build_job_config
from .core import run_batch
from .encoder import Encoder
from .errors import AggregationError, ConfigError, DiscoveryEmpty
from .logs import configure_logging
from .summary import render_summary

EXIT_OK = 0
EXIT_FAILURE = 1


class UsageError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="audio-shrinker",
        description="Compress every audio file under a directory to VBR MP3, mirroring the tree.",
        add_help=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this message and exit.")
    parser.add_argument("-i", dest="input", required=True, help="Input directory to scan for audio files.")
    parser.add_argument("-o", dest="output", required=True, help="Output directory root for compressed files.")
    parser.add_argument(
        "-q",
        dest="quality",
        default=DEFAULT_QUALITY,
        help=f"VBR quality, 0 (best) to 9 (smallest) (default: {DEFAULT_QUALITY}).",
    )
    parser.add_argument(
        "-t",
        dest="threshold",
        default=DEFAULT_THRESHOLD,
        help=f"Silence threshold in decibels, e.g. -45dB (default: {DEFAULT_THRESHOLD}).",
    )
    parser.add_argument(
        "-s",
        dest="silence",
        default=DEFAULT_SILENCE_MODE,
        help=f"Silence trimming: {'|'.join(SILENCE_MODES)} (default: {DEFAULT_SILENCE_MODE}).",
    )
    parser.add_argument(
        "-n",
        dest="workers",
        default=None,
        help="Number of concurrent encodes (default: detected CPU count).",
    )
    parser.add_argument("-v", dest="verbose", action="store_true", help="Mirror all log lines to the console.")
    parser.add_argument(
        "--skip-existing",
        action="store_true",
        help="Keep destination files that already exist instead of re-encoding them.",
    )
    return parser


def _attach_threshold(raw: list[str]) -> list[str]:
    """Glue ``-t VALUE`` into ``-tVALUE`` so negative thresholds like ``-45dB`` are not read as flags."""
    folded: list[str] = []
    pending = False
    for arg in raw:
        if pending:
            folded[-1] += arg
            pending = False
        elif arg == "-t":
            folded.append(arg)
            pending = True
        else:
            folded.append(arg)
    return folded


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI flags; raises ``UsageError`` on help, unknown or missing flags."""
    parser = build_parser()
    raw = sys.argv[1:] if argv is None else argv
    if any(arg in {"-h", "--help"} for arg in raw):
        raise UsageError("")
    return parser.parse_args(_attach_threshold(raw))


def _usage(message: str) -> int:
    parser = build_parser()
    if message:
        print(f"{parser.prog}: error: {message}", file=sys.stderr)
    parser.print_help(sys.stderr)
    return EXIT_FAILURE


def main(argv: Optional[list[str]] = None, encoder: Optional[Encoder] = None) -> int:
    try:
        args = parse_args(argv)
    except UsageError as exc:
        return _usage(str(exc))

    try:
        config = build_job_config(
            input_root=args.input,
            output_root=args.output,
            quality=args.quality,
            silence_threshold=args.threshold,
            silence_mode=args.silence,
            parallelism=args.workers,
            verbose=args.verbose,
            skip_existing=args.skip_existing,
        )
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    configure_logging(verbose=config.verbose)

    try:
        summary = run_batch(config, encoder=encoder)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except DiscoveryEmpty as exc:
        print(exc)
        return EXIT_OK
    except AggregationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    for line in render_summary(summary):
        print(line)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
