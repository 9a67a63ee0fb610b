from __future__ import annotations

import logging
import time
from functools import partial
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from .config import AUDIO_EXTENSIONS, OUTPUT_EXTENSION, JobConfig
from .encoder import EncodeOptions, Encoder, FfmpegEncoder, FileTask, encode_file
from .errors import ConfigError, DiscoveryEmpty
from .paths import mirror_path
from .pool import CompletionCounter, ResultCollector, run_pool
from .progress import PROGRESS_UPDATE_INTERVAL, ProgressReporter
from .summary import RunSummary, aggregate, format_size


def ensure_encoder_available(encoder: Encoder) -> None:
    if not encoder.is_available():
        raise ConfigError(f"{encoder.name} not found in PATH. Please install it before running this command.")


def discover_audio_files(
    base_dir: Path,
    ignore_dir: Optional[Path] = None,
    extensions: Iterable[str] = AUDIO_EXTENSIONS,
) -> List[Path]:
    """Return every file under ``base_dir`` whose suffix is in ``extensions``, sorted.

    Files inside ``ignore_dir`` (typically an output root nested in the input) are left out.
    """
    wanted = {ext.lower() for ext in extensions}
    excluded = ignore_dir.resolve() if ignore_dir else None
    found: List[Path] = []
    for path in Path(base_dir).resolve().rglob("*"):
        if path.suffix.lower() not in wanted or not path.is_file():
            continue
        if excluded is not None and (path == excluded or excluded in path.parents):
            continue
        found.append(path)
    return sorted(found)


def build_tasks(files: List[Path], input_root: Path, output_root: Path) -> List[FileTask]:
    return [
        FileTask(source_path=src, dest_path=mirror_path(input_root, output_root, src, OUTPUT_EXTENSION))
        for src in files
    ]


def run_batch(
    config: JobConfig,
    encoder: Optional[Encoder] = None,
    progress_interval: float = PROGRESS_UPDATE_INTERVAL,
    progress_stream: Optional[TextIO] = None,
) -> RunSummary:
    """Discover, encode and aggregate one directory tree.

    Raises ``ConfigError`` when the encoder is missing, ``DiscoveryEmpty`` when
    there is nothing to encode, and ``AggregationError`` when every file failed.
    """
    encoder = encoder if encoder is not None else FfmpegEncoder()
    ensure_encoder_available(encoder)
    started = time.time()

    base_input = config.input_root
    output_root = config.output_root
    logging.info(
        "Quality %s, silence mode '%s' at %s, %d worker(s).",
        config.quality,
        config.silence_mode,
        config.silence_threshold,
        config.parallelism,
    )

    logging.info("Beginning scan of %s.", base_input)
    files = discover_audio_files(base_input, ignore_dir=output_root)
    if not files:
        logging.info("No audio files found in %s.", base_input)
        raise DiscoveryEmpty(f"No audio files found in {base_input}.")

    logging.info("Found %d audio file(s) to process; writing to %s.", len(files), output_root)
    tasks = build_tasks(files, base_input, output_root)

    counter = CompletionCounter()
    results = ResultCollector()
    reporter = ProgressReporter(len(tasks), counter, interval=progress_interval, stream=progress_stream)
    encode = partial(encode_file, options=EncodeOptions.from_config(config), encoder=encoder)

    reporter.start()
    run_pool(tasks, config.parallelism, encode, counter=counter, results=results)
    elapsed = time.time() - started
    reporter.join()

    summary = aggregate(results.snapshot(), elapsed_seconds=elapsed)
    logging.info(
        "Compressed %d file(s), %d failed; saved %s (%.2f%%).",
        summary.files_processed,
        summary.files_failed,
        format_size(summary.space_saved),
        summary.percent_saved,
    )
    return summary
