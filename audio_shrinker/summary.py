from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .encoder import FileResult
from .errors import AggregationError

SIZE_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]


def format_size(num_bytes: int) -> str:
    sign = "-" if num_bytes < 0 else ""
    size = float(abs(num_bytes))
    for unit in SIZE_UNITS[:-1]:
        if size < 1024:
            return f"{sign}{size:.2f} {unit}"
        size /= 1024
    return f"{sign}{size:.2f} {SIZE_UNITS[-1]}"


@dataclass(slots=True)
class RunSummary:
    files_processed: int
    total_original_bytes: int
    total_compressed_bytes: int
    elapsed_seconds: float = 0.0
    files_failed: int = 0

    @property
    def space_saved(self) -> int:
        return self.total_original_bytes - self.total_compressed_bytes

    @property
    def percent_saved(self) -> float:
        if self.total_original_bytes == 0:
            return 0.0
        return self.space_saved / self.total_original_bytes * 100


def aggregate(results: Iterable[FileResult], elapsed_seconds: float = 0.0) -> RunSummary:
    """Sum sizes over successful results; failed ones only bump ``files_failed``."""
    processed = 0
    failed = 0
    original = 0
    compressed = 0
    for result in results:
        if not result.success:
            failed += 1
            continue
        processed += 1
        original += result.original_bytes
        compressed += result.compressed_bytes

    if processed == 0:
        raise AggregationError(f"No files were compressed successfully ({failed} failed).")

    return RunSummary(
        files_processed=processed,
        total_original_bytes=original,
        total_compressed_bytes=compressed,
        elapsed_seconds=elapsed_seconds,
        files_failed=failed,
    )


def render_summary(summary: RunSummary) -> List[str]:
    lines = [f"Files processed: {summary.files_processed}"]
    if summary.files_failed:
        lines.append(f"Files failed: {summary.files_failed}")
    lines.extend([
        f"Original size: {format_size(summary.total_original_bytes)}",
        f"Compressed size: {format_size(summary.total_compressed_bytes)}",
        f"Space saved: {format_size(summary.space_saved)} ({summary.percent_saved:.2f}%)",
        f"Elapsed time: {summary.elapsed_seconds:.2f}s",
    ])
    return lines
