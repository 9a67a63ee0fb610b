from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol

from .config import JobConfig
from .errors import EncodeFailure, InvalidOptionError, PerFileError, SameFileError
from .paths import prepare_destination

FFMPEG_BINARY = "ffmpeg"
MP3_CODEC = "libmp3lame"
MISSING_BINARY_EXIT_CODE = 127
DIAGNOSTIC_TAIL_LINES = 20


@dataclass(slots=True, frozen=True)
class FileTask:
    source_path: Path
    dest_path: Path


@dataclass(slots=True)
class FileResult:
    source_path: Path
    dest_path: Path
    original_bytes: int = 0
    compressed_bytes: int = 0
    success: bool = False
    error_detail: Optional[str] = None


@dataclass(slots=True, frozen=True)
class EncodeOptions:
    quality: int
    silence_mode: str = "none"
    silence_threshold: str = "-45dB"
    thread_budget: int = 1
    keep_metadata: bool = True
    skip_existing: bool = False

    @classmethod
    def from_config(cls, config: JobConfig) -> "EncodeOptions":
        return cls(
            quality=config.quality,
            silence_mode=config.silence_mode,
            silence_threshold=config.silence_threshold,
            thread_budget=config.thread_budget,
            skip_existing=config.skip_existing,
        )


@dataclass(slots=True, frozen=True)
class EncodeRequest:
    source: Path
    destination: Path
    quality: int
    filter_chain: Optional[str]
    threads: int
    keep_metadata: bool = True


@dataclass(slots=True)
class EncodeOutcome:
    returncode: int
    diagnostics: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Encoder(Protocol):
    name: str

    def is_available(self) -> bool:
        ...

    def encode(self, request: EncodeRequest) -> EncodeOutcome:
        ...


def _trim_leading(threshold: str) -> str:
    return f"silenceremove=start_periods=1:start_threshold={threshold}"


def build_silence_filter(mode: str, threshold: str) -> Optional[str]:
    """Translate a silence mode into an ffmpeg audio filter chain.

    Trailing silence is trimmed by reversing the stream, trimming its start,
    and reversing it back.
    """
    normalized = (mode or "none").lower()
    if normalized == "none":
        return None
    if normalized == "start":
        return _trim_leading(threshold)
    if normalized == "end":
        return f"areverse,{_trim_leading(threshold)},areverse"
    if normalized in {"both", "all"}:
        return f"{_trim_leading(threshold)},areverse,{_trim_leading(threshold)},areverse"
    raise InvalidOptionError(mode, f"unrecognized silence mode '{mode}'")


class FfmpegEncoder:
    name = FFMPEG_BINARY

    def __init__(self, binary: str = FFMPEG_BINARY) -> None:
        self.binary = binary

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def build_command(self, request: EncodeRequest) -> List[str]:
        cmd: List[str] = [
            self.binary,
            "-hide_banner",
            "-nostdin",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(request.source),
            "-map",
            "0:a",
        ]
        if request.keep_metadata:
            cmd.extend(["-map_metadata", "0"])
        cmd.extend([
            "-codec:a",
            MP3_CODEC,
            "-q:a",
            str(request.quality),
        ])
        if request.filter_chain:
            cmd.extend(["-af", request.filter_chain])
        cmd.extend(["-threads", str(request.threads)])
        cmd.append(str(request.destination))
        return cmd

    def encode(self, request: EncodeRequest) -> EncodeOutcome:
        cmd = self.build_command(request)
        logging.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError:
            return EncodeOutcome(MISSING_BINARY_EXIT_CODE, f"{self.binary} not found in PATH.")
        return EncodeOutcome(result.returncode, result.stderr.strip())


def _tail(text: str, lines: int = DIAGNOSTIC_TAIL_LINES) -> str:
    kept = [line for line in text.splitlines() if line.strip()]
    return "\n".join(kept[-lines:])


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logging.warning("Could not remove partial output %s: %s", path, exc)


def _encode(task: FileTask, options: EncodeOptions, encoder: Encoder) -> FileResult:
    src = task.source_path
    dst = task.dest_path
    if src.resolve() == dst.resolve():
        raise SameFileError(src, "source and destination are the same file")

    filter_chain = build_silence_filter(options.silence_mode, options.silence_threshold)
    prepare_destination(dst)

    original_size = src.stat().st_size
    if options.skip_existing and dst.exists():
        logging.debug("Skipping existing file: %s", dst)
        return FileResult(src, dst, original_size, dst.stat().st_size, success=True)

    request = EncodeRequest(
        source=src,
        destination=dst,
        quality=options.quality,
        filter_chain=filter_chain,
        threads=options.thread_budget,
        keep_metadata=options.keep_metadata,
    )
    outcome = encoder.encode(request)
    if not outcome.ok:
        _remove_partial(dst)
        detail = _tail(outcome.diagnostics) or "no diagnostics"
        raise EncodeFailure(src, f"{encoder.name} exited with code {outcome.returncode}: {detail}")

    try:
        final_size = dst.stat().st_size
    except FileNotFoundError:
        raise EncodeFailure(src, f"expected output file missing: {dst}") from None
    return FileResult(src, dst, original_size, final_size, success=True)


def encode_file(task: FileTask, options: EncodeOptions, encoder: Encoder) -> FileResult:
    """Encode one file, folding every per-file error into a failed ``FileResult``."""
    try:
        result = _encode(task, options, encoder)
    except PerFileError as exc:
        logging.error("Failed: %s\nReason: %s", task.source_path, exc.reason)
        return FileResult(task.source_path, task.dest_path, success=False, error_detail=exc.reason)
    except OSError as exc:
        logging.error("Failed: %s\nReason: %s", task.source_path, exc)
        return FileResult(task.source_path, task.dest_path, success=False, error_detail=str(exc))

    logging.debug(
        "Finished: %s -> %s (%d -> %d bytes)",
        task.source_path,
        task.dest_path,
        result.original_bytes,
        result.compressed_bytes,
    )
    return result
