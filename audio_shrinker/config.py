from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError

AUDIO_EXTENSIONS = {
    ".mp3",
    ".wav",
    ".flac",
    ".m4a",
    ".aac",
    ".ogg",
    ".oga",
    ".opus",
    ".wma",
    ".aiff",
    ".aif",
}
OUTPUT_EXTENSION = ".mp3"
DEFAULT_QUALITY = "2"
DEFAULT_THRESHOLD = "-45dB"
DEFAULT_SILENCE_MODE = "none"
SILENCE_MODES: tuple[str, ...] = ("none", "start", "end", "both", "all")
SILENCE_MODE_ALIASES = {"all": "both"}

_QUALITY_PATTERN = re.compile(r"^[0-9]$")
_THRESHOLD_PATTERN = re.compile(r"^([+-]?\d+(?:\.\d+)?)dB$")


def detect_cpu_count() -> int:
    return os.cpu_count() or 1


@dataclass(slots=True, frozen=True)
class JobConfig:
    input_root: Path
    output_root: Path
    quality: int = int(DEFAULT_QUALITY)
    silence_threshold: str = DEFAULT_THRESHOLD
    silence_mode: str = DEFAULT_SILENCE_MODE
    parallelism: int = 1
    verbose: bool = False
    skip_existing: bool = False

    @property
    def thread_budget(self) -> int:
        return max(1, detect_cpu_count() // self.parallelism)


def parse_quality(raw: object) -> int:
    text = str(raw).strip() if raw is not None else ""
    if not _QUALITY_PATTERN.match(text):
        raise ConfigError(f"Quality must be a single digit between 0 and 9, got {raw!r}.")
    return int(text)


def parse_threshold(raw: object) -> tuple[float, str]:
    text = str(raw).strip() if raw is not None else ""
    match = _THRESHOLD_PATTERN.match(text)
    if not match:
        raise ConfigError(f"Silence threshold must look like -45dB, got {raw!r}.")
    value = float(match.group(1))
    normalized = match.group(1).lstrip("+")
    return value, f"{normalized}dB"


def parse_parallelism(raw: object) -> int:
    if raw is None:
        return detect_cpu_count()
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ConfigError(f"Parallelism must be a positive integer, got {raw!r}.") from None
    if value <= 0:
        raise ConfigError(f"Parallelism must be a positive integer, got {raw!r}.")
    return value


def normalize_silence_mode(raw: Optional[str]) -> str:
    mode = (raw or DEFAULT_SILENCE_MODE).strip().lower()
    if mode not in SILENCE_MODES:
        raise ConfigError(
            f"Unknown silence mode '{raw}'. Choose one of: {', '.join(SILENCE_MODES)}."
        )
    return SILENCE_MODE_ALIASES.get(mode, mode)


def _resolve_root(raw: Optional[object], label: str) -> Path:
    if raw is None or not str(raw).strip():
        raise ConfigError(f"Missing required {label} directory.")
    return Path(str(raw)).expanduser().resolve()


def build_job_config(
    input_root: Optional[object],
    output_root: Optional[object],
    quality: object = DEFAULT_QUALITY,
    silence_threshold: object = DEFAULT_THRESHOLD,
    silence_mode: Optional[str] = DEFAULT_SILENCE_MODE,
    parallelism: object = None,
    verbose: bool = False,
    skip_existing: bool = False,
) -> JobConfig:
    base_input = _resolve_root(input_root, "input")
    base_output = _resolve_root(output_root, "output")

    parsed_quality = parse_quality(quality)
    _, threshold = parse_threshold(silence_threshold)
    mode = normalize_silence_mode(silence_mode)
    workers = parse_parallelism(parallelism)

    if base_input == base_output:
        raise ConfigError(f"Input and output directories must differ (both are {base_input}).")
    if not base_input.is_dir():
        raise ConfigError(f"Input path is not a directory: {base_input}")
    if base_output.exists() and not base_output.is_dir():
        raise ConfigError(f"Output path exists and is not a directory: {base_output}")

    return JobConfig(
        input_root=base_input,
        output_root=base_output,
        quality=parsed_quality,
        silence_threshold=threshold,
        silence_mode=mode,
        parallelism=workers,
        verbose=verbose,
        skip_existing=skip_existing,
    )
