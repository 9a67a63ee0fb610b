from __future__ import annotations

from pathlib import Path
from typing import Optional

from .errors import DirectoryCreateError


def mirror_path(input_root: Path, output_root: Path, source: Path, extension: Optional[str] = None) -> Path:
    """Map ``source`` under ``input_root`` onto the same relative path under ``output_root``.

    ``extension`` replaces the file suffix when given. Raises ``ValueError`` when
    ``source`` does not live under ``input_root``.
    """
    relative = source.relative_to(input_root)
    if extension:
        relative = relative.with_suffix(extension)
    return output_root / relative


def prepare_destination(dest: Path) -> Path:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectoryCreateError(dest, f"cannot create {dest.parent}: {exc.strerror or exc}") from exc
    return dest


def resolve(input_root: Path, output_root: Path, source: Path, extension: Optional[str] = None) -> Path:
    return prepare_destination(mirror_path(input_root, output_root, source, extension))
