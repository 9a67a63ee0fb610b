from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
GENERAL_LOG_NAME = "audio_shrinker.log"
FAILURE_LOG_NAME = "audio_shrinker_failures.log"

_installed: List[logging.Handler] = []


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def reset_logging() -> None:
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()


def configure_logging(verbose: bool = False, log_dir: Optional[Path] = None) -> None:
    """Attach the general and failure log files, plus a console mirror in verbose mode.

    The general file always records DEBUG and up; ``verbose`` only adds the console.

    Both files are appended to. Calling this again replaces the handlers from
    the previous call.
    """
    reset_logging()
    directory = log_dir if log_dir is not None else Path.cwd()
    formatter = logging.Formatter(LOG_FORMAT)
    handlers: List[logging.Handler] = [
        _file_handler(directory / GENERAL_LOG_NAME, logging.DEBUG, formatter),
        _file_handler(directory / FAILURE_LOG_NAME, logging.ERROR, formatter),
    ]
    if verbose:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.DEBUG)
        console.setFormatter(formatter)
        handlers.append(console)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in handlers:
        root.addHandler(handler)
        _installed.append(handler)
