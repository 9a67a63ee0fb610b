import os
import sys
import threading
from collections.abc import Generator
from pathlib import Path

import pytest

from audio_shrinker.encoder import EncodeOutcome, EncodeRequest
from audio_shrinker.logs import reset_logging


class FakeEncoder:
    name = "fake-encoder"

    def __init__(self, available: bool = True, fail_on: tuple[str, ...] = (), ratio: float = 0.5) -> None:
        self.available = available
        self.fail_on = set(fail_on)
        self.ratio = ratio
        self.requests: list[EncodeRequest] = []
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        return self.available

    def encode(self, request: EncodeRequest) -> EncodeOutcome:
        with self._lock:
            self.requests.append(request)
        if request.source.name in self.fail_on:
            request.destination.write_bytes(b"partial")
            return EncodeOutcome(1, f"{request.source}: Invalid data found when processing input")
        size = int(request.source.stat().st_size * self.ratio)
        request.destination.write_bytes(b"\0" * size)
        return EncodeOutcome(0)


def write_file(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\1" * size)
    return path


@pytest.fixture(autouse=True)
def restore_std_streams() -> Generator[None, None, None]:
    original_stdout = sys.stdout
    original_stderr = sys.stderr
    try:
        yield
    finally:
        sys.stdout = original_stdout
        sys.stderr = original_stderr


@pytest.fixture(autouse=True)
def clean_logging() -> Generator[None, None, None]:
    try:
        yield
    finally:
        reset_logging()


@pytest.fixture
def temp_cwd(tmp_path: Path) -> Generator[Path, None, None]:
    previous = Path.cwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(previous)


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def audio_tree(tmp_path: Path) -> Path:
    root = tmp_path / "in"
    write_file(root / "a" / "x.mp3", 1000)
    write_file(root / "a" / "b" / "y.mp3", 2000)
    write_file(root / "a" / "notes.txt", 50)
    return root
