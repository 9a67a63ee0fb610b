import logging
import subprocess
from pathlib import Path

import pytest
from conftest import FakeEncoder, write_file

from audio_shrinker.encoder import (
    EncodeOptions,
    EncodeRequest,
    FfmpegEncoder,
    FileTask,
    build_silence_filter,
    encode_file,
)
from audio_shrinker.errors import InvalidOptionError


def test_silence_filter_none():
    assert build_silence_filter("none", "-45dB") is None


def test_silence_filter_start_trims_leading_only():
    chain = build_silence_filter("start", "-45dB")
    assert chain == "silenceremove=start_periods=1:start_threshold=-45dB"


def test_silence_filter_end_trims_trailing_only():
    chain = build_silence_filter("end", "-30dB")
    assert chain.split(",") == [
        "areverse",
        "silenceremove=start_periods=1:start_threshold=-30dB",
        "areverse",
    ]


@pytest.mark.parametrize("mode", ["both", "all"])
def test_silence_filter_both_trims_each_end(mode):
    chain = build_silence_filter(mode, "-45dB")
    steps = chain.split(",")
    assert steps.count("silenceremove=start_periods=1:start_threshold=-45dB") == 2
    # first trim anchored at stream start, second at the (reversed) end
    assert steps[0].startswith("silenceremove")
    assert steps[1:] == ["areverse", "silenceremove=start_periods=1:start_threshold=-45dB", "areverse"]


def test_silence_filter_rejects_unknown_mode():
    with pytest.raises(InvalidOptionError):
        build_silence_filter("middle", "-45dB")


def test_ffmpeg_command(tmp_path: Path):
    request = EncodeRequest(
        source=tmp_path / "in.flac",
        destination=tmp_path / "out.mp3",
        quality=2,
        filter_chain="silenceremove=start_periods=1:start_threshold=-45dB",
        threads=3,
    )
    cmd = FfmpegEncoder().build_command(request)
    assert cmd[0] == "ffmpeg"
    assert cmd[cmd.index("-i") + 1] == str(tmp_path / "in.flac")
    assert cmd[cmd.index("-codec:a") + 1] == "libmp3lame"
    assert cmd[cmd.index("-q:a") + 1] == "2"
    assert cmd[cmd.index("-af") + 1] == request.filter_chain
    assert cmd[cmd.index("-threads") + 1] == "3"
    assert cmd[cmd.index("-map_metadata") + 1] == "0"
    assert cmd[-1] == str(tmp_path / "out.mp3")


def test_ffmpeg_command_without_filter(tmp_path: Path):
    request = EncodeRequest(tmp_path / "a.mp3", tmp_path / "b.mp3", quality=9, filter_chain=None, threads=1)
    assert "-af" not in FfmpegEncoder().build_command(request)


def test_ffmpeg_encode_reports_nonzero_exit(tmp_path: Path, monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="Invalid data found\n")

    monkeypatch.setattr("audio_shrinker.encoder.subprocess.run", fake_run)
    outcome = FfmpegEncoder().encode(EncodeRequest(tmp_path / "a", tmp_path / "b", 2, None, 1))
    assert not outcome.ok
    assert outcome.returncode == 1
    assert outcome.diagnostics == "Invalid data found"


def test_ffmpeg_encode_missing_binary(tmp_path: Path):
    encoder = FfmpegEncoder(binary="definitely-not-an-encoder-binary")
    assert not encoder.is_available()
    outcome = encoder.encode(EncodeRequest(tmp_path / "a", tmp_path / "b", 2, None, 1))
    assert outcome.returncode == 127


def _task(tmp_path: Path, name: str = "x.mp3", size: int = 1000) -> FileTask:
    src = write_file(tmp_path / "in" / "a" / name, size)
    return FileTask(source_path=src, dest_path=tmp_path / "out" / "a" / "b" / name)


def test_encode_file_success(tmp_path: Path, fake_encoder: FakeEncoder):
    task = _task(tmp_path)
    result = encode_file(task, EncodeOptions(quality=2, silence_mode="both", thread_budget=2), fake_encoder)
    assert result.success
    assert result.error_detail is None
    assert result.original_bytes == 1000
    assert result.compressed_bytes == 500
    assert task.dest_path.exists()
    request = fake_encoder.requests[0]
    assert request.quality == 2
    assert request.threads == 2
    assert request.filter_chain.count("silenceremove") == 2


def test_encode_file_failure_is_returned_not_raised(tmp_path: Path, caplog):
    encoder = FakeEncoder(fail_on=("x.mp3",))
    task = _task(tmp_path)
    with caplog.at_level(logging.ERROR):
        result = encode_file(task, EncodeOptions(quality=2), encoder)
    assert not result.success
    assert "exited with code 1" in result.error_detail
    assert "Invalid data found" in result.error_detail
    assert not task.dest_path.exists()
    assert str(task.source_path) in caplog.text


def test_encode_file_rejects_same_file(tmp_path: Path, fake_encoder: FakeEncoder):
    src = write_file(tmp_path / "x.mp3", 100)
    result = encode_file(FileTask(src, src), EncodeOptions(quality=2), fake_encoder)
    assert not result.success
    assert "same file" in result.error_detail
    assert fake_encoder.requests == []
    assert src.read_bytes() == b"\1" * 100


def test_encode_file_rejects_unknown_silence_mode(tmp_path: Path, fake_encoder: FakeEncoder):
    result = encode_file(_task(tmp_path), EncodeOptions(quality=2, silence_mode="middle"), fake_encoder)
    assert not result.success
    assert "silence mode" in result.error_detail
    assert fake_encoder.requests == []


def test_encode_file_directory_create_failure(tmp_path: Path, fake_encoder: FakeEncoder):
    task = _task(tmp_path)
    write_file(task.dest_path.parent, 10)
    result = encode_file(task, EncodeOptions(quality=2), fake_encoder)
    assert not result.success
    assert "cannot create" in result.error_detail


def test_encode_file_skips_existing_destination(tmp_path: Path, fake_encoder: FakeEncoder):
    task = _task(tmp_path)
    write_file(task.dest_path, 123)
    result = encode_file(task, EncodeOptions(quality=2, skip_existing=True), fake_encoder)
    assert result.success
    assert result.compressed_bytes == 123
    assert fake_encoder.requests == []
