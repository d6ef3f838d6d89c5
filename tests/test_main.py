from __future__ import annotations

from pathlib import Path

import pytest

from mp3gain_wrapper.main import main

GAIN_HEADER = "File\tMP3 gain\tdB gain\tMax Amplitude\tMax global_gain\tMin global_gain\n"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("MP3GAIN_PATH", "MP3GAIN_TARGET_DB", "MP3GAIN_PRESERVE_TIMESTAMP", "MP3GAIN_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def _library(root: Path, count: int) -> list[Path]:
    root.mkdir()
    paths = [root / f"{i:02d}.mp3" for i in range(count)]
    for path in paths:
        path.write_bytes(b"")
    return paths


def test_version(fake_mp3gain, capsys: pytest.CaptureFixture[str]) -> None:
    fake_mp3gain.configure(stderr="mp3gain version 1.6.2\n")
    assert main(["--mp3gain", str(fake_mp3gain.path), "version"]) == 0
    assert capsys.readouterr().out == "1.6.2\n"


def test_analyze_prints_changes(
    fake_mp3gain, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (track,) = _library(tmp_path / "music", 1)
    fake_mp3gain.configure(
        stdout=GAIN_HEADER
        + f"{track}\t1\t1.5\t20000\t10\t5\n"
        + '"Album"\t2\t3.0\t20000\t12\t6\n'
    )

    code = main(["--mp3gain", str(fake_mp3gain.path), "--target-db", "91", "analyze", str(track)])

    assert code == 0
    assert capsys.readouterr().out == f"{track}\t+1 (+1.50 dB)\tpeak 20000\talbum +2 (+3.00 dB)\n"
    assert fake_mp3gain.argv() == ["-s", "r", "-o", "-p", "-d", "2", str(track)]


def test_add_splits_large_libraries(
    fake_mp3gain, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    paths = _library(tmp_path / "music", 17)

    code = main(["--mp3gain", str(fake_mp3gain.path), "--no-preserve-timestamp", "add", "--gain", "-2", str(tmp_path / "music")])

    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 17
    assert lines[0] == f"{paths[0]}\t-2 (-3.0 dB)"
    # The last call only received the two remaining files.
    assert fake_mp3gain.argv() == ["-g", "-2", str(paths[15]), str(paths[16])]


def test_album_refuses_more_than_one_batch(
    fake_mp3gain, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _library(tmp_path / "music", 16)
    code = main(["--mp3gain", str(fake_mp3gain.path), "album", str(tmp_path / "music")])
    assert code == 1
    assert "at most 15 files" in capsys.readouterr().err
    assert fake_mp3gain.argv() is None


def test_failed_batch_sets_exit_code(
    fake_mp3gain, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (track,) = _library(tmp_path / "music", 1)
    fake_mp3gain.configure(stderr="Can't open file\n", exit_code=1)
    assert main(["--mp3gain", str(fake_mp3gain.path), "undo", str(track)]) == 1
    assert "[error]" in capsys.readouterr().err


def test_no_files_found(fake_mp3gain, tmp_path: Path) -> None:
    (tmp_path / "empty").mkdir()
    assert main(["--mp3gain", str(fake_mp3gain.path), "delete", str(tmp_path / "empty")]) == 1


@pytest.mark.parametrize(("name", "value"), [("MP3GAIN_TARGET_DB", "loud"), ("MP3GAIN_TIMEOUT", "soon")])
def test_invalid_environment_setting(
    fake_mp3gain, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)
    assert main(["--mp3gain", str(fake_mp3gain.path), "version"]) == 2
    assert capsys.readouterr().err.startswith("[error] invalid MP3GAIN_* environment setting")
    assert fake_mp3gain.argv() is None
