from __future__ import annotations

import json
import stat
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

from mp3gain_wrapper.gain_config import GainConfig

_FAKE_MP3GAIN = '''#!{python}
import json
import sys
import time
from pathlib import Path

here = Path(__file__).resolve().parent
(here / "argv.json").write_text(json.dumps(sys.argv[1:]), encoding="utf-8")
behavior = json.loads((here / "behavior.json").read_text(encoding="utf-8"))

if behavior.get("stderr_bytes"):
    sys.stderr.flush()
    sys.stderr.buffer.write(bytes.fromhex(behavior["stderr_bytes"]))
    sys.stderr.buffer.flush()
for _ in range(behavior.get("stderr_repeat", 1)):
    sys.stderr.write(behavior.get("stderr", ""))
sys.stderr.flush()
sys.stdout.write(behavior.get("stdout", ""))
sys.stdout.flush()
if behavior.get("stdout_bytes"):
    sys.stdout.buffer.write(bytes.fromhex(behavior["stdout_bytes"]))
    sys.stdout.buffer.flush()
time.sleep(behavior.get("sleep", 0))
sys.exit(behavior.get("exit_code", 0))
'''


@dataclass
class FakeMp3Gain:
    path: Path

    def configure(
        self,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        sleep: float = 0,
        stderr_repeat: int = 1,
        stdout_bytes: bytes = b"",
        stderr_bytes: bytes = b"",
    ) -> None:
        behavior = {
            "stdout": stdout,
            "stderr": stderr,
            "exit_code": exit_code,
            "sleep": sleep,
            "stderr_repeat": stderr_repeat,
            "stdout_bytes": stdout_bytes.hex(),
            "stderr_bytes": stderr_bytes.hex(),
        }
        (self.path.parent / "behavior.json").write_text(
            json.dumps(behavior), encoding="utf-8"
        )

    def argv(self) -> list[str] | None:
        argv_path = self.path.parent / "argv.json"
        if not argv_path.exists():
            return None
        return json.loads(argv_path.read_text(encoding="utf-8"))

    def config(self, **overrides) -> GainConfig:
        values = {"mp3gain_path": str(self.path), "timeout_seconds": 30.0}
        values.update(overrides)
        return GainConfig(**values)


@pytest.fixture
def fake_mp3gain(tmp_path: Path) -> FakeMp3Gain:
    tool_dir = tmp_path / "bin"
    tool_dir.mkdir()
    path = tool_dir / "mp3gain"
    path.write_text(_FAKE_MP3GAIN.format(python=sys.executable), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    fake = FakeMp3Gain(path)
    fake.configure()
    return fake
