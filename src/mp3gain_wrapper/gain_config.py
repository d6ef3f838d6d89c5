import os
from dataclasses import dataclass
from typing import Literal, Mapping


OperationMode = Literal[
    "delete_tag_info",
    "undo",
    "apply_track_gain",
    "apply_album_gain",
    "analyze",
    "add_gain",
]

# mp3gain normalizes against 89 dB; other targets are passed as an offset.
reference_db = 89
# mp3gain refuses to handle more files than this in a single call.
max_files = 15
# Peak amplitude above this clips once the gain change is applied.
clipping_threshold = 31000
db_per_gain_step = 1.5

header_sentinel = "File"
album_sentinel = '"Album"'

default_mp3gain_path = "mp3gain"
thread_join_timeout_seconds = 2.0
stop_grace_seconds = 2.0
stderr_tail_lines = 20


@dataclass(frozen=True)
class GainConfig:
    mp3gain_path: str = default_mp3gain_path
    target_db: int = reference_db
    preserve_timestamp: bool = True
    timeout_seconds: float | None = None
    encoding: str = "utf-8"


def _env_bool(value: str) -> bool:
    return value.strip().lower() not in ("0", "false", "no", "off", "")


def load_config(environ: Mapping[str, str] | None = None) -> GainConfig:
    env = os.environ if environ is None else environ

    timeout_seconds: float | None = None
    raw_timeout = env.get("MP3GAIN_TIMEOUT")
    if raw_timeout:
        timeout_seconds = float(raw_timeout)

    raw_preserve = env.get("MP3GAIN_PRESERVE_TIMESTAMP")
    return GainConfig(
        mp3gain_path=env.get("MP3GAIN_PATH") or default_mp3gain_path,
        target_db=int(env.get("MP3GAIN_TARGET_DB") or reference_db),
        preserve_timestamp=True if raw_preserve is None else _env_bool(raw_preserve),
        timeout_seconds=timeout_seconds,
    )
