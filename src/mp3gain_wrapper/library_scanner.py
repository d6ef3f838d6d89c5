import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

mp3_extensions = {".mp3"}


@dataclass
class ScanResult:
    files: list[str]
    warnings: list[str]


def is_mp3_file(path: Path) -> bool:
    # macOS AppleDouble sidecar files (._*) are metadata blobs, not audio.
    if path.name.startswith("._"):
        return False
    return path.is_file() and path.suffix.lower() in mp3_extensions


def collect_mp3_files(paths: Sequence[Path], recursive: bool = True) -> ScanResult:
    """
    Expands the given files and directories into a list of MP3 paths, in the
    order the paths were given. MP3s found under a directory are sorted among
    themselves. Files named explicitly are kept whatever their extension.
    """
    files: list[str] = []
    warnings: list[str] = []

    def _on_walk_error(err: OSError) -> None:
        target = getattr(err, "filename", None) or "?"
        warnings.append(f"walk error: {target}: {err.strerror or str(err)}")

    for path in paths:
        if path.is_file():
            files.append(str(path))
            continue
        if not path.is_dir():
            warnings.append(f"not found: {path}")
            continue

        found: list[str] = []
        if recursive:
            for dirpath, _, filenames in os.walk(path, onerror=_on_walk_error):
                base = Path(dirpath)
                for name in filenames:
                    candidate = base / name
                    if is_mp3_file(candidate):
                        found.append(str(candidate))
        else:
            for candidate in path.iterdir():
                if is_mp3_file(candidate):
                    found.append(str(candidate))
        files.extend(sorted(found))

    for warning in warnings:
        logging.warning(warning)
    return ScanResult(files=files, warnings=warnings)
