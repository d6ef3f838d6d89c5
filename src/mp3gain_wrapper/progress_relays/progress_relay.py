import logging
import re
from abc import abstractmethod
from dataclasses import dataclass
from typing import Callable, TextIO


@dataclass(frozen=True)
class ProgressUpdate:
    percent: int
    total_bytes: int
    # "analyzed" or "written"
    phase: str
    file_index: int | None = None
    file_count: int | None = None


ProgressLineFn = Callable[[str], None]
ProgressUpdateFn = Callable[[ProgressUpdate], None]

# e.g. "[2/3] 45% of 4028416 bytes analyzed"
_progress_pattern = re.compile(
    r"^\s*(?:\[(?P<index>\d+)/(?P<count>\d+)\]\s*)?"
    r"(?P<percent>\d+)% of (?P<total>\d+) bytes (?P<phase>\w+)"
)


def discard_remaining(stream: TextIO) -> None:
    # After a decode or read error the text layer is unusable, but the pipe
    # still has to be emptied or mp3gain blocks writing to it.
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        return
    try:
        while buffer.read(65536):
            pass
    except (OSError, ValueError) as e:
        logging.debug("Could not drain mp3gain pipe: %s", e)


def parse_progress_line(line: str) -> ProgressUpdate | None:
    match = _progress_pattern.match(line)
    if match is None:
        return None
    index = match.group("index")
    count = match.group("count")
    return ProgressUpdate(
        percent=int(match.group("percent")),
        total_bytes=int(match.group("total")),
        phase=match.group("phase"),
        file_index=int(index) if index is not None else None,
        file_count=int(count) if count is not None else None,
    )


class ProgressRelay:
    """
    Receives mp3gain's stderr (progress and diagnostics) while the report is
    read from stdout. The runner attaches the stream, starts the relay, and
    joins it once the process has exited. The relay must read the stream to
    EOF, otherwise mp3gain can block on a full pipe.
    """

    _stream: TextIO | None
    error: Exception | None

    def __init__(self) -> None:
        self._stream = None
        self.error = None

    def attach(self, stream: TextIO) -> None:
        self._stream = stream
        self.error = None

    @abstractmethod
    def start(self) -> None:
        raise NotImplementedError()

    @abstractmethod
    def join(self, timeout: float | None = None) -> bool:
        """Returns True once the stream has been consumed to the end."""
        raise NotImplementedError()
