from typing import Iterator, Sequence

from mp3gain_wrapper.gain_config import max_files
from mp3gain_wrapper.mp3gain_error import Mp3GainError


class BatchTooLargeError(Mp3GainError):
    given: int
    maximum: int

    def __init__(self, given: int, maximum: int = max_files) -> None:
        super().__init__(f"Can't process more than {maximum} files. Given: {given}")
        self.given = given
        self.maximum = maximum


def check_batch_size(files: Sequence[str]) -> None:
    if len(files) > max_files:
        raise BatchTooLargeError(len(files), max_files)


def split_into_batches(
    files: Sequence[str], size: int = max_files
) -> Iterator[list[str]]:
    if size <= 0 or size > max_files:
        raise ValueError(f"Batch size must be between 1 and {max_files}.")
    for start in range(0, len(files), size):
        yield list(files[start : start + size])
