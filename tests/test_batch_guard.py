from __future__ import annotations

import pytest

from mp3gain_wrapper.batch_guard import (
    BatchTooLargeError,
    check_batch_size,
    split_into_batches,
)


def _files(count: int) -> list[str]:
    return [f"{i:02d}.mp3" for i in range(count)]


def test_fifteen_files_are_accepted() -> None:
    check_batch_size(_files(15))
    check_batch_size([])


def test_sixteen_files_are_rejected() -> None:
    with pytest.raises(BatchTooLargeError) as excinfo:
        check_batch_size(_files(16))
    assert excinfo.value.given == 16
    assert excinfo.value.maximum == 15
    assert "Given: 16" in str(excinfo.value)


def test_split_into_batches_keeps_order() -> None:
    files = _files(32)
    batches = list(split_into_batches(files))
    assert [len(batch) for batch in batches] == [15, 15, 2]
    assert [f for batch in batches for f in batch] == files


def test_split_into_batches_rejects_oversized_batches() -> None:
    with pytest.raises(ValueError):
        list(split_into_batches(_files(3), size=16))
