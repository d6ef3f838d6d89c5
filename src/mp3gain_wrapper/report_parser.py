from typing import Callable, Iterable, Iterator, Sequence, TypeVar

from mp3gain_wrapper.gain_changes import (
    AppliedGainChange,
    RecommendedGainChange,
    UndoGainChange,
)
from mp3gain_wrapper.gain_config import OperationMode, album_sentinel, header_sentinel
from mp3gain_wrapper.mp3gain_error import Mp3GainError

undo_field_count = 3
gain_field_count = 6

_gain_field_names = (
    "file_path",
    "gain_steps",
    "gain_db",
    "peak_amplitude",
    "max_global_gain",
    "min_global_gain",
)

GainChangeT = TypeVar("GainChangeT", AppliedGainChange, RecommendedGainChange)


class MalformedReportRowError(Mp3GainError):
    line_number: int
    line: str
    field: str

    def __init__(self, line_number: int, line: str, field: str) -> None:
        super().__init__(
            f"mp3gain report line {line_number} has a non-numeric {field}: {line!r}"
        )
        self.line_number = line_number
        self.line = line
        self.field = field


def split_report_row(line: str) -> list[str]:
    return line.rstrip("\r\n").split("\t")


def _rows(
    lines: Iterable[str], field_count: int
) -> Iterator[tuple[int, str, list[str]]]:
    # The header and anything that isn't a report row (warnings, blank lines)
    # are filtered out here rather than treated as errors.
    for line_number, line in enumerate(lines, start=1):
        entries = split_report_row(line)
        if len(entries) != field_count or entries[0] == header_sentinel:
            continue
        yield line_number, line, entries


def _to_int(value: str, line_number: int, line: str, field: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise MalformedReportRowError(line_number, line, field) from e


def _to_float(value: str, line_number: int, line: str, field: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise MalformedReportRowError(line_number, line, field) from e


def _gain_change(
    record_type: Callable[..., GainChangeT],
    line_number: int,
    line: str,
    entries: Sequence[str],
) -> GainChangeT:
    names = _gain_field_names
    return record_type(
        file_path=entries[0],
        gain_steps=_to_int(entries[1], line_number, line, names[1]),
        gain_db=_to_float(entries[2], line_number, line, names[2]),
        peak_amplitude=_to_float(entries[3], line_number, line, names[3]),
        max_global_gain=_to_int(entries[4], line_number, line, names[4]),
        min_global_gain=_to_int(entries[5], line_number, line, names[5]),
    )


def parse_undo_report(lines: Iterable[str]) -> list[UndoGainChange]:
    result: list[UndoGainChange] = []
    for line_number, line, entries in _rows(lines, undo_field_count):
        result.append(
            UndoGainChange(
                file_path=entries[0],
                left_gain_change=_to_int(
                    entries[1], line_number, line, "left_gain_change"
                ),
                right_gain_change=_to_int(
                    entries[2], line_number, line, "right_gain_change"
                ),
            )
        )
    return result


def parse_applied_gain_report(lines: Iterable[str]) -> list[AppliedGainChange]:
    return [
        _gain_change(AppliedGainChange, line_number, line, entries)
        for line_number, line, entries in _rows(lines, gain_field_count)
    ]


def parse_recommended_gain_report(
    lines: Iterable[str],
) -> list[RecommendedGainChange]:
    """
    Parses the output of ``mp3gain -s r -o``.

    The ``"Album"`` row summarizes the whole batch. It is not returned as an
    entry of its own; instead every file's record carries it as
    ``album_change``. Without an album row ``album_change`` stays ``None``.
    """
    result: list[RecommendedGainChange] = []
    album_change: RecommendedGainChange | None = None
    for line_number, line, entries in _rows(lines, gain_field_count):
        change = _gain_change(RecommendedGainChange, line_number, line, entries)
        if entries[0] == album_sentinel:
            album_change = change
            continue
        result.append(change)

    if album_change is None:
        return result
    return [change.with_album_change(album_change) for change in result]


def parse_report(mode: OperationMode, lines: Iterable[str]) -> list:
    if mode == "undo":
        return parse_undo_report(lines)
    if mode in ("apply_track_gain", "apply_album_gain"):
        return parse_applied_gain_report(lines)
    if mode == "analyze":
        return parse_recommended_gain_report(lines)
    raise ValueError(f"mp3gain does not produce a report for mode {mode!r}")
