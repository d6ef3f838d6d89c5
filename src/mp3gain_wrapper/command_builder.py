from typing import Sequence

from mp3gain_wrapper.gain_config import OperationMode, reference_db

# Flags every mode starts with. mp3gain is sensitive to flag order, so the
# conditional flags below are always appended in the same sequence.
_base_flags: dict[OperationMode, list[str]] = {
    "delete_tag_info": ["-s", "d"],
    "undo": ["-u", "-o"],
    "apply_track_gain": ["-r", "-o", "-c"],
    "apply_album_gain": ["-a", "-o", "-c"],
    "analyze": ["-s", "r", "-o"],
}


def _target_offset_flags(target_db: int) -> list[str]:
    if target_db == reference_db:
        return []
    return ["-d", str(target_db - reference_db)]


def build_arguments(
    mode: OperationMode,
    files: Sequence[str],
    *,
    target_db: int = reference_db,
    until_no_clipping: bool = False,
    preserve_timestamp: bool = True,
    gain: int | None = None,
) -> list[str]:
    """
    Builds the mp3gain argument vector (without the executable) for one call.
    Files are appended last, in the order given; nothing is checked on disk.
    """
    if mode == "add_gain":
        if gain is None:
            raise ValueError("add_gain requires a gain value.")
        arguments = ["-g", str(gain)]
    elif mode in _base_flags:
        arguments = list(_base_flags[mode])
    else:
        raise ValueError(f"Unknown mp3gain operation mode: {mode!r}")

    if preserve_timestamp:
        arguments.append("-p")

    if mode in ("apply_track_gain", "apply_album_gain"):
        if until_no_clipping:
            arguments.append("-k")
        else:
            arguments.extend(_target_offset_flags(target_db))
    elif mode == "analyze":
        # Analysis never modifies files, so clipping prevention does not apply.
        arguments.extend(_target_offset_flags(target_db))

    arguments.extend(files)
    return arguments


def version_arguments() -> list[str]:
    return ["-v"]
