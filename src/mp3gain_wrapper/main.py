import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Sequence

from mp3gain_wrapper.batch_guard import split_into_batches
from mp3gain_wrapper.gain_changes import (
    AddedGainChange,
    AppliedGainChange,
    RecommendedGainChange,
    UndoGainChange,
)
from mp3gain_wrapper.gain_config import GainConfig, load_config, max_files
from mp3gain_wrapper.invocation_result import InvocationResult
from mp3gain_wrapper.library_scanner import collect_mp3_files
from mp3gain_wrapper.mp3gain import Mp3Gain
from mp3gain_wrapper.progress_relays.progress_relay import (
    ProgressRelay,
    ProgressUpdate,
)
from mp3gain_wrapper.progress_relays.threaded_progress_relay import (
    ThreadedProgressRelay,
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mp3gain-wrapper",
        description="Run mp3gain on batches of files and print its reports.",
    )
    parser.add_argument(
        "--mp3gain", default=None, help="Path to the mp3gain executable"
    )
    parser.add_argument(
        "--target-db",
        type=int,
        default=None,
        help="Target loudness in dB (mp3gain default is 89)",
    )
    parser.add_argument(
        "--no-preserve-timestamp",
        action="store_true",
        help="Let mp3gain update file modification times",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Stop an mp3gain call after this many seconds",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL") or "WARNING",
        help="Logging level (DEBUG shows mp3gain's own output)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("version", help="Print the mp3gain version")
    for command, help_text in (
        ("analyze", "Report recommended track and album gain"),
        ("track", "Apply track gain"),
        ("album", f"Apply album gain (at most {max_files} files)"),
        ("undo", "Undo changes made by mp3gain"),
        ("delete", "Delete stored mp3gain tag info"),
        ("add", "Add a fixed gain (1 step = 1.5 dB)"),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("paths", nargs="+", type=Path, help="MP3 files or folders")
        sub.add_argument(
            "--no-recursive",
            action="store_true",
            help="Don't descend into sub-folders",
        )
        sub.add_argument(
            "--progress",
            action="store_true",
            help="Print mp3gain's progress while it runs",
        )
        if command in ("track", "album"):
            sub.add_argument(
                "--until-no-clipping",
                action="store_true",
                help="Ignore the target and only lower gain to avoid clipping",
            )
        if command == "add":
            sub.add_argument(
                "--gain", type=int, required=True, help="Gain steps to add"
            )
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> GainConfig:
    config = load_config()
    return GainConfig(
        mp3gain_path=args.mp3gain or config.mp3gain_path,
        target_db=args.target_db if args.target_db is not None else config.target_db,
        preserve_timestamp=(
            False if args.no_preserve_timestamp else config.preserve_timestamp
        ),
        timeout_seconds=(
            args.timeout if args.timeout is not None else config.timeout_seconds
        ),
        encoding=config.encoding,
    )


def _make_progress_printer() -> Callable[[ProgressUpdate], None]:
    is_tty = sys.stderr.isatty()

    def _report(update: ProgressUpdate) -> None:
        prefix = ""
        if update.file_index is not None and update.file_count is not None:
            prefix = f"[{update.file_index}/{update.file_count}] "
        text = f"[{update.phase}] {prefix}{update.percent:3d}%"
        if is_tty:
            end = "\n" if update.percent >= 100 else ""
            print(f"\r{text}", end=end, file=sys.stderr, flush=True)
        else:
            print(text, file=sys.stderr)

    return _report


def format_change(
    change: UndoGainChange | AppliedGainChange | RecommendedGainChange | AddedGainChange,
) -> str:
    if isinstance(change, UndoGainChange):
        if change.has_no_changes():
            return f"{change.file_path}\tno changes"
        return (
            f"{change.file_path}\tleft {change.left_gain_change:+d}"
            f"\tright {change.right_gain_change:+d}"
        )
    if isinstance(change, AddedGainChange):
        return f"{change.file_path}\t{change.gain_steps:+d} ({change.gain_db:+.1f} dB)"

    clipping = "\tclipping" if change.has_clipping() else ""
    line = (
        f"{change.file_path}\t{change.gain_steps:+d} ({change.gain_db:+.2f} dB)"
        f"\tpeak {change.peak_amplitude:.0f}{clipping}"
    )
    if isinstance(change, RecommendedGainChange) and change.album_change is not None:
        album = change.album_change
        line += f"\talbum {album.gain_steps:+d} ({album.gain_db:+.2f} dB)"
    return line


def _run_batch(
    mp3gain: Mp3Gain,
    args: argparse.Namespace,
    batch: list[str],
    relay: ProgressRelay | None,
) -> InvocationResult:
    command = args.command
    if command == "analyze":
        return mp3gain.analyze_gain(batch, relay=relay)
    if command == "track":
        return mp3gain.apply_track_gain(batch, args.until_no_clipping, relay=relay)
    if command == "album":
        return mp3gain.apply_album_gain(batch, args.until_no_clipping, relay=relay)
    if command == "undo":
        return mp3gain.undo_changes(batch, relay=relay)
    if command == "delete":
        return mp3gain.delete_stored_tag_info(batch, relay=relay)
    if command == "add":
        return mp3gain.add_gain(batch, args.gain, relay=relay)
    raise ValueError(f"Unknown command {command!r}")


def run(args: argparse.Namespace, mp3gain: Mp3Gain) -> int:
    if args.command == "version":
        version = mp3gain.get_version()
        if not version.ok:
            print(f"[error] {version.failure}", file=sys.stderr)
            return 1
        print(version.value)
        return 0

    scan_result = collect_mp3_files(args.paths, recursive=not args.no_recursive)
    files = scan_result.files
    if not files:
        print("[error] no MP3 files found", file=sys.stderr)
        return 1
    # Album gain is computed over one mp3gain call, so it can't be split.
    if args.command == "album" and len(files) > max_files:
        print(
            f"[error] album gain needs a single batch of at most {max_files} files, "
            f"got {len(files)}",
            file=sys.stderr,
        )
        return 1

    failures = 0
    for batch in split_into_batches(files):
        relay: ProgressRelay | None = None
        if args.progress:
            relay = ThreadedProgressRelay(on_progress=_make_progress_printer())
        result = _run_batch(mp3gain, args, batch, relay)
        if not result.ok:
            failures += 1
            print(f"[error] {result.failure}", file=sys.stderr)
            continue
        if args.command == "delete":
            print(f"[done] tag info deleted from {len(batch)} files")
            continue
        for change in result.value or []:
            print(format_change(change))

    return 1 if failures else 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    try:
        config = _build_config(args)
    except ValueError as e:
        print(f"[error] invalid MP3GAIN_* environment setting: {e}", file=sys.stderr)
        return 2
    mp3gain = Mp3Gain(config)
    try:
        return run(args, mp3gain)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
