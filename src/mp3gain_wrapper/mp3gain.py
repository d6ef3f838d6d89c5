import logging
import subprocess
from typing import Callable, Sequence, TypeVar

from mp3gain_wrapper.batch_guard import check_batch_size
from mp3gain_wrapper.command_builder import build_arguments, version_arguments
from mp3gain_wrapper.gain_changes import (
    AddedGainChange,
    AppliedGainChange,
    RecommendedGainChange,
    UndoGainChange,
)
from mp3gain_wrapper.gain_config import GainConfig, OperationMode
from mp3gain_wrapper.invocation_result import InvocationResult
from mp3gain_wrapper.mp3gain_error import Mp3GainError
from mp3gain_wrapper.process_runner import (
    Mp3GainExecutionError,
    ProcessOutput,
    ProcessRunner,
    SpawnFn,
)
from mp3gain_wrapper.progress_relays.progress_relay import ProgressRelay
from mp3gain_wrapper.report_parser import (
    parse_applied_gain_report,
    parse_recommended_gain_report,
    parse_undo_report,
)

T = TypeVar("T")


class Mp3Gain:
    """
    One method per mp3gain operation. Each call runs a single mp3gain process
    on at most 15 files and returns an InvocationResult; errors are never
    turned into an empty list.

    Results come back in the order mp3gain reports them, which is normally the
    order the files were given. Match them up by ``file_path``.
    """

    _config: GainConfig
    _runner: ProcessRunner

    def __init__(
        self, config: GainConfig | None = None, spawn: SpawnFn = subprocess.Popen
    ) -> None:
        self._config = config if config is not None else GainConfig()
        self._runner = ProcessRunner(self._config, spawn)

    @property
    def config(self) -> GainConfig:
        return self._config

    def _invoke(
        self,
        mode: OperationMode,
        files: Sequence[str],
        relay: ProgressRelay | None,
        collect: Callable[[ProcessOutput], T],
        *,
        until_no_clipping: bool = False,
        gain: int | None = None,
    ) -> InvocationResult[T]:
        try:
            check_batch_size(files)
            arguments = build_arguments(
                mode,
                files,
                target_db=self._config.target_db,
                until_no_clipping=until_no_clipping,
                preserve_timestamp=self._config.preserve_timestamp,
                gain=gain,
            )
            output = self._runner.run(arguments, relay)
            return InvocationResult.success(collect(output))
        except Mp3GainError as e:
            logging.warning("mp3gain %s failed for %s: %s", mode, list(files), e)
            return InvocationResult.failed(e)

    def get_version(self) -> InvocationResult[str]:
        """Returns the version mp3gain reports, e.g. ``1.6.2``."""
        logging.debug("get mp3gain version.")
        try:
            output = self._runner.run(version_arguments())
        except Mp3GainError as e:
            logging.warning("Error while getting mp3gain version: %s", e)
            return InvocationResult.failed(e)

        for line in reversed(output.diagnostics):
            if line.strip():
                return InvocationResult.success(line.split()[-1])
        return InvocationResult.failed(
            Mp3GainExecutionError("mp3gain did not report a version.")
        )

    def delete_stored_tag_info(
        self, files: Sequence[str], relay: ProgressRelay | None = None
    ) -> InvocationResult[bool]:
        logging.debug("Delete stored tag info from: %s", list(files))
        return self._invoke("delete_tag_info", files, relay, lambda _: True)

    def undo_changes(
        self, files: Sequence[str], relay: ProgressRelay | None = None
    ) -> InvocationResult[list[UndoGainChange]]:
        logging.debug("Undoing mp3gain changes from: %s", list(files))
        return self._invoke(
            "undo",
            files,
            relay,
            lambda output: parse_undo_report(output.data_lines),
        )

    def apply_track_gain(
        self,
        files: Sequence[str],
        until_no_clipping: bool = False,
        relay: ProgressRelay | None = None,
    ) -> InvocationResult[list[AppliedGainChange]]:
        """
        Normalizes each file on its own (``-r``). With ``until_no_clipping``
        the target is ignored and gain is only lowered as far as needed to
        avoid clipping.
        """
        logging.debug(
            "Apply track gain to: %s; until no clipping: %s, target_db: %s",
            list(files),
            until_no_clipping,
            self._config.target_db,
        )
        return self._invoke(
            "apply_track_gain",
            files,
            relay,
            lambda output: parse_applied_gain_report(output.data_lines),
            until_no_clipping=until_no_clipping,
        )

    def apply_album_gain(
        self,
        files: Sequence[str],
        until_no_clipping: bool = False,
        relay: ProgressRelay | None = None,
    ) -> InvocationResult[list[AppliedGainChange]]:
        logging.debug(
            "Apply album gain to: %s; until no clipping: %s, target_db: %s",
            list(files),
            until_no_clipping,
            self._config.target_db,
        )
        return self._invoke(
            "apply_album_gain",
            files,
            relay,
            lambda output: parse_applied_gain_report(output.data_lines),
            until_no_clipping=until_no_clipping,
        )

    def analyze_gain(
        self, files: Sequence[str], relay: ProgressRelay | None = None
    ) -> InvocationResult[list[RecommendedGainChange]]:
        logging.debug(
            "Analyze gain of: %s; target_db: %s", list(files), self._config.target_db
        )
        return self._invoke(
            "analyze",
            files,
            relay,
            lambda output: parse_recommended_gain_report(output.data_lines),
        )

    def add_gain(
        self,
        files: Sequence[str],
        gain: int,
        relay: ProgressRelay | None = None,
    ) -> InvocationResult[list[AddedGainChange]]:
        """
        Adds ``gain`` steps (1.5 dB each) to every file. mp3gain doesn't print a
        report for this, so the changes are built from the arguments once the
        process has succeeded.
        """
        logging.debug("Add %s gain to: %s", gain, list(files))
        return self._invoke(
            "add_gain",
            files,
            relay,
            lambda _: [AddedGainChange(file_path, gain) for file_path in files],
            gain=gain,
        )
