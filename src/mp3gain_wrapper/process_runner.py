import logging
import subprocess
from collections import deque
from dataclasses import dataclass
from threading import Event, Thread, Timer
from typing import Callable, Sequence, TextIO

import psutil

from mp3gain_wrapper.gain_config import (
    GainConfig,
    stderr_tail_lines,
    stop_grace_seconds,
    thread_join_timeout_seconds,
)
from mp3gain_wrapper.mp3gain_error import Mp3GainError
from mp3gain_wrapper.progress_relays.progress_relay import (
    ProgressRelay,
    discard_remaining,
)

SpawnFn = Callable[..., subprocess.Popen[str]]


class Mp3GainExecutionError(Mp3GainError):
    pass


@dataclass(frozen=True)
class ProcessOutput:
    data_lines: list[str]
    return_code: int
    # Tail of stderr; empty when a progress relay consumed the stream.
    diagnostics: list[str]


def _kill_children(pid: int) -> None:
    try:
        children = psutil.Process(pid).children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return
    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass


def stop_process(process: subprocess.Popen[str]) -> bool:
    """Returns False when the process had already exited."""
    if process.poll() is not None:
        return False
    _kill_children(process.pid)
    process.terminate()
    try:
        process.wait(timeout=stop_grace_seconds)
    except subprocess.TimeoutExpired:
        process.kill()
        try:
            process.wait(timeout=1.0)
        except subprocess.TimeoutExpired:
            logging.error("mp3gain process %s did not exit after kill.", process.pid)
    return True


class ProcessRunner:
    """
    Runs one mp3gain process and collects its report.

    stdout (the report) is read on the calling thread while stderr is consumed
    on a second thread, either by the caller's progress relay or by an
    internal drain that logs it. Both pipes are always read to the end.
    """

    _config: GainConfig
    _spawn: SpawnFn

    def __init__(
        self, config: GainConfig, spawn: SpawnFn = subprocess.Popen
    ) -> None:
        self._config = config
        self._spawn = spawn

    def _start_process(self, cmd: list[str]) -> subprocess.Popen[str]:
        try:
            process = self._spawn(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding=self._config.encoding,
                errors="strict",
            )
        except FileNotFoundError as e:
            raise Mp3GainExecutionError(
                f"mp3gain executable not found: {self._config.mp3gain_path}"
            ) from e
        except OSError as e:
            raise Mp3GainExecutionError(f"Failed to start mp3gain: {e}") from e

        if process.stdout is None or process.stderr is None:
            process.kill()
            process.wait()
            raise Mp3GainExecutionError("mp3gain pipes were not created.")
        return process

    def _drain_stderr(
        self, stderr: TextIO, tail: deque[str], errors: list[Exception]
    ) -> None:
        try:
            for line in stderr:
                text = line.rstrip()
                if text.strip():
                    tail.append(text)
                    logging.debug(text)
        except Exception as e:
            errors.append(e)
            logging.debug("mp3gain stderr drain failed: %s", e)
            discard_remaining(stderr)

    def _on_timeout(self, process: subprocess.Popen[str], timed_out: Event) -> None:
        if process.poll() is not None:
            return
        logging.warning(
            "mp3gain did not finish within %ss, stopping it.",
            self._config.timeout_seconds,
        )
        if stop_process(process):
            timed_out.set()

    def run(
        self, arguments: Sequence[str], relay: ProgressRelay | None = None
    ) -> ProcessOutput:
        cmd = [self._config.mp3gain_path, *arguments]
        logging.debug("call: %s", cmd)
        process = self._start_process(cmd)
        stdout = process.stdout
        stderr = process.stderr
        assert stdout is not None and stderr is not None

        stderr_tail: deque[str] = deque(maxlen=stderr_tail_lines)
        stderr_errors: list[Exception] = []
        stderr_thread: Thread | None = None
        try:
            if relay is not None:
                relay.attach(stderr)
                relay.start()
            else:
                stderr_thread = Thread(
                    target=self._drain_stderr,
                    args=(stderr, stderr_tail, stderr_errors),
                    daemon=True,
                    name="Mp3GainStderr",
                )
                stderr_thread.start()
        except Exception:
            stop_process(process)
            raise

        timed_out = Event()
        timer: Timer | None = None
        if self._config.timeout_seconds is not None:
            timer = Timer(
                self._config.timeout_seconds,
                self._on_timeout,
                args=(process, timed_out),
            )
            timer.daemon = True
            timer.start()

        data_lines: list[str] = []
        read_error: Exception | None = None
        try:
            for line in stdout:
                data_lines.append(line.rstrip("\r\n"))
        except (OSError, ValueError) as e:
            # Includes UnicodeDecodeError. The rest of stdout can't be trusted,
            # so stop the process to let the stderr reader reach EOF.
            read_error = e
            stop_process(process)

        try:
            return_code = process.wait()
        finally:
            if timer is not None:
                timer.cancel()
                # The callback may already be running; let it settle the flag.
                timer.join(timeout=stop_grace_seconds + thread_join_timeout_seconds)
            try:
                stdout.close()
            except OSError:
                pass

        if relay is not None:
            stderr_done = relay.join(timeout=thread_join_timeout_seconds)
            if not stderr_done:
                logging.error("mp3gain progress relay did not stop.")
            relay_error = relay.error
        else:
            assert stderr_thread is not None
            stderr_thread.join(timeout=thread_join_timeout_seconds)
            stderr_done = not stderr_thread.is_alive()
            if not stderr_done:
                logging.error("mp3gain stderr thread did not stop.")
            relay_error = stderr_errors[0] if stderr_errors else None
        if stderr_done:
            try:
                stderr.close()
            except OSError:
                pass

        if timed_out.is_set():
            raise Mp3GainExecutionError(
                f"mp3gain did not finish within {self._config.timeout_seconds}s "
                "and was stopped."
            )
        if read_error is not None:
            raise Mp3GainExecutionError(
                f"Failed reading mp3gain report: {read_error}"
            ) from read_error
        if relay_error is not None:
            raise Mp3GainExecutionError(
                f"Failed reading mp3gain diagnostics: {relay_error}"
            ) from relay_error
        if return_code != 0:
            raise Mp3GainExecutionError(
                f"mp3gain exited with code {return_code}."
                f"{self._error_details(stderr_tail)}"
            )

        return ProcessOutput(
            data_lines=data_lines,
            return_code=return_code,
            diagnostics=list(stderr_tail),
        )

    def _error_details(self, stderr_tail: deque[str]) -> str:
        if not stderr_tail:
            return ""
        return f" mp3gain stderr: {' | '.join(stderr_tail)}"
