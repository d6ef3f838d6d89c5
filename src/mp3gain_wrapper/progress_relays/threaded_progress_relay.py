import logging
from threading import Thread
from typing import TextIO

from mp3gain_wrapper.progress_relays.progress_relay import (
    ProgressLineFn,
    ProgressRelay,
    ProgressUpdateFn,
    discard_remaining,
    parse_progress_line,
)


class ThreadedProgressRelay(ProgressRelay):
    _on_line: ProgressLineFn | None
    _on_progress: ProgressUpdateFn | None
    _thread: Thread | None
    _callback_failed: bool

    def __init__(
        self,
        on_line: ProgressLineFn | None = None,
        on_progress: ProgressUpdateFn | None = None,
    ) -> None:
        super().__init__()
        self._on_line = on_line
        self._on_progress = on_progress
        self._thread = None
        self._callback_failed = False

    def attach(self, stream: TextIO) -> None:
        super().attach(stream)
        self._callback_failed = False

    def start(self) -> None:
        if self._stream is None:
            raise RuntimeError("No stream attached to the progress relay.")
        self._thread = Thread(
            target=self._worker, daemon=True, name="Mp3GainProgressRelay"
        )
        self._thread.start()

    def _deliver(self, text: str) -> None:
        # A failing callback must not stop the stream from being drained.
        if self._callback_failed:
            return
        try:
            if self._on_line is not None:
                self._on_line(text)
            if self._on_progress is not None:
                update = parse_progress_line(text)
                if update is not None:
                    self._on_progress(update)
        except Exception as e:
            self._callback_failed = True
            logging.error("mp3gain progress callback failed: %s", e)

    def _worker(self) -> None:
        stream = self._stream
        if stream is None:
            return
        try:
            for line in stream:
                text = line.rstrip()
                if text.strip():
                    self._deliver(text)
        except Exception as e:
            self.error = e
            logging.debug("mp3gain progress relay failed: %s", e)
            discard_remaining(stream)

    def join(self, timeout: float | None = None) -> bool:
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()
