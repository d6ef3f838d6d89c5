import asyncio
import logging
from threading import Thread
from typing import AsyncIterator

from mp3gain_wrapper.progress_relays.progress_relay import (
    ProgressRelay,
    ProgressUpdate,
    discard_remaining,
    parse_progress_line,
)


class AsyncioProgressRelay(ProgressRelay):
    """
    Hands mp3gain's diagnostic lines to coroutines on ``loop``.

    The blocking mp3gain call is expected to run off the loop (for example via
    ``asyncio.to_thread``) while a task on the loop iterates ``lines()``.
    """

    _loop: asyncio.AbstractEventLoop
    _queue: asyncio.Queue[str | None]
    _thread: Thread | None

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self._loop = loop
        self._queue = asyncio.Queue()
        self._thread = None

    def start(self) -> None:
        if self._stream is None:
            raise RuntimeError("No stream attached to the progress relay.")
        self._thread = Thread(
            target=self._worker, daemon=True, name="Mp3GainAsyncioRelay"
        )
        self._thread.start()

    def _put(self, item: str | None) -> None:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed; keep draining so mp3gain doesn't block.
            pass

    def _worker(self) -> None:
        stream = self._stream
        if stream is None:
            return
        try:
            for line in stream:
                text = line.rstrip()
                if text.strip():
                    self._put(text)
        except Exception as e:
            self.error = e
            logging.debug("mp3gain asyncio relay failed: %s", e)
            discard_remaining(stream)
        finally:
            self._put(None)

    async def lines(self) -> AsyncIterator[str]:
        while True:
            line = await self._queue.get()
            if line is None:
                return
            yield line

    async def progress(self) -> AsyncIterator[ProgressUpdate]:
        async for line in self.lines():
            update = parse_progress_line(line)
            if update is not None:
                yield update

    def join(self, timeout: float | None = None) -> bool:
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()
