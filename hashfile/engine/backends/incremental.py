from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable, Optional

from hashfile.core.errors import FileTooLargeWithoutWorker, HashfileError
from hashfile.core.events import Backend, Emit, ProgressEvent, ResultEvent, StartEvent
from hashfile.core.file_handle import FileHandle
from hashfile.engine.backends.base import settled
from hashfile.engine.reader import FileReader, ReadTick
from hashfile.engine.sha256 import SoftwareSha256


class IncrementalDigest:
    """
    Chunk-at-a-time software SHA-256 on the calling thread.

    The reader hands out a cumulative buffer; only the bytes past
    `consumed` are fed to the accumulator on each tick.
    """

    kind = Backend.INCREMENTAL

    def __init__(
        self,
        *,
        max_bytes: int = 50_000_000,
        chunk_size: int = 1024 * 1024,
        accumulator: Callable[[], SoftwareSha256] = SoftwareSha256,
        logger: Optional[logging.Logger] = None,
    ):
        self._max_bytes = int(max_bytes)
        self._chunk_size = int(chunk_size)
        self._accumulator = accumulator
        self._log = logger or logging.getLogger(__name__)

    def hash(self, file: FileHandle, emit: Emit) -> "Future[ResultEvent]":
        if file.size > self._max_bytes:
            self._log.warning(
                "FILE_TOO_LARGE_WITHOUT_WORKER file=%s size=%d max=%d",
                file.path,
                file.size,
                self._max_bytes,
            )
            return settled(
                error=FileTooLargeWithoutWorker(
                    f"{file.name} is too big to be hashed without a worker "
                    f"({file.size} > {self._max_bytes} bytes).",
                    details={"size": file.size, "max": self._max_bytes},
                )
            )

        acc = self._accumulator()
        consumed = 0

        def on_tick(tick: ReadTick) -> None:
            nonlocal consumed
            acc.update(tick.buffer[consumed:tick.loaded])
            consumed = tick.loaded
            emit(ProgressEvent(tick.fraction, file))

        reader = FileReader(
            self._chunk_size,
            on_start=lambda: emit(StartEvent(file)),
            on_progress=on_tick,
            logger=self._log,
        )
        try:
            reader.read(file)
        except HashfileError as e:
            return settled(error=e)

        return settled(ResultEvent(digest_hex=acc.hexdigest(), file=file))
