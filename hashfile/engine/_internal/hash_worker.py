from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Optional

from hashfile.core.errors import DigestFailed, InvalidParameter, ReadFailed
from hashfile.core.file_handle import FileHandle
from hashfile.engine.protocol import (
    error_message,
    progress_message,
    result_message,
    start_message,
)
from hashfile.utils.hashing import sha256_stream

_STOP = object()


class HashWorker(threading.Thread):
    """
    Background worker: takes FileHandles from `inbox`, streams each through
    sha256 and posts protocol messages to `outbox`.

    Shares nothing with the caller except the two queues.
    """

    def __init__(
        self,
        inbox: "queue.Queue[Any]",
        outbox: "queue.Queue[Any]",
        *,
        chunk_size: int = 1024 * 1024,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(daemon=True, name="hashfile-worker")
        self._inbox = inbox
        self._outbox = outbox
        self._chunk_size = int(chunk_size)
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                item = self._inbox.get(timeout=0.05)
            except queue.Empty:
                continue
            if item is _STOP:
                break
            try:
                self._handle(item)
            except Exception:
                self._log.exception("HASH_WORKER_EXCEPTION item=%r", item)
                self._outbox.put(error_message(DigestFailed.code))

    def stop(self) -> None:
        self._stop_event.set()
        self._inbox.put(_STOP)

    def _handle(self, item: Any) -> None:
        if not isinstance(item, FileHandle):
            self._log.warning("HASH_WORKER_BAD_REQUEST item=%r", item)
            self._outbox.put(error_message(InvalidParameter.code))
            return

        total = item.size
        self._outbox.put(start_message())

        def on_chunk(loaded: int) -> None:
            fraction = min(1.0, loaded / total) if total > 0 else 1.0
            self._outbox.put(progress_message(fraction))

        try:
            with item.open() as f:
                digest = sha256_stream(f, chunk_size=self._chunk_size, on_chunk=on_chunk)
        except OSError as e:
            self._log.warning("HASH_WORKER_READ_FAILED file=%s err=%s", item.path, e)
            self._outbox.put(error_message(ReadFailed.code))
            return

        self._outbox.put(result_message(digest))
