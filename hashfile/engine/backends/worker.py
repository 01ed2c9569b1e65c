from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import Future
from typing import Any, Optional

from hashfile.core.errors import UnexpectedWorkerMessage, WorkerCrashed, error_from_code
from hashfile.core.events import Backend, Emit, ProgressEvent, ResultEvent, StartEvent
from hashfile.core.file_handle import FileHandle
from hashfile.engine._internal.hash_worker import HashWorker
from hashfile.engine.backends.base import settled
from hashfile.engine.protocol import (
    WorkerError,
    WorkerProgress,
    WorkerResult,
    WorkerStart,
    decode_message,
)


class WorkerSession:
    """
    One background HashWorker plus its message queues.
    Created lazily by the Hasher for a batch and terminated when the batch ends.
    """

    def __init__(
        self,
        *,
        chunk_size: int = 1024 * 1024,
        join_timeout_s: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._log = logger or logging.getLogger(__name__)
        self._join_timeout_s = float(join_timeout_s)
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._outbox: "queue.Queue[Any]" = queue.Queue()
        self._worker = HashWorker(self._inbox, self._outbox, chunk_size=chunk_size, logger=self._log)
        self._worker.start()
        self._log.info("WORKER_SESSION_STARTED")

    def post(self, file: FileHandle) -> None:
        self._inbox.put(file)

    def receive(self, timeout: Optional[float] = None) -> Optional[Any]:
        try:
            if timeout == 0:
                return self._outbox.get_nowait()
            return self._outbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def is_alive(self) -> bool:
        return self._worker.is_alive()

    def terminate(self) -> None:
        self._worker.stop()
        self._worker.join(timeout=self._join_timeout_s)
        self._log.info("WORKER_SESSION_TERMINATED alive=%s", self._worker.is_alive())


class WorkerDigest:
    """
    Proxies files to a WorkerSession and turns its messages into events.

    A job that sees no valid message for `idle_timeout_s` while the worker
    is still alive is settled with WorkerCrashed.
    """

    kind = Backend.WORKER

    def __init__(
        self,
        session: WorkerSession,
        *,
        poll_interval_s: float = 0.1,
        idle_timeout_s: float = 30.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._session = session
        self._poll_interval_s = float(poll_interval_s)
        self._idle_timeout_s = float(idle_timeout_s)
        self._log = logger or logging.getLogger(__name__)

    def hash(self, file: FileHandle, emit: Emit) -> "Future[ResultEvent]":
        self._session.post(file)
        last_seen = time.monotonic()

        while True:
            raw = self._session.receive(timeout=self._poll_interval_s)
            if raw is None:
                if self._session.is_alive():
                    if time.monotonic() - last_seen > self._idle_timeout_s:
                        return self._stalled(file)
                    continue
                # Worker is gone; take whatever it managed to post before dying.
                raw = self._session.receive(timeout=0)
                if raw is None:
                    self._log.error("WORKER_CRASHED file=%s", file.path)
                    return settled(error=WorkerCrashed(f"Worker stopped while hashing {file.name}"))

            try:
                msg = decode_message(raw)
            except UnexpectedWorkerMessage:
                self._log.warning("UNEXPECTED_WORKER_MESSAGE file=%s msg=%r", file.path, raw)
                if time.monotonic() - last_seen > self._idle_timeout_s:
                    return self._stalled(file)
                continue

            last_seen = time.monotonic()
            if isinstance(msg, WorkerStart):
                emit(StartEvent(file))
            elif isinstance(msg, WorkerProgress):
                emit(ProgressEvent(msg.progress, file))
            elif isinstance(msg, WorkerResult):
                return settled(ResultEvent(digest_hex=msg.result, file=file))
            elif isinstance(msg, WorkerError):
                return settled(error=error_from_code(msg.error, f"Worker failed to hash {file.name}: {msg.error}"))

    def _stalled(self, file: FileHandle) -> "Future[ResultEvent]":
        self._log.error("WORKER_STALLED file=%s idle_timeout_s=%s", file.path, self._idle_timeout_s)
        return settled(
            error=WorkerCrashed(
                f"Worker stopped responding while hashing {file.name}",
                details={"idle_timeout_s": self._idle_timeout_s},
            )
        )
