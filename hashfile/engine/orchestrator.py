from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Callable, Optional

from hashfile.app.config import HasherConfig
from hashfile.core.errors import DigestFailed, InvalidParameter, NotASha256Hash
from hashfile.core.events import ErrorEvent, ProgressEvent, ResultEvent
from hashfile.core.file_handle import FileHandle
from hashfile.engine.capabilities import Capabilities
from hashfile.engine.hasher import Hasher
from hashfile.utils.hashing import is_sha256

ProgressCallback = Callable[[ProgressEvent], None]


class HashOrchestrator:
    """
    Turns "a file or a hash" into a hash.

    Files are hashed with a fresh Hasher per call; strings are only
    validated and returned unchanged.
    """

    def __init__(
        self,
        config: Optional[HasherConfig] = None,
        *,
        capabilities: Optional[Capabilities] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._cfg = config or HasherConfig()
        self._caps = capabilities
        self._log = logger or logging.getLogger(__name__)

    def resolve(self, value: Any, progress: Optional[ProgressCallback] = None) -> "Future[str]":
        fut: Future = Future()

        if isinstance(value, FileHandle):
            self._hash_file(value, fut, progress)
        elif isinstance(value, str):
            if is_sha256(value):
                fut.set_result(value)
            else:
                fut.set_exception(NotASha256Hash(f"Parameter string is not a SHA256 hash: {value!r}"))
        else:
            fut.set_exception(
                InvalidParameter(f"Expected a FileHandle or a hash string, got {type(value).__name__}")
            )
        return fut

    def _hash_file(self, file: FileHandle, fut: Future, progress: Optional[ProgressCallback]) -> None:
        hasher = Hasher(self._cfg, capabilities=self._caps, logger=self._log)

        def on_result(event: ResultEvent) -> None:
            if not fut.done():
                fut.set_result(event.digest_hex)
            if progress is not None:
                try:
                    progress(ProgressEvent(1.0, event.file))
                except Exception:
                    self._log.exception("ORCHESTRATOR_PROGRESS_SINK_ERROR file=%s", file.path)

        def on_error(event: ErrorEvent) -> None:
            if not fut.done():
                fut.set_exception(event.error)

        hasher.on("result", on_result)
        hasher.on("error", on_error)
        if progress is not None:
            hasher.on("progress", progress)

        batch = hasher.start(file)

        def on_batch_done(b: Future) -> None:
            if fut.done():
                return
            exc = b.exception()
            if exc is not None:
                fut.set_exception(exc)
            else:
                self._log.error("ORCHESTRATOR_NO_OUTCOME file=%s", file.path)
                fut.set_exception(DigestFailed(f"No result for {file.name}"))

        batch.add_done_callback(on_batch_done)


def hash_file_or_check_hash(
    value: Any,
    progress: Optional[ProgressCallback] = None,
    *,
    config: Optional[HasherConfig] = None,
    capabilities: Optional[Capabilities] = None,
) -> "Future[str]":
    return HashOrchestrator(config, capabilities=capabilities).resolve(value, progress)
