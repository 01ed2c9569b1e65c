from __future__ import annotations

import hashlib
import logging
from concurrent.futures import Future
from typing import Any, Callable, Optional

from hashfile.core.errors import DigestFailed, HashfileError
from hashfile.core.events import Backend, Emit, ProgressEvent, ResultEvent, StartEvent
from hashfile.core.file_handle import FileHandle
from hashfile.engine.backends.base import settled
from hashfile.engine.reader import FileReader


class NativeDigest:
    """
    Whole-buffer digest through the platform primitive (OpenSSL sha256).
    """

    kind = Backend.NATIVE

    def __init__(
        self,
        *,
        chunk_size: int = 1024 * 1024,
        primitive: Callable[[bytearray], Any] = hashlib.sha256,
        logger: Optional[logging.Logger] = None,
    ):
        self._chunk_size = int(chunk_size)
        self._primitive = primitive
        self._log = logger or logging.getLogger(__name__)

    def hash(self, file: FileHandle, emit: Emit) -> "Future[ResultEvent]":
        reader = FileReader(
            self._chunk_size,
            on_start=lambda: emit(StartEvent(file)),
            on_progress=lambda tick: emit(ProgressEvent(tick.fraction, file)),
            logger=self._log,
        )
        try:
            data = reader.read(file)
        except HashfileError as e:
            return settled(error=e)

        try:
            raw = self._primitive(data).digest()
        except Exception as e:
            self._log.exception("NATIVE_DIGEST_FAILED file=%s", file.path)
            return settled(error=DigestFailed(f"Digest primitive failed for {file.name}", hint=str(e)))

        return settled(ResultEvent(digest_hex=raw.hex(), file=file))
