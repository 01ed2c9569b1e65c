from __future__ import annotations

from concurrent.futures import Future
from typing import Protocol as TypingProtocol

from hashfile.core.events import Backend, Emit, ResultEvent
from hashfile.core.file_handle import FileHandle


class DigestBackend(TypingProtocol):
    """
    One hashing strategy.

    hash() reports start/progress through `emit` and settles the returned
    Future with a ResultEvent or a HashfileError. It never emits terminal
    events itself.
    """
    kind: Backend

    def hash(self, file: FileHandle, emit: Emit) -> "Future[ResultEvent]": ...


def settled(result: ResultEvent | None = None, error: BaseException | None = None) -> Future:
    fut: Future = Future()
    if error is not None:
        fut.set_exception(error)
    else:
        fut.set_result(result)
    return fut
