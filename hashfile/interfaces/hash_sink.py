from __future__ import annotations

from typing import Protocol

from hashfile.core.events import ErrorEvent, ProgressEvent, ResultEvent, StartEvent


class HashEventSink(Protocol):
    def on_start(self, event: StartEvent) -> None: ...
    def on_progress(self, event: ProgressEvent) -> None: ...
    def on_result(self, event: ResultEvent) -> None: ...
    def on_error(self, event: ErrorEvent) -> None: ...
