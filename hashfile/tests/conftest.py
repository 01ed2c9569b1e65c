from __future__ import annotations

import threading
from typing import List, Tuple

import pytest

from hashfile.core.file_handle import FileHandle


class EventRecorder:
    """Collects (kind, event) pairs from Hasher callbacks, thread-safe."""
    def __init__(self):
        self.events: List[Tuple[str, object]] = []
        self._lock = threading.Lock()

    def cb(self, kind: str):
        def _record(event):
            with self._lock:
                self.events.append((kind, event))
        return _record

    def attach(self, hasher, kinds=("start", "progress", "result", "error")) -> None:
        for kind in kinds:
            hasher.on(kind, self.cb(kind))

    def kinds_for(self, name: str) -> List[str]:
        return [k for k, e in self.events if e.file.name == name]

    def file_order(self) -> List[str]:
        """File names in order of appearance, consecutive duplicates collapsed."""
        out: List[str] = []
        for _, e in self.events:
            if not out or out[-1] != e.file.name:
                out.append(e.file.name)
        return out


@pytest.fixture
def make_file(tmp_path):
    def _make(name: str, data: bytes) -> FileHandle:
        p = tmp_path / name
        p.write_bytes(data)
        return FileHandle.from_path(p)
    return _make


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()
