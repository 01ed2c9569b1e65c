# hashfile/core/events.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from hashfile.core.errors import HashfileError
from hashfile.core.file_handle import FileHandle


class Backend(str, Enum):
    NATIVE = "native"
    WORKER = "worker"
    INCREMENTAL = "incremental"


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class StartEvent:
    file: FileHandle


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    fraction: float             # 0.0 .. 1.0
    file: FileHandle


@dataclass(frozen=True, slots=True)
class ResultEvent:
    digest_hex: str             # 64 lowercase hex chars
    file: FileHandle


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    error: HashfileError
    file: FileHandle


HashEvent = Union[StartEvent, ProgressEvent, ResultEvent, ErrorEvent]
TerminalEvent = Union[ResultEvent, ErrorEvent]

# Backends report non-terminal events through this; terminal ones settle the Future.
Emit = Callable[[HashEvent], None]


@dataclass
class HashJob:
    """
    One file's trip through the queue. Lives only while the file is processed.
    """
    file: FileHandle
    backend: Optional[Backend] = None
    state: JobState = JobState.PENDING
    last_fraction: float = 0.0

    @property
    def settled(self) -> bool:
        return self.state in (JobState.DONE, JobState.FAILED)
