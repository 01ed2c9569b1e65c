# hashfile/engine/protocol.py
"""
Worker wire protocol.

Outbound (caller -> worker): a FileHandle, nothing else.
Inbound (worker -> caller), exactly one key per message:

    {"start": True}        hashing of the posted file began
    {"progress": float}    fraction read so far, 0.0 .. 1.0
    {"result": "<hex>"}    terminal, lowercase SHA-256 hex digest
    {"error": "<code>"}    terminal, HashfileError code
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from hashfile.core.errors import UnexpectedWorkerMessage
from hashfile.utils.hashing import is_sha256


@dataclass(frozen=True)
class WorkerStart:
    pass


@dataclass(frozen=True)
class WorkerProgress:
    progress: float


@dataclass(frozen=True)
class WorkerResult:
    result: str


@dataclass(frozen=True)
class WorkerError:
    error: str


WorkerMessage = Union[WorkerStart, WorkerProgress, WorkerResult, WorkerError]


# ---------------- Worker side ----------------
def start_message() -> Dict[str, Any]:
    return {"start": True}


def progress_message(fraction: float) -> Dict[str, Any]:
    return {"progress": float(fraction)}


def result_message(digest_hex: str) -> Dict[str, Any]:
    return {"result": digest_hex}


def error_message(code: str) -> Dict[str, Any]:
    return {"error": str(code)}


# ---------------- Caller side ----------------
def decode_message(data: Any) -> WorkerMessage:
    """Map a raw inbound payload to its message class or raise UnexpectedWorkerMessage."""
    if not isinstance(data, Mapping) or len(data) != 1:
        raise UnexpectedWorkerMessage(f"Unexpected worker message: {data!r}")

    (key, value), = data.items()

    if key == "start" and value is True:
        return WorkerStart()
    if key == "progress" and isinstance(value, (int, float)) and not isinstance(value, bool):
        return WorkerProgress(float(value))
    if key == "result" and is_sha256(value):
        return WorkerResult(value.lower())
    if key == "error" and isinstance(value, str) and value:
        return WorkerError(value)

    raise UnexpectedWorkerMessage(f"Unexpected worker message: {data!r}")
