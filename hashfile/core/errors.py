# hashfile/core/errors.py
from __future__ import annotations

from typing import Dict, Optional, Type


class HashfileError(Exception):
    """
    Base class for all expected operational errors in hashfile.
    """

    #: Stable machine-readable identifier (CLI exit mapping, worker wire protocol)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Call-boundary errors (nothing started, no state mutated)
# ---------------------------------------------------------------------------

class InvalidParameter(HashfileError):
    """
    Wrong input shape or type at the queue / orchestrator boundary.

    Examples:
      - start() called with something that is not a FileHandle or a list of them
      - unknown event name passed to on()
    """
    code = "invalid_parameter"


class NotReady(HashfileError):
    """
    start() called while a batch is still in flight on the same Hasher.
    """
    code = "not_ready"


class ConfigError(HashfileError):
    """
    Configuration file is missing, unreadable or inconsistent.
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Per-file errors (fatal to one job, the batch continues)
# ---------------------------------------------------------------------------

class NoViableBackend(HashfileError):
    """
    No hashing backend matches the current capabilities.
    """
    code = "no_viable_hash_method"


class FileTooLargeWithoutWorker(HashfileError):
    """
    File exceeds the software-digest ceiling and no worker is available.
    """
    code = "file_too_big_to_be_hashed_without_worker"


class ReadFailed(HashfileError):
    """
    The file could not be read (removed, permission denied, I/O error).
    """
    code = "read_failed"


class DigestFailed(HashfileError):
    """
    The digest primitive itself failed.
    """
    code = "digest_failed"


class WorkerCrashed(HashfileError):
    """
    The background worker stopped while a job was outstanding.
    """
    code = "worker_crashed"


class UnexpectedWorkerMessage(HashfileError):
    """
    Worker sent a message that is none of start / progress / result / error.
    """
    code = "unexpected_worker_message"


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------

class NotASha256Hash(HashfileError):
    code = "parameter_string_not_a_sha256_hash"


_ERRORS_BY_CODE: Dict[str, Type[HashfileError]] = {}


def register_error(cls: Type[HashfileError]) -> Type[HashfileError]:
    _ERRORS_BY_CODE[cls.code] = cls
    return cls


for _cls in (
    InvalidParameter,
    NotReady,
    ConfigError,
    NoViableBackend,
    FileTooLargeWithoutWorker,
    ReadFailed,
    DigestFailed,
    WorkerCrashed,
    UnexpectedWorkerMessage,
    NotASha256Hash,
):
    register_error(_cls)


def error_from_code(code: str, message: Optional[str] = None) -> HashfileError:
    """Rebuild an error received as a bare code (worker wire protocol)."""
    cls = _ERRORS_BY_CODE.get(str(code))
    if cls is None:
        return HashfileError(message or f"Unknown error code: {code}", details={"code": code})
    return cls(message or str(code))
