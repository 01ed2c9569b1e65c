from __future__ import annotations

from hashfile.core.errors import NoViableBackend
from hashfile.core.events import Backend
from hashfile.engine.capabilities import CapabilitySnapshot

NATIVE_MAX = 500_000_000
INCREMENTAL_MAX = 50_000_000


def select_backend(
    file_size: int,
    caps: CapabilitySnapshot,
    *,
    native_max: int = NATIVE_MAX,
) -> Backend:
    """
    Pick the backend for one file. Order matters:
    native (below native_max) > worker > software incremental.

    The incremental size ceiling is enforced by that backend, not here.
    """
    if caps.native_digest_available and file_size < native_max:
        return Backend.NATIVE
    if caps.worker_sync_read_available:
        return Backend.WORKER
    if caps.software_digest_available:
        return Backend.INCREMENTAL
    raise NoViableBackend(
        "No viable hash method for this environment.",
        hint="Enable secure_context, worker threads or allow_software_digest.",
        details={"file_size": int(file_size)},
    )
