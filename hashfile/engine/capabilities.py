from __future__ import annotations

import hashlib
import logging
import queue
import tempfile
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from hashfile.app.config import HasherConfig

_log = logging.getLogger(__name__)

_cache_lock = threading.Lock()
_cache: Dict[Tuple[bool, bool], "Capabilities"] = {}


@dataclass(frozen=True)
class CapabilitySnapshot:
    """Capabilities with the worker probe resolved. Safe to share across threads."""
    native_digest_available: bool
    worker_sync_read_available: bool
    software_digest_available: bool = True


@dataclass(frozen=True)
class Capabilities:
    native_digest_available: bool
    worker_sync_read_available: "Future[bool]"
    software_digest_available: bool = True

    def snapshot(self, timeout: Optional[float] = None) -> CapabilitySnapshot:
        """Resolve the worker probe. Never raises: timeout or failure -> False."""
        try:
            worker_ok = bool(self.worker_sync_read_available.result(timeout=timeout))
        except Exception:
            _log.warning("WORKER_PROBE_UNRESOLVED timeout_s=%s", timeout)
            worker_ok = False
        return CapabilitySnapshot(
            native_digest_available=self.native_digest_available,
            worker_sync_read_available=worker_ok,
            software_digest_available=self.software_digest_available,
        )

    @classmethod
    def fixed(cls, *, native: bool, worker: bool, software: bool = True) -> "Capabilities":
        """Pre-resolved capabilities (tests, forced strategies)."""
        fut: Future = Future()
        fut.set_result(bool(worker))
        return cls(
            native_digest_available=bool(native),
            worker_sync_read_available=fut,
            software_digest_available=bool(software),
        )


def native_primitive_available() -> bool:
    """True if hashlib's sha256 is the OpenSSL-backed (accelerated) implementation."""
    try:
        return type(hashlib.sha256()).__module__ == "_hashlib"
    except Exception:
        return False


def _sync_read_supported() -> bool:
    with tempfile.TemporaryFile() as f:
        f.write(b"\x00")
        f.flush()
        f.seek(0)
        return f.read(1) == b"\x00"


def _probe_worker_main(inbox: "queue.Queue[object]", fut: Future) -> None:
    inbox.get()
    try:
        ok = _sync_read_supported()
    except Exception:
        ok = False
    if not fut.done():
        fut.set_result(ok)


def probe_worker_sync_read() -> "Future[bool]":
    """
    Start a throwaway worker and ask it whether synchronous reads work there.
    Resolves False on any failure, including failure to start the thread.
    """
    fut: Future = Future()
    inbox: "queue.Queue[object]" = queue.Queue()
    try:
        t = threading.Thread(
            target=_probe_worker_main,
            args=(inbox, fut),
            name="hashfile-probe",
            daemon=True,
        )
        t.start()
        inbox.put({})
    except Exception:
        _log.warning("WORKER_PROBE_FAILED", exc_info=True)
        if not fut.done():
            fut.set_result(False)
    return fut


def probe(config: Optional[HasherConfig] = None) -> Capabilities:
    cfg = config or HasherConfig()
    native = native_primitive_available() and bool(cfg.secure_context)
    caps = Capabilities(
        native_digest_available=native,
        worker_sync_read_available=probe_worker_sync_read(),
        software_digest_available=bool(cfg.allow_software_digest),
    )
    _log.info(
        "CAPABILITIES_PROBED native=%s secure_context=%s software=%s",
        native,
        cfg.secure_context,
        cfg.allow_software_digest,
    )
    return caps


def default_capabilities(config: Optional[HasherConfig] = None) -> Capabilities:
    """Probe once per process (per secure-context / software setting)."""
    cfg = config or HasherConfig()
    key = (bool(cfg.secure_context), bool(cfg.allow_software_digest))
    with _cache_lock:
        caps = _cache.get(key)
        if caps is None:
            caps = probe(cfg)
            _cache[key] = caps
        return caps
