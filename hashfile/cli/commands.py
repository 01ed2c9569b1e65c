from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from hashfile.api.client import AnchorClient
from hashfile.app.config import HashfileConfig
from hashfile.core.events import ErrorEvent, ProgressEvent, ResultEvent, StartEvent
from hashfile.core.file_handle import FileHandle
from hashfile.engine.capabilities import default_capabilities
from hashfile.engine.hasher import Hasher
from hashfile.engine.orchestrator import HashOrchestrator
from hashfile.interfaces.hash_sink import HashEventSink

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# ---------------- Hash-event sink ----------------

class PrintHashSink(HashEventSink):
    """Print hash events to stdout, sha256sum-style results."""
    def __init__(self, *, show_progress: bool = False):
        self._show_progress = show_progress

    def on_start(self, event: StartEvent) -> None:
        if self._show_progress:
            print(f"START {event.file.name} ({event.file.size} bytes)")

    def on_progress(self, event: ProgressEvent) -> None:
        if self._show_progress:
            print(f"PROGRESS {event.file.name} {event.fraction * 100:.1f}%")

    def on_result(self, event: ResultEvent) -> None:
        print(f"{event.digest_hex}  {event.file.path}")

    def on_error(self, event: ErrorEvent) -> None:
        print(f"ERROR {event.file.path}: {event.error.message}")

# ---------------- Logging ----------------

def configure_logging(*, verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Console handler on the root logger plus an optional file handler (idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()

    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(sh)
    for h in root.handlers:
        if type(h) is logging.StreamHandler:
            h.setLevel(logging.DEBUG if verbose else logging.WARNING)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        target = str(log_file.resolve())
        if not any(
            isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target
            for h in root.handlers
        ):
            fh = logging.FileHandler(log_file, encoding="utf-8", delay=True)
            fh.setLevel(logging.INFO)
            fh.setFormatter(logging.Formatter(_LOG_FORMAT))
            root.addHandler(fh)

    level = logging.DEBUG if verbose else (logging.INFO if log_file is not None else logging.WARNING)
    root.setLevel(level)

# ---------------- Commands ----------------

def cmd_hash(args, cfg: HashfileConfig) -> int:
    files = [FileHandle.from_path(p) for p in args.files]

    hasher = Hasher(cfg.hasher)
    hasher.attach(PrintHashSink(show_progress=args.progress))

    outcomes = hasher.start(files).result()
    failed = sum(1 for o in outcomes if isinstance(o, ErrorEvent))
    if failed:
        print(f"{failed} of {len(outcomes)} file(s) failed.")
        return 1
    return 0


def cmd_check(args, cfg: HashfileConfig) -> int:
    value = args.value
    target = FileHandle.from_path(value) if Path(value).is_file() else value

    print(HashOrchestrator(cfg.hasher).resolve(target).result())
    return 0


def cmd_caps(args, cfg: HashfileConfig) -> int:
    snap = default_capabilities(cfg.hasher).snapshot(timeout=cfg.hasher.probe_timeout_s)
    h = cfg.hasher
    print(f"Native digest:   {'yes' if snap.native_digest_available else 'no'} (below {h.native_max_bytes} bytes)")
    print(f"Worker:          {'yes' if snap.worker_sync_read_available else 'no'}")
    print(f"Software digest: {'yes' if snap.software_digest_available else 'no'} (up to {h.incremental_max_bytes} bytes)")
    return 0


def cmd_tx(args, cfg: HashfileConfig, *, client: Optional[AnchorClient] = None) -> int:
    with client or AnchorClient(cfg.api) as c:
        if args.provider:
            c.set_default_provider(args.provider)
        tx = c.get_transaction(args.tx_id)
    print(f"Transaction:   {tx.tx_id}")
    print(f"Confirmations: {tx.confirmations}")
    print(f"Confirmed on:  {tx.confirmed_on.isoformat() if tx.confirmed_on else '-'}")
    print(f"Block:         {tx.block_hash or '-'}")
    print(f"OP_RETURN:     {tx.op_return or '-'}")
    return 0


def cmd_receipt(args, cfg: HashfileConfig, *, client: Optional[AnchorClient] = None) -> int:
    with client or AnchorClient(cfg.api) as c:
        receipt = c.get_receipt(args.anchor_id)
    print(json.dumps(receipt, indent=2, sort_keys=True))
    return 0


def cmd_anchors(args, cfg: HashfileConfig, *, client: Optional[AnchorClient] = None) -> int:
    with client or AnchorClient(cfg.api) as c:
        page = c.get_anchor_ids(args.hash, size=args.size)
    if not page:
        print("No anchors.")
        return 0
    for anchor_id in page.get("content", []):
        print(anchor_id)
    return 0
