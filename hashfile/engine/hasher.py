# hashfile/engine/hasher.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence

from hashfile.app.config import HasherConfig
from hashfile.core.errors import (
    DigestFailed,
    HashfileError,
    InvalidParameter,
    NotReady,
    WorkerCrashed,
)
from hashfile.core.events import (
    Backend,
    ErrorEvent,
    HashEvent,
    HashJob,
    JobState,
    ProgressEvent,
    StartEvent,
    TerminalEvent,
)
from hashfile.core.file_handle import FileHandle
from hashfile.engine.backends.base import DigestBackend
from hashfile.engine.backends.incremental import IncrementalDigest
from hashfile.engine.backends.native import NativeDigest
from hashfile.engine.backends.worker import WorkerDigest, WorkerSession
from hashfile.engine.capabilities import Capabilities, CapabilitySnapshot, default_capabilities
from hashfile.engine.selector import select_backend
from hashfile.interfaces.hash_sink import HashEventSink

EVENT_NAMES = ("start", "progress", "result", "error")

Callback = Callable[[Any], None]


class Hasher:
    """
    Sequential hashing queue.

    One Hasher runs one batch at a time: start() is rejected with NotReady
    while a batch is in flight. Files are hashed strictly in input order and
    every event of file i is delivered before any event of file i+1.
    Callbacks run on the batch thread, one slot per event kind.
    """

    def __init__(
        self,
        config: Optional[HasherConfig] = None,
        *,
        capabilities: Optional[Capabilities] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._cfg = config or HasherConfig()
        self._caps = capabilities
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._ready = True
        self._callbacks: Dict[str, Optional[Callback]] = {name: None for name in EVENT_NAMES}

        # Resolved on first batch, reused afterwards
        self._snapshot: Optional[CapabilitySnapshot] = None

    # ---------------- Public API ----------------
    def on(self, event: str, callback: Optional[Callback]) -> None:
        """Register the callback for one event kind, replacing any previous one."""
        if event not in self._callbacks:
            raise InvalidParameter(
                f'Invalid event name "{event}"',
                hint=f"Use one of: {', '.join(EVENT_NAMES)}",
            )
        self._callbacks[event] = callback

    def attach(self, sink: HashEventSink) -> None:
        self.on("start", sink.on_start)
        self.on("progress", sink.on_progress)
        self.on("result", sink.on_result)
        self.on("error", sink.on_error)

    def is_ready(self) -> bool:
        return self._ready

    def start(self, files: FileHandle | Sequence[FileHandle]) -> "Future[List[TerminalEvent]]":
        """
        Start hashing a file or an ordered list of files.

        Returns a Future resolved with the terminal event of every file, in
        input order, once the whole batch is done.
        """
        with self._lock:
            if not self._ready:
                raise NotReady("A batch is already being hashed.", hint="Wait until is_ready() is true.")

            batch = self._normalize(files)
            self._ready = False

        done: Future = Future()
        self._log.info("BATCH_START files=%d", len(batch))

        t = threading.Thread(
            target=self._run_batch,
            args=(batch, done),
            name="hashfile-batch",
            daemon=True,
        )
        try:
            t.start()
        except Exception:
            with self._lock:
                self._ready = True
            raise
        return done

    # ---------------- Batch ----------------
    @staticmethod
    def _normalize(files: Any) -> List[FileHandle]:
        if isinstance(files, FileHandle):
            return [files]
        if isinstance(files, (list, tuple)) and all(isinstance(f, FileHandle) for f in files):
            return list(files)
        raise InvalidParameter(
            f"Expected a FileHandle or a list of FileHandles, got {type(files).__name__}",
        )

    def _run_batch(self, batch: List[FileHandle], done: Future) -> None:
        session: Optional[WorkerSession] = None
        outcomes: List[TerminalEvent] = []
        try:
            if self._snapshot is None:
                caps = self._caps or default_capabilities(self._cfg)
                self._snapshot = caps.snapshot(timeout=self._cfg.probe_timeout_s)
                self._log.info("CAPABILITIES %s", self._snapshot)

            for index, file in enumerate(batch):
                job = HashJob(file=file)
                outcome, session = self._run_job(job, session)
                self._log.debug(
                    "JOB_SETTLED index=%d file=%s backend=%s state=%s",
                    index,
                    file.path,
                    job.backend.value if job.backend else "-",
                    job.state.value,
                )
                outcomes.append(outcome)
        except Exception as e:
            self._log.exception("BATCH_ABORTED processed=%d of=%d", len(outcomes), len(batch))
            self._finish(session)
            done.set_exception(e)
            return

        self._finish(session)
        self._log.info(
            "BATCH_DONE files=%d failed=%d",
            len(batch),
            sum(1 for o in outcomes if isinstance(o, ErrorEvent)),
        )
        done.set_result(outcomes)

    def _drop_session(self, session: WorkerSession) -> None:
        try:
            session.terminate()
        except Exception:
            self._log.exception("WORKER_SESSION_TERMINATE_FAILED")

    def _finish(self, session: Optional[WorkerSession]) -> None:
        if session is not None:
            self._drop_session(session)
        with self._lock:
            self._ready = True

    def _run_job(
        self, job: HashJob, session: Optional[WorkerSession]
    ) -> tuple[TerminalEvent, Optional[WorkerSession]]:
        file = job.file
        try:
            job.backend = select_backend(file.size, self._snapshot, native_max=self._cfg.native_max_bytes)
        except HashfileError as e:
            return self._settle_error(job, e), session

        self._log.info("BACKEND_SELECTED file=%s size=%d backend=%s", file.path, file.size, job.backend.value)

        if job.backend is Backend.WORKER and session is None:
            try:
                session = WorkerSession(chunk_size=self._cfg.read_chunk_bytes, logger=self._log)
            except Exception as e:
                self._log.exception("WORKER_SESSION_START_FAILED")
                return self._settle_error(job, WorkerCrashed("Could not start worker", hint=str(e))), None

        backend = self._backend_for(job.backend, session)
        job.state = JobState.RUNNING
        try:
            result = backend.hash(file, lambda ev: self._dispatch(job, ev)).result()
        except HashfileError as e:
            if isinstance(e, WorkerCrashed) and session is not None:
                # Stalled or dead worker; the next WORKER job gets a fresh one.
                self._drop_session(session)
                session = None
            return self._settle_error(job, e), session
        except Exception as e:
            self._log.exception("BACKEND_FAILED file=%s backend=%s", file.path, job.backend.value)
            return self._settle_error(job, DigestFailed(f"Hashing failed for {file.name}", hint=str(e))), session

        job.state = JobState.DONE
        self._invoke("result", result)
        return result, session

    def _backend_for(self, kind: Backend, session: Optional[WorkerSession]) -> DigestBackend:
        if kind is Backend.NATIVE:
            return NativeDigest(chunk_size=self._cfg.read_chunk_bytes, logger=self._log)
        if kind is Backend.WORKER:
            assert session is not None
            return WorkerDigest(
                session,
                poll_interval_s=self._cfg.worker_poll_interval_s,
                idle_timeout_s=self._cfg.worker_idle_timeout_s,
                logger=self._log,
            )
        return IncrementalDigest(
            max_bytes=self._cfg.incremental_max_bytes,
            chunk_size=self._cfg.read_chunk_bytes,
            logger=self._log,
        )

    # ---------------- Events ----------------
    def _settle_error(self, job: HashJob, error: HashfileError) -> ErrorEvent:
        job.state = JobState.FAILED
        event = ErrorEvent(error=error, file=job.file)
        if self._callbacks["error"] is not None:
            self._invoke("error", event)
        else:
            self._log.warning(
                "HASH_FAILED_UNHANDLED file=%s code=%s msg=%s",
                job.file.path,
                error.code,
                error.message,
            )
        return event

    def _dispatch(self, job: HashJob, event: HashEvent) -> None:
        """Forward a backend's non-terminal event to the registered callback."""
        if job.settled:
            self._log.debug("EVENT_AFTER_SETTLE_DROPPED file=%s event=%s", job.file.path, type(event).__name__)
            return

        if isinstance(event, StartEvent):
            self._invoke("start", event)
        elif isinstance(event, ProgressEvent):
            fraction = min(1.0, max(job.last_fraction, float(event.fraction)))
            job.last_fraction = fraction
            if fraction != event.fraction:
                event = replace(event, fraction=fraction)
            self._invoke("progress", event)
        else:
            self._log.warning("UNEXPECTED_BACKEND_EVENT file=%s event=%r", job.file.path, event)

    def _invoke(self, name: str, event: HashEvent) -> None:
        cb = self._callbacks.get(name)
        if cb is None:
            return
        try:
            cb(event)
        except Exception:
            self._log.exception("HASHER_CALLBACK_ERROR event=%s file=%s", name, event.file.path)
