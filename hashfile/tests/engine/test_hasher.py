from __future__ import annotations

import hashlib
import logging
import threading

import pytest

import hashfile.engine.hasher as hasher_mod
from hashfile.app.config import HasherConfig
from hashfile.core.errors import (
    FileTooLargeWithoutWorker,
    InvalidParameter,
    NoViableBackend,
    NotReady,
    WorkerCrashed,
)
from hashfile.core.events import ErrorEvent, ProgressEvent, ResultEvent, StartEvent
from hashfile.engine.backends.base import settled
from hashfile.engine.backends.worker import WorkerSession
from hashfile.engine.capabilities import Capabilities
from hashfile.engine.hasher import Hasher
from hashfile.utils.hashing import EMPTY_SHA256

CFG = HasherConfig(read_chunk_bytes=64, worker_poll_interval_s=0.01, incremental_max_bytes=1000)

NATIVE = Capabilities.fixed(native=True, worker=True)
WORKER = Capabilities.fixed(native=False, worker=True)
SOFTWARE = Capabilities.fixed(native=False, worker=False)
NOTHING = Capabilities.fixed(native=False, worker=False, software=False)


def sha(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


# ---------------- Registration / validation ----------------

def test_on_rejects_unknown_event():
    with pytest.raises(InvalidParameter):
        Hasher(CFG, capabilities=SOFTWARE).on("end", lambda e: None)


def test_reregistration_overwrites(make_file):
    fh = make_file("a.bin", b"abc")
    first, second = [], []
    h = Hasher(CFG, capabilities=SOFTWARE)
    h.on("result", first.append)
    h.on("result", second.append)

    h.start(fh).result(timeout=10)

    assert first == []
    assert [e.digest_hex for e in second] == [sha(b"abc")]


@pytest.mark.parametrize("bad", ["file.bin", 42, None, ["file.bin"], {"a": 1}])
def test_start_invalid_parameter_keeps_ready(bad):
    h = Hasher(CFG, capabilities=SOFTWARE)
    with pytest.raises(InvalidParameter):
        h.start(bad)
    assert h.is_ready() is True


def test_empty_batch_completes(make_file):
    h = Hasher(CFG, capabilities=SOFTWARE)
    assert h.start([]).result(timeout=10) == []
    assert h.is_ready() is True


# ---------------- Per-backend results ----------------

@pytest.mark.parametrize("caps", [NATIVE, WORKER, SOFTWARE], ids=["native", "worker", "incremental"])
def test_single_file_each_backend(make_file, recorder, caps):
    data = b"0123456789" * 30
    fh = make_file("one.bin", data)
    h = Hasher(CFG, capabilities=caps)
    recorder.attach(h)

    outcomes = h.start(fh).result(timeout=10)

    assert outcomes == [ResultEvent(digest_hex=sha(data), file=fh)]
    kinds = recorder.kinds_for("one.bin")
    assert kinds[0] == "start"
    assert kinds[-1] == "result"
    assert kinds.count("start") == 1
    assert kinds.count("result") == 1


@pytest.mark.parametrize("caps", [NATIVE, WORKER, SOFTWARE], ids=["native", "worker", "incremental"])
def test_empty_file_each_backend(make_file, caps):
    fh = make_file("empty.bin", b"")
    outcomes = Hasher(CFG, capabilities=caps).start([fh]).result(timeout=10)
    assert outcomes[0].digest_hex == EMPTY_SHA256


def test_native_chosen_below_threshold_worker_above(make_file, caplog):
    small = make_file("small.bin", b"s" * 10)
    large = make_file("large.bin", b"l" * 100)
    cfg = HasherConfig(read_chunk_bytes=64, worker_poll_interval_s=0.01, native_max_bytes=50)

    with caplog.at_level(logging.INFO, logger="hashfile"):
        outcomes = Hasher(cfg, capabilities=NATIVE).start([small, large]).result(timeout=10)

    assert [o.digest_hex for o in outcomes] == [sha(b"s" * 10), sha(b"l" * 100)]
    selected = [r.getMessage() for r in caplog.records if r.getMessage().startswith("BACKEND_SELECTED")]
    assert "backend=native" in selected[0]
    assert "backend=worker" in selected[1]


# ---------------- Ordering / progress ----------------

@pytest.mark.parametrize("caps", [NATIVE, WORKER, SOFTWARE], ids=["native", "worker", "incremental"])
def test_batch_events_in_input_order_without_interleaving(make_file, recorder, caps):
    files = [make_file(f"f{i}.bin", bytes([i]) * (100 + 50 * i)) for i in range(3)]
    h = Hasher(CFG, capabilities=caps)
    recorder.attach(h)

    outcomes = h.start(files).result(timeout=10)

    assert [o.file for o in outcomes] == files
    assert recorder.file_order() == ["f0.bin", "f1.bin", "f2.bin"]
    terminal = [e.file.name for k, e in recorder.events if k in ("result", "error")]
    assert terminal == ["f0.bin", "f1.bin", "f2.bin"]


def test_progress_monotonic_and_nothing_after_result(make_file, recorder):
    fh = make_file("p.bin", b"p" * 500)
    h = Hasher(CFG, capabilities=WORKER)
    recorder.attach(h)

    h.start(fh).result(timeout=10)

    kinds = [k for k, _ in recorder.events]
    fractions = [e.fraction for k, e in recorder.events if k == "progress"]
    assert fractions == sorted(fractions)
    assert all(0.0 <= f <= 1.0 for f in fractions)
    assert kinds[-1] == "result"
    assert kinds.count("result") == 1


def test_progress_regressions_are_clamped(make_file, recorder, monkeypatch):
    fh = make_file("c.bin", b"c")

    class JumpyBackend:
        def hash(self, file, emit):
            emit(StartEvent(file))
            for f in (0.5, 0.2, 1.7):
                emit(ProgressEvent(f, file))
            return settled(ResultEvent(digest_hex=EMPTY_SHA256, file=file))

    h = Hasher(CFG, capabilities=SOFTWARE)
    monkeypatch.setattr(h, "_backend_for", lambda kind, session: JumpyBackend())
    recorder.attach(h)

    h.start(fh).result(timeout=10)

    assert [e.fraction for k, e in recorder.events if k == "progress"] == [0.5, 0.5, 1.0]


# ---------------- Readiness ----------------

def test_ready_false_during_batch_true_after(make_file):
    fh = make_file("r.bin", b"r" * 200)
    h = Hasher(CFG, capabilities=WORKER)
    seen = []
    h.on("start", lambda e: seen.append(h.is_ready()))
    h.on("progress", lambda e: seen.append(h.is_ready()))
    h.on("result", lambda e: seen.append(h.is_ready()))

    assert h.is_ready() is True
    h.start(fh).result(timeout=10)

    assert seen and not any(seen)
    assert h.is_ready() is True


def test_reentrant_start_rejected_batch_unaffected(make_file, recorder):
    first = make_file("first.bin", b"1" * 100)
    intruder = make_file("intruder.bin", b"2")
    h = Hasher(CFG, capabilities=SOFTWARE)
    recorder.attach(h, kinds=("progress", "result", "error"))
    rejected = []

    def on_start(event):
        try:
            h.start(intruder)
        except NotReady as e:
            rejected.append(e)

    h.on("start", on_start)

    outcomes = h.start(first).result(timeout=10)

    assert len(rejected) == 1
    assert rejected[0].code == "not_ready"
    assert outcomes == [ResultEvent(digest_hex=sha(b"1" * 100), file=first)]
    assert "intruder.bin" not in recorder.file_order()


def test_not_ready_from_another_thread(make_file):
    fh = make_file("slow.bin", b"s" * 300)
    gate = threading.Event()
    release = threading.Event()
    h = Hasher(CFG, capabilities=SOFTWARE)

    def on_start(event):
        gate.set()
        release.wait(timeout=5)

    h.on("start", on_start)
    batch = h.start(fh)
    assert gate.wait(timeout=5)

    with pytest.raises(NotReady):
        h.start(fh)
    assert h.is_ready() is False

    release.set()
    batch.result(timeout=10)
    assert h.is_ready() is True


def test_hasher_reusable_after_batch(make_file):
    h = Hasher(CFG, capabilities=SOFTWARE)
    a = make_file("a.bin", b"a")
    b = make_file("b.bin", b"b")

    assert h.start(a).result(timeout=10)[0].digest_hex == sha(b"a")
    assert h.start(b).result(timeout=10)[0].digest_hex == sha(b"b")


# ---------------- Failures ----------------

def test_too_large_without_worker_batch_continues(make_file, recorder):
    big = make_file("big.bin", b"B" * 1001)
    small = make_file("small.bin", b"small")
    h = Hasher(CFG, capabilities=SOFTWARE)
    recorder.attach(h)

    outcomes = h.start([big, small]).result(timeout=10)

    assert isinstance(outcomes[0], ErrorEvent)
    assert isinstance(outcomes[0].error, FileTooLargeWithoutWorker)
    assert outcomes[0].file == big
    assert outcomes[1] == ResultEvent(digest_hex=sha(b"small"), file=small)
    assert recorder.kinds_for("big.bin") == ["error"]
    assert recorder.kinds_for("small.bin")[-1] == "result"


def test_no_viable_backend_is_per_file(make_file, recorder):
    files = [make_file("x.bin", b"x"), make_file("y.bin", b"y")]
    h = Hasher(CFG, capabilities=NOTHING)
    recorder.attach(h)

    outcomes = h.start(files).result(timeout=10)

    assert all(isinstance(o.error, NoViableBackend) for o in outcomes)
    assert [e.file.name for k, e in recorder.events if k == "error"] == ["x.bin", "y.bin"]
    assert h.is_ready() is True


def test_unhandled_error_is_logged(make_file, caplog):
    big = make_file("big.bin", b"B" * 1001)
    h = Hasher(CFG, capabilities=SOFTWARE)

    with caplog.at_level(logging.WARNING):
        outcomes = h.start(big).result(timeout=10)

    assert isinstance(outcomes[0], ErrorEvent)
    assert "HASH_FAILED_UNHANDLED" in caplog.text


def test_callback_exception_does_not_stop_batch(make_file, caplog):
    files = [make_file("a.bin", b"a"), make_file("b.bin", b"b")]
    h = Hasher(CFG, capabilities=SOFTWARE)

    def explode(event):
        raise RuntimeError("ui went away")

    h.on("result", explode)

    with caplog.at_level(logging.ERROR):
        outcomes = h.start(files).result(timeout=10)

    assert [o.digest_hex for o in outcomes] == [sha(b"a"), sha(b"b")]
    assert caplog.text.count("HASHER_CALLBACK_ERROR") == 2


# ---------------- Worker session lifetime ----------------

class TrackingSession(WorkerSession):
    def __init__(self, created, **kwargs):
        super().__init__(**kwargs)
        self.terminated = False
        created.append(self)

    def terminate(self) -> None:
        super().terminate()
        self.terminated = True


@pytest.fixture
def sessions(monkeypatch):
    created = []
    monkeypatch.setattr(hasher_mod, "WorkerSession", lambda **kw: TrackingSession(created, **kw))
    return created


def test_one_worker_session_per_batch_terminated_after(make_file, sessions):
    gone = make_file("gone.bin", b"?")
    gone.path.unlink()
    files = [make_file("a.bin", b"a"), gone, make_file("c.bin", b"c")]
    h = Hasher(CFG, capabilities=WORKER)

    outcomes = h.start(files).result(timeout=10)

    assert isinstance(outcomes[1], ErrorEvent)
    assert outcomes[2].digest_hex == sha(b"c")
    assert len(sessions) == 1
    assert sessions[0].terminated is True
    assert sessions[0].is_alive() is False


def test_stalled_worker_session_is_replaced(make_file, sessions, monkeypatch):
    class StalledBackend:
        def hash(self, file, emit):
            return settled(error=WorkerCrashed("Worker stopped responding"))

    h = Hasher(CFG, capabilities=WORKER)
    real_backend_for = h._backend_for
    used = []

    def backend_for(kind, session):
        used.append(session)
        if len(used) == 1:
            return StalledBackend()
        return real_backend_for(kind, session)

    monkeypatch.setattr(h, "_backend_for", backend_for)
    stuck = make_file("stuck.bin", b"s")
    ok = make_file("ok.bin", b"ok")

    outcomes = h.start([stuck, ok]).result(timeout=10)

    assert isinstance(outcomes[0].error, WorkerCrashed)
    assert outcomes[1].digest_hex == sha(b"ok")
    assert len(sessions) == 2
    assert used == sessions
    assert all(s.terminated for s in sessions)


def test_no_worker_session_without_worker_jobs(make_file, monkeypatch):
    def forbidden(**kwargs):
        raise AssertionError("worker session must not be created")

    monkeypatch.setattr(hasher_mod, "WorkerSession", forbidden)

    outcomes = Hasher(CFG, capabilities=SOFTWARE).start(make_file("a.bin", b"a")).result(timeout=10)
    assert outcomes[0].digest_hex == sha(b"a")
