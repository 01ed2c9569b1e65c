from .incremental import IncrementalDigest
from .native import NativeDigest
from .worker import WorkerDigest, WorkerSession

__all__ = ["IncrementalDigest", "NativeDigest", "WorkerDigest", "WorkerSession"]
