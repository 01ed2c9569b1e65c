from __future__ import annotations

import hashlib
import re
from typing import BinaryIO, Callable, Optional

_SHA256_RE = re.compile(r"^[A-Fa-f0-9]{64}$")

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def is_sha256(value: object) -> bool:
    """True if value is a 64-char hex string (either case)."""
    return isinstance(value, str) and _SHA256_RE.match(value) is not None


def sha256_stream(
    f: BinaryIO,
    *,
    chunk_size: int = 1024 * 1024,
    on_chunk: Optional[Callable[[int], None]] = None,
) -> str:
    """
    Compute SHA256 of a binary stream (memory-safe).
    on_chunk(bytes_read_so_far) is called after every chunk.
    Returns lowercase hex digest.
    """
    h = hashlib.sha256()
    loaded = 0
    for chunk in iter(lambda: f.read(chunk_size), b""):
        h.update(chunk)
        loaded += len(chunk)
        if on_chunk is not None:
            on_chunk(loaded)
    return h.hexdigest()

