from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from hashfile.core.errors import ReadFailed
from hashfile.core.file_handle import FileHandle


@dataclass(frozen=True)
class ReadTick:
    """
    One read-progress notification.

    `buffer` is cumulative: it holds every byte read so far, `loaded` of them.
    """
    buffer: bytearray
    loaded: int
    total: int

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return min(1.0, self.loaded / self.total)


class FileReader:
    """
    Chunked whole-file reader with start / progress notifications.

    Reads the file into one growing buffer and reports a tick after every
    chunk; returns the complete buffer.
    """

    def __init__(
        self,
        chunk_size: int = 1024 * 1024,
        *,
        on_start: Optional[Callable[[], None]] = None,
        on_progress: Optional[Callable[[ReadTick], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        self.chunk_size = int(chunk_size)
        self.on_start = on_start
        self.on_progress = on_progress
        self._log = logger or logging.getLogger(__name__)

    def read(self, file: FileHandle) -> bytearray:
        buf = bytearray()
        try:
            with file.open() as f:
                if self.on_start:
                    self.on_start()
                while True:
                    chunk = f.read(self.chunk_size)
                    if not chunk:
                        break
                    buf += chunk
                    if self.on_progress:
                        self.on_progress(ReadTick(buffer=buf, loaded=len(buf), total=file.size))
        except OSError as e:
            self._log.warning("FILE_READ_FAILED file=%s err=%s", file.path, e)
            raise ReadFailed(
                f"Failed to read {file.name}",
                hint=str(e),
                details={"path": str(file.path)},
            ) from e

        if len(buf) != file.size:
            self._log.warning(
                "FILE_SIZE_CHANGED file=%s expected=%d read=%d",
                file.path,
                file.size,
                len(buf),
            )
        return buf
