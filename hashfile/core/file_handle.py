from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from hashfile.core.errors import InvalidParameter


@dataclass(frozen=True)
class FileHandle:
    """
    Read-only reference to a local file.

    The size is captured once when the handle is built; the engine never
    writes through a handle.
    """
    path: Path
    size: int
    name: str

    @classmethod
    def from_path(cls, path: str | os.PathLike) -> "FileHandle":
        p = Path(path)
        try:
            st = p.stat()
        except OSError as e:
            raise InvalidParameter(
                f"Cannot access file: {p}",
                hint=str(e),
                details={"path": str(p)},
            ) from None
        if not p.is_file():
            raise InvalidParameter(f"Not a regular file: {p}", details={"path": str(p)})
        return cls(path=p, size=int(st.st_size), name=p.name)

    def open(self) -> BinaryIO:
        return open(self.path, "rb")

    def __str__(self) -> str:
        return self.name
