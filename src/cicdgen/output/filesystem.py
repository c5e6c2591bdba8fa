"""Filesystem boundary used by the Output Materializer.

Everything the materializer does to disk goes through a :class:`FileSystem`
so tests can observe or forbid writes, and so an alternative backend can
be plugged in without touching conflict-resolution logic.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class FileStat:
    """Subset of ``os.stat_result`` the materializer needs."""

    size: int
    mtime: float
    mode: int

    @property
    def owner_writable(self) -> bool:
        return bool(self.mode & 0o200)


@runtime_checkable
class FileSystem(Protocol):
    """Synchronous file operations on absolute paths."""

    def exists(self, path: Path) -> bool: ...

    def is_dir(self, path: Path) -> bool: ...

    def mkdir(self, path: Path) -> None: ...

    def read_text(self, path: Path) -> str: ...

    def write_text(self, path: Path, content: str) -> None: ...

    def copy(self, src: Path, dst: Path) -> None: ...

    def stat(self, path: Path) -> FileStat: ...

    def chmod(self, path: Path, mode: int) -> None: ...

    def is_writable(self, path: Path) -> bool: ...


class LocalFileSystem:
    """:class:`FileSystem` backed by the local disk."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def mkdir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str) -> None:
        path.write_text(content, encoding="utf-8")

    def copy(self, src: Path, dst: Path) -> None:
        shutil.copyfile(src, dst)

    def stat(self, path: Path) -> FileStat:
        st = path.stat()
        return FileStat(size=st.st_size, mtime=st.st_mtime, mode=st.st_mode)

    def chmod(self, path: Path, mode: int) -> None:
        path.chmod(mode)

    def is_writable(self, path: Path) -> bool:
        return os.access(path, os.W_OK)


__all__ = ["FileStat", "FileSystem", "LocalFileSystem"]
