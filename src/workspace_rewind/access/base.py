"""File access contract consumed by the backup engine.

Paths are POSIX-style strings. The implementation may be a local disk, a
process bridge or a remote environment; every call either returns its payload
or raises ``FileAccessError``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class ExistsResult:
    """Result of an existence probe"""
    exists: bool
    is_directory: bool = False


@dataclass(frozen=True)
class FileInfo:
    """Size and formatted modification time of a file"""
    size: int
    last_modified: str


@dataclass(frozen=True)
class DirectoryEntry:
    """One entry of a directory listing"""
    name: str
    is_directory: bool


class FileAccess(ABC):
    """Abstract asynchronous filesystem bridge"""

    @abstractmethod
    async def exists(self, path: str) -> ExistsResult:
        ...

    @abstractmethod
    async def info(self, path: str) -> FileInfo:
        """Return size and ``yyyy-MM-dd HH:mm:ss[.SSS]`` modification time."""

    @abstractmethod
    async def list_directory(self, path: str) -> List[DirectoryEntry]:
        ...

    @abstractmethod
    async def find_files(self, root: str, pattern: str = "*") -> List[str]:
        """Return absolute paths of all files below ``root`` whose name matches."""

    @abstractmethod
    async def read_text(self, path: str) -> str:
        ...

    @abstractmethod
    async def read_binary_base64(self, path: str) -> str:
        ...

    @abstractmethod
    async def write_text(self, path: str, content: str) -> None:
        ...

    @abstractmethod
    async def write_binary_base64(self, path: str, content_base64: str) -> None:
        ...

    @abstractmethod
    async def delete_file(self, path: str) -> None:
        ...

    @abstractmethod
    async def make_directory(self, path: str, create_parents: bool = True) -> None:
        ...
