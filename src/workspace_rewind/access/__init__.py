"""
File access layer.

The backup engine only talks to a ``FileAccess`` implementation; the local
adapter here serves plain filesystems.
"""

from .base import DirectoryEntry, ExistsResult, FileAccess, FileInfo
from .local import LocalFileAccess

__all__ = [
    "FileAccess",
    "ExistsResult",
    "FileInfo",
    "DirectoryEntry",
    "LocalFileAccess",
]
