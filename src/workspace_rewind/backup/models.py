"""Data model for workspace snapshots"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FileStat:
    """Cheap fingerprint of a file: size and modification time in epoch millis"""
    size: int
    last_modified: int

    def to_dict(self) -> Dict[str, Any]:
        return {"size": self.size, "lastModified": self.last_modified}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileStat':
        return cls(size=int(data["size"]), last_modified=int(data["lastModified"]))


@dataclass
class BackupManifest:
    """A snapshot of the workspace at ``timestamp``

    ``files`` maps relative path to content hash and ``file_stats`` maps the
    same paths to the stat recorded when the hash was taken.
    """
    timestamp: int
    files: Dict[str, str] = field(default_factory=dict)
    file_stats: Dict[str, FileStat] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the on-disk JSON shape"""
        return {
            "timestamp": self.timestamp,
            "files": dict(self.files),
            "fileStats": {path: stat.to_dict() for path, stat in self.file_stats.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BackupManifest':
        """Create from the on-disk JSON shape; unknown keys are ignored"""
        files = data["files"]
        if not isinstance(files, dict):
            raise TypeError("files must be an object")
        return cls(
            timestamp=int(data["timestamp"]),
            files={str(path): str(content_hash) for path, content_hash in files.items()},
            file_stats={
                str(path): FileStat.from_dict(stat)
                for path, stat in (data.get("fileStats") or {}).items()
            },
        )


class SyncAction(str, Enum):
    """Outcome of comparing a requested timestamp with existing snapshots"""
    CREATE_NEW = "create_new"
    REWIND = "rewind"
    NO_OP = "no_op"


@dataclass(frozen=True)
class SyncDecision:
    action: SyncAction
    target_timestamp: Optional[int] = None


@dataclass
class SyncResult:
    """What a ``sync_state`` call did"""
    action: SyncAction
    requested_timestamp: int
    target_timestamp: Optional[int] = None
    pruned: List[int] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)
    aborted_reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.aborted_reason is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "requested_timestamp": self.requested_timestamp,
            "target_timestamp": self.target_timestamp,
            "pruned": list(self.pruned),
            "stats": dict(self.stats),
            "aborted_reason": self.aborted_reason,
        }


class ChangeType(str, Enum):
    """How a workspace file differs from a snapshot"""
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"


@dataclass(frozen=True)
class WorkspaceFileChange:
    path: str
    change_type: ChangeType
    changed_lines: int
