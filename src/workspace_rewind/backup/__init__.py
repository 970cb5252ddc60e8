"""Workspace backup system

This module provides incremental, content-addressed workspace snapshots with:
- Deduplicated object storage sharded by hash prefix
- JSON snapshot manifests keyed by timestamp
- Stat-based reuse of unchanged file hashes
- Rewind with pruning of superseded snapshots
- Read-only change previews
"""

from .detector import ChangeDetector, Decision, DetectionResult, parse_last_modified
from .diff import estimate_changed_lines
from .ignore import GitIgnoreFilter, IgnoreFilter, TrackedFileLister, is_text_based_file_name, load_ignore_rules
from .manager import WorkspaceBackupManager, decide_sync_action, sync_workspace
from .manifests import ManifestStore
from .models import (
    BackupManifest,
    ChangeType,
    FileStat,
    SyncAction,
    SyncDecision,
    SyncResult,
    WorkspaceFileChange,
)
from .objects import ObjectStore, legacy_object_path, sharded_object_path

__all__ = [
    "WorkspaceBackupManager",
    "decide_sync_action",
    "sync_workspace",
    "ManifestStore",
    "ObjectStore",
    "sharded_object_path",
    "legacy_object_path",
    "ChangeDetector",
    "Decision",
    "DetectionResult",
    "parse_last_modified",
    "estimate_changed_lines",
    "GitIgnoreFilter",
    "IgnoreFilter",
    "TrackedFileLister",
    "is_text_based_file_name",
    "load_ignore_rules",
    "BackupManifest",
    "FileStat",
    "ChangeType",
    "SyncAction",
    "SyncDecision",
    "SyncResult",
    "WorkspaceFileChange",
]
