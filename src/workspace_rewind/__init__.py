"""
Workspace Rewind - incremental backup, restore and rewind for workspaces.

This package snapshots the text files of a workspace directory into a
content-addressed store under ``<workspace>/.backup`` and can roll the
workspace back along its timestamp-ordered snapshot chain. All file I/O goes
through a pluggable ``FileAccess`` collaborator.
"""

__version__ = "0.1.0"

from .access import FileAccess, LocalFileAccess
from .backup import SyncAction, SyncResult, WorkspaceBackupManager, sync_workspace

__all__ = [
    "FileAccess",
    "LocalFileAccess",
    "SyncAction",
    "SyncResult",
    "WorkspaceBackupManager",
    "sync_workspace",
]
