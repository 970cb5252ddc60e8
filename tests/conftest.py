"""
Pytest configuration and shared fixtures for Workspace Rewind tests.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from workspace_rewind.backup import WorkspaceBackupManager
from workspace_rewind.utils.config import BackupConfig
from tests.utils.mock_helpers import InMemoryFileAccess


WORKSPACE = "/ws"


@pytest.fixture
def workspace() -> str:
    return WORKSPACE


@pytest.fixture
def fs() -> InMemoryFileAccess:
    """In-memory filesystem with an empty workspace directory."""
    access = InMemoryFileAccess()
    access.add_directory(WORKSPACE)
    return access


@pytest.fixture
def backup_config() -> BackupConfig:
    return BackupConfig()


@pytest.fixture
def manager(fs: InMemoryFileAccess, backup_config: BackupConfig) -> WorkspaceBackupManager:
    return WorkspaceBackupManager(fs, backup_config)
