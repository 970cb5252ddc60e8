"""
Test utilities for Workspace Rewind.
"""

from .mock_helpers import BASE_MTIME_MS, InMemoryFileAccess

__all__ = [
    "BASE_MTIME_MS",
    "InMemoryFileAccess",
]
