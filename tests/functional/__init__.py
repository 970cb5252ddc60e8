"""
Functional tests for Workspace Rewind.

These tests drive complete snapshot, rewind and preview flows against the
in-memory filesystem and against the local disk.
"""
