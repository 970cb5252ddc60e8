"""POSIX path helpers for collaborator paths"""

from typing import Optional


def join_path(parent: str, child: str) -> str:
    """Join two path fragments with exactly one separator."""
    p = parent.rstrip("/")
    c = child.lstrip("/")
    return f"/{c}" if not p else f"{p}/{c}"


def make_relative_path(root: str, full_path: str) -> Optional[str]:
    """Return ``full_path`` relative to ``root``, or None when it lies outside.

    A path equal to the root itself yields an empty string.
    """
    normalized_root = root.rstrip("/")
    if not normalized_root:
        return None
    if full_path == normalized_root:
        return ""
    if not full_path.startswith(normalized_root + "/"):
        return None
    return full_path[len(normalized_root):].lstrip("/")


def parent_path(path: str) -> str:
    """Everything before the last separator, or an empty string."""
    head, sep, _ = path.rpartition("/")
    return head if sep else ""


def base_name(path: str) -> str:
    return path.rpartition("/")[2]
