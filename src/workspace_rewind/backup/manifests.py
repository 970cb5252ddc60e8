"""Snapshot manifest persistence"""

import json
import re
from typing import List, Optional

from ..access.base import FileAccess
from ..utils.errors import FileAccessError, ManifestParseError
from ..utils.logging import get_logger
from .models import BackupManifest
from .paths import join_path

logger = get_logger(__name__)

MANIFEST_SUFFIX = ".json"
MANIFEST_STEM = re.compile(r"-?\d+")


def parse_manifest_name(name: str) -> Optional[int]:
    """Timestamp encoded in a manifest file name, or None for other files."""
    if not name.endswith(MANIFEST_SUFFIX):
        return None
    stem = name[:-len(MANIFEST_SUFFIX)]
    if not MANIFEST_STEM.fullmatch(stem):
        return None
    timestamp = int(stem)
    # Canonical form only, so "0100.json" cannot alias "100.json"
    if str(timestamp) != stem:
        return None
    return timestamp


def encode_manifest(manifest: BackupManifest) -> str:
    return json.dumps(manifest.to_dict(), separators=(",", ":"), ensure_ascii=False)


def decode_manifest(content: str, path: str = "<memory>") -> BackupManifest:
    """Decode a manifest document.

    Raises:
        ManifestParseError: the document is blank, not JSON or lacks fields
    """
    if not content or not content.strip():
        raise ManifestParseError(path)
    try:
        return BackupManifest.from_dict(json.loads(content))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise ManifestParseError(path, cause=e) from e


class ManifestStore:
    """Reads, writes, lists and prunes ``<backup_dir>/<timestamp>.json``"""

    def __init__(self, access: FileAccess, backup_dir: str):
        self.access = access
        self.backup_dir = backup_dir

    def manifest_path(self, timestamp: int) -> str:
        return join_path(self.backup_dir, f"{timestamp}{MANIFEST_SUFFIX}")

    async def initialize(self) -> None:
        await self.access.make_directory(self.backup_dir, create_parents=True)

    async def list_timestamps(self) -> List[int]:
        """Sorted timestamps of all manifests; an absent backup dir has none."""
        exists = await self.access.exists(self.backup_dir)
        if not exists.exists or not exists.is_directory:
            return []
        entries = await self.access.list_directory(self.backup_dir)
        timestamps = []
        for entry in entries:
            if entry.is_directory:
                continue
            timestamp = parse_manifest_name(entry.name)
            if timestamp is not None:
                timestamps.append(timestamp)
        return sorted(timestamps)

    async def load(self, timestamp: int) -> BackupManifest:
        """Load one manifest.

        Raises:
            ManifestParseError: the file is unreadable or malformed
        """
        path = self.manifest_path(timestamp)
        try:
            content = await self.access.read_text(path)
        except FileAccessError as e:
            raise ManifestParseError(path, cause=e) from e
        return decode_manifest(content, path)

    async def load_or_none(self, timestamp: int) -> Optional[BackupManifest]:
        """Load one manifest, logging and returning None when it is unusable."""
        try:
            return await self.load(timestamp)
        except ManifestParseError as e:
            logger.warning(
                "manifest_unreadable",
                timestamp=timestamp,
                path=e.path,
                error=str(e.cause) if e.cause else e.message
            )
            return None

    async def save(self, manifest: BackupManifest) -> str:
        path = self.manifest_path(manifest.timestamp)
        await self.access.write_text(path, encode_manifest(manifest))
        return path

    async def delete(self, timestamp: int) -> None:
        await self.access.delete_file(self.manifest_path(timestamp))

    async def prune_from(self, timestamp: int, existing: Optional[List[int]] = None) -> List[int]:
        """Delete every manifest at or after ``timestamp``.

        Returns:
            Timestamps that were deleted
        """
        if existing is None:
            existing = await self.list_timestamps()
        pruned = []
        for ts in sorted(t for t in existing if t >= timestamp):
            try:
                await self.delete(ts)
            except FileAccessError as e:
                logger.error("manifest_delete_failed", timestamp=ts, error=str(e))
                continue
            pruned.append(ts)
        return pruned
