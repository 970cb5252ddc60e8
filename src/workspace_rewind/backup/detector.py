"""Stat-based change detection

A file whose size and modification time match the previous snapshot keeps
its previous hash without being read. Everything else is read, hashed and
stored.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..access.base import FileAccess
from ..utils.errors import FileAccessError
from ..utils.logging import get_logger
from .models import FileStat
from .objects import ObjectStore, decode_base64, hash_bytes

logger = get_logger(__name__)

LAST_MODIFIED_FORMATS = ("%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M:%S")


class Decision(str, Enum):
    REUSE = "reuse"
    REHASH = "rehash"


@dataclass(frozen=True)
class DetectionResult:
    """Outcome for one file"""
    content_hash: str
    stat: FileStat
    decision: Decision
    object_written: bool = False
    stat_missing: bool = False


def parse_last_modified(raw: Optional[str]) -> Optional[int]:
    """Parse a ``yyyy-MM-dd HH:mm:ss[.SSS]`` local time into epoch millis."""
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    for fmt in LAST_MODIFIED_FORMATS:
        try:
            parsed = datetime.strptime(raw, fmt)
        except ValueError:
            continue
        # Integer arithmetic keeps millisecond values exact
        seconds = int(parsed.replace(microsecond=0).timestamp())
        return seconds * 1000 + parsed.microsecond // 1000
    return None


def decide(
    current_stat: Optional[FileStat],
    previous_hash: Optional[str],
    previous_stat: Optional[FileStat]
) -> Decision:
    """REUSE only on an exact stat match against a complete previous entry."""
    if (
        previous_hash is not None
        and previous_stat is not None
        and current_stat is not None
        and current_stat.size == previous_stat.size
        and current_stat.last_modified == previous_stat.last_modified
    ):
        return Decision.REUSE
    return Decision.REHASH


class ChangeDetector:
    """Produces the manifest entry for one file"""

    def __init__(self, access: FileAccess, object_store: ObjectStore):
        self.access = access
        self.object_store = object_store

    async def current_stat(self, path: str) -> Optional[FileStat]:
        """Stat from the collaborator, or None if it cannot be obtained."""
        try:
            info = await self.access.info(path)
        except FileAccessError as e:
            logger.debug("file_info_unavailable", path=path, error=str(e))
            return None
        if info.size is None:
            return None
        last_modified = parse_last_modified(info.last_modified)
        if last_modified is None:
            return None
        return FileStat(size=int(info.size), last_modified=last_modified)

    async def process(
        self,
        path: str,
        previous_hash: Optional[str],
        previous_stat: Optional[FileStat]
    ) -> DetectionResult:
        """Reuse or rehash ``path``.

        Raises:
            FileAccessError: content could not be read or the object not stored
            HashingError: content could not be decoded
        """
        current = await self.current_stat(path)

        if decide(current, previous_hash, previous_stat) is Decision.REUSE:
            return DetectionResult(
                content_hash=previous_hash,
                stat=current,
                decision=Decision.REUSE,
            )

        content_base64 = await self.access.read_binary_base64(path)
        content = decode_base64(content_base64)
        content_hash = hash_bytes(content)
        stat = current if current is not None else FileStat(size=len(content), last_modified=0)
        written = await self.object_store.put(content_hash, content_base64)

        return DetectionResult(
            content_hash=content_hash,
            stat=stat,
            decision=Decision.REHASH,
            object_written=written,
            stat_missing=current is None,
        )
