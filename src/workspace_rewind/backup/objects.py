"""Content-addressable object storage for workspace backups

Objects live under ``<backup>/objects/<hash[:2]>/<hash>`` and hold the raw
file content. Older backups stored objects flat as ``objects/<hash>``; those
are still found on read but never written.
"""

import base64
import binascii
import hashlib
from typing import Callable, List, Optional, Sequence

from ..access.base import FileAccess
from ..utils.errors import FileAccessError, HashingError, ObjectMissingError
from ..utils.logging import get_logger
from .paths import join_path

logger = get_logger(__name__)

# (objects_dir, content_hash) -> candidate path
ObjectPathResolver = Callable[[str, str], str]


def hash_bytes(data: bytes) -> str:
    """SHA-256 of ``data`` as lowercase hex."""
    return hashlib.sha256(data).hexdigest()


def decode_base64(content_base64: str) -> bytes:
    try:
        return base64.b64decode(content_base64)
    except (binascii.Error, ValueError) as e:
        raise HashingError("Collaborator returned invalid base64 content", cause=e) from e


def hash_base64(content_base64: str) -> str:
    """Hash base64-encoded content as it would be stored."""
    return hash_bytes(decode_base64(content_base64))


def bucket_prefix(content_hash: str) -> str:
    if len(content_hash) < 2:
        return "__"
    return content_hash[:2]


def sharded_object_path(objects_dir: str, content_hash: str) -> str:
    return join_path(join_path(objects_dir, bucket_prefix(content_hash)), content_hash)


def legacy_object_path(objects_dir: str, content_hash: str) -> str:
    return join_path(objects_dir, content_hash)


DEFAULT_READ_RESOLVERS: Sequence[ObjectPathResolver] = (
    sharded_object_path,
    legacy_object_path,
)


class ObjectStore:
    """Deduplicated, append-only blob store on top of a FileAccess

    Writes always use the sharded layout. Reads try ``read_resolvers`` in
    order, so adding a new layout means prepending a resolver.
    """

    def __init__(
        self,
        access: FileAccess,
        objects_dir: str,
        read_resolvers: Optional[Sequence[ObjectPathResolver]] = None
    ):
        self.access = access
        self.objects_dir = objects_dir
        self.read_resolvers: List[ObjectPathResolver] = list(read_resolvers or DEFAULT_READ_RESOLVERS)

    async def initialize(self) -> None:
        await self.access.make_directory(self.objects_dir, create_parents=True)

    def path_for_write(self, content_hash: str) -> str:
        return sharded_object_path(self.objects_dir, content_hash)

    async def contains(self, content_hash: str) -> bool:
        """Whether the sharded object exists (the legacy layout is not consulted)."""
        result = await self.access.exists(self.path_for_write(content_hash))
        return result.exists

    async def put(self, content_hash: str, content_base64: str) -> bool:
        """Store an object unless it is already present.

        Returns:
            True if the object was written, False on a dedup hit
        """
        if await self.contains(content_hash):
            logger.debug("object_dedup_hit", hash=content_hash)
            return False

        bucket_dir = join_path(self.objects_dir, bucket_prefix(content_hash))
        await self.access.make_directory(bucket_dir, create_parents=True)
        await self.access.write_binary_base64(self.path_for_write(content_hash), content_base64)
        logger.debug("object_stored", hash=content_hash)
        return True

    async def resolve_for_read(self, content_hash: str) -> str:
        """Return the first existing candidate path for ``content_hash``.

        Raises:
            ObjectMissingError: no resolver produced an existing path
        """
        candidates = []
        for resolver in self.read_resolvers:
            candidate = resolver(self.objects_dir, content_hash)
            candidates.append(candidate)
            try:
                result = await self.access.exists(candidate)
            except FileAccessError as e:
                logger.warning("object_probe_failed", path=candidate, error=str(e))
                continue
            if result.exists and not result.is_directory:
                return candidate
        raise ObjectMissingError(content_hash, candidates)

    async def read_base64(self, content_hash: str) -> str:
        path = await self.resolve_for_read(content_hash)
        return await self.access.read_binary_base64(path)

    async def read(self, content_hash: str) -> bytes:
        return decode_base64(await self.read_base64(content_hash))
