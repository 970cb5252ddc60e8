"""Workspace backup manager

Keeps a linear, timestamp-ordered chain of snapshots for a workspace and
moves the workspace along it:

- a request newer than every snapshot creates a new snapshot
- a request older than some snapshot rewinds the workspace to the first
  snapshot after it and prunes that snapshot and everything newer
- a request matching the newest snapshot does nothing

Calls against one workspace must be serialized by the caller.
"""

import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..access.base import FileAccess
from ..utils.config import BackupConfig
from ..utils.errors import (
    FileAccessError,
    HashingError,
    ManifestParseError,
    ObjectMissingError,
    WorkspaceNotFoundError,
)
from ..utils.logging import get_logger
from .detector import ChangeDetector, Decision
from .diff import count_lines, estimate_changed_lines
from .ignore import GitIgnoreFilter, IgnoreFilter, TrackedFileLister, load_ignore_rules
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
from .objects import ObjectStore, decode_base64, hash_base64, hash_bytes
from .paths import join_path, make_relative_path, parent_path

logger = get_logger(__name__)


def decide_sync_action(existing: Iterable[int], requested: int) -> SyncDecision:
    """Choose what a sync for ``requested`` does given existing snapshots."""
    timestamps = sorted(set(existing))
    newer = [ts for ts in timestamps if ts > requested]
    if newer:
        return SyncDecision(SyncAction.REWIND, newer[0])
    if requested in timestamps:
        return SyncDecision(SyncAction.NO_OP, requested)
    return SyncDecision(SyncAction.CREATE_NEW, requested)


def _decode_text(content: bytes) -> Optional[str]:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return None


class WorkspaceBackupManager:
    """Snapshot, rewind and preview operations for workspaces

    Holds no state between calls other than what is on disk under each
    workspace's backup directory.
    """

    def __init__(
        self,
        access: FileAccess,
        config: Optional[BackupConfig] = None,
        ignore_filter_factory: Callable[[List[str]], IgnoreFilter] = GitIgnoreFilter
    ):
        """Initialize backup manager

        Args:
            access: File access collaborator used for every I/O call
            config: Backup layout and tracking rules
            ignore_filter_factory: Builds the ignore filter from the rule list
        """
        self.access = access
        self.config = config or BackupConfig()
        self.ignore_filter_factory = ignore_filter_factory
        self.lister = TrackedFileLister(
            access,
            extra_text_extensions=self.config.extra_text_extensions,
            extra_text_file_names=self.config.extra_text_file_names,
        )

    def backup_dir(self, workspace_path: str) -> str:
        return join_path(workspace_path, self.config.backup_dir_name)

    def objects_dir(self, workspace_path: str) -> str:
        return join_path(self.backup_dir(workspace_path), self.config.objects_dir_name)

    def _stores(self, workspace_path: str) -> Tuple[ManifestStore, ObjectStore]:
        return (
            ManifestStore(self.access, self.backup_dir(workspace_path)),
            ObjectStore(self.access, self.objects_dir(workspace_path)),
        )

    async def _require_workspace(self, workspace_path: str) -> None:
        try:
            result = await self.access.exists(workspace_path)
        except FileAccessError as e:
            raise WorkspaceNotFoundError(workspace_path, cause=e) from e
        if not result.exists or not result.is_directory:
            raise WorkspaceNotFoundError(workspace_path)

    async def _ignore_filter(self, workspace_path: str) -> IgnoreFilter:
        rules = await load_ignore_rules(
            self.access,
            workspace_path,
            default_rules=self.config.default_ignore_rules,
            ignore_file_name=self.config.ignore_file_name,
        )
        return self.ignore_filter_factory(rules)

    async def list_tracked_files(self, workspace_path: str) -> List[str]:
        """Absolute paths of the files snapshots would track."""
        ignore_filter = await self._ignore_filter(workspace_path)
        return await self.lister.list_tracked(workspace_path, ignore_filter)

    async def list_backups(self, workspace_path: str) -> List[int]:
        """Sorted timestamps of existing snapshots."""
        manifests, _ = self._stores(workspace_path)
        return await manifests.list_timestamps()

    async def load_backup(self, workspace_path: str, timestamp: int) -> Optional[BackupManifest]:
        manifests, _ = self._stores(workspace_path)
        return await manifests.load_or_none(timestamp)

    async def sync_state(self, workspace_path: str, message_timestamp: int) -> SyncResult:
        """Create a snapshot for ``message_timestamp`` or rewind to it.

        Never raises for I/O problems: failures that stop the operation are
        reported through ``SyncResult.aborted_reason``.
        """
        try:
            await self._require_workspace(workspace_path)
        except WorkspaceNotFoundError as e:
            logger.warning("workspace_not_found", workspace=workspace_path)
            return SyncResult(SyncAction.NO_OP, message_timestamp, aborted_reason=e.code)

        manifests, objects = self._stores(workspace_path)
        try:
            await manifests.initialize()
            existing = await manifests.list_timestamps()
        except FileAccessError as e:
            logger.error("backup_dir_unavailable", workspace=workspace_path, error=str(e))
            return SyncResult(SyncAction.NO_OP, message_timestamp, aborted_reason=e.code)

        decision = decide_sync_action(existing, message_timestamp)
        logger.debug(
            "sync_state_called",
            workspace=workspace_path,
            timestamp=message_timestamp,
            existing=existing,
            action=decision.action.value,
        )

        if decision.action is SyncAction.REWIND:
            return await self._rewind(workspace_path, manifests, objects, message_timestamp, decision.target_timestamp, existing)

        if decision.action is SyncAction.NO_OP:
            logger.debug("backup_already_exists", workspace=workspace_path, timestamp=message_timestamp)
            return SyncResult(SyncAction.NO_OP, message_timestamp, target_timestamp=message_timestamp)

        logger.info("creating_backup", workspace=workspace_path, timestamp=message_timestamp)
        return await self._create_backup(workspace_path, manifests, objects, message_timestamp, existing)

    async def _create_backup(
        self,
        workspace_path: str,
        manifests: ManifestStore,
        objects: ObjectStore,
        timestamp: int,
        existing: List[int]
    ) -> SyncResult:
        start = time.monotonic()
        result = SyncResult(SyncAction.CREATE_NEW, timestamp, target_timestamp=timestamp)
        stats = {"files": 0, "reused": 0, "hashed": 0, "objects_written": 0, "stat_missing": 0, "failed": 0}
        result.stats = stats

        previous = await manifests.load_or_none(existing[-1]) if existing else None
        previous_files: Dict[str, str] = previous.files if previous else {}
        previous_stats: Dict[str, FileStat] = previous.file_stats if previous else {}

        try:
            await objects.initialize()
            workspace_files = await self.list_tracked_files(workspace_path)
        except FileAccessError as e:
            logger.error("backup_listing_failed", workspace=workspace_path, error=str(e))
            result.aborted_reason = e.code
            return result

        detector = ChangeDetector(self.access, objects)
        manifest = BackupManifest(timestamp=timestamp)
        stats["files"] = len(workspace_files)

        for file_path in workspace_files:
            relative_path = make_relative_path(workspace_path, file_path)
            if not relative_path:
                continue
            try:
                detected = await detector.process(
                    file_path,
                    previous_files.get(relative_path),
                    previous_stats.get(relative_path),
                )
            except (FileAccessError, HashingError) as e:
                logger.error("backup_file_failed", path=file_path, error=str(e), code=e.code)
                stats["failed"] += 1
                continue

            if detected.decision is Decision.REUSE:
                stats["reused"] += 1
            else:
                stats["hashed"] += 1
            if detected.object_written:
                stats["objects_written"] += 1
            if detected.stat_missing:
                stats["stat_missing"] += 1

            manifest.files[relative_path] = detected.content_hash
            manifest.file_stats[relative_path] = detected.stat

        try:
            await manifests.save(manifest)
        except FileAccessError as e:
            logger.error("manifest_write_failed", workspace=workspace_path, timestamp=timestamp, error=str(e))
            result.aborted_reason = e.code
            return result

        logger.info(
            "workspace_backup_completed",
            workspace=workspace_path,
            timestamp=timestamp,
            elapsed_ms=int((time.monotonic() - start) * 1000),
            **stats
        )
        return result

    async def _rewind(
        self,
        workspace_path: str,
        manifests: ManifestStore,
        objects: ObjectStore,
        requested: int,
        target: int,
        existing: List[int]
    ) -> SyncResult:
        logger.info("rewinding_workspace", workspace=workspace_path, requested=requested, target=target)
        result = SyncResult(SyncAction.REWIND, requested, target_timestamp=target)
        try:
            result.stats = await self._restore_to_state(workspace_path, manifests, objects, target)
        except (ManifestParseError, FileAccessError) as e:
            logger.error("rewind_aborted", workspace=workspace_path, target=target, error=str(e), code=e.code)
            result.aborted_reason = e.code
            return result

        result.pruned = await manifests.prune_from(target, existing)
        logger.info("backups_pruned", workspace=workspace_path, pruned=result.pruned)
        return result

    async def _restore_to_state(
        self,
        workspace_path: str,
        manifests: ManifestStore,
        objects: ObjectStore,
        target: int
    ) -> Dict[str, int]:
        """Make the tracked files of the workspace match snapshot ``target``.

        Raises:
            ManifestParseError: the target snapshot cannot be loaded
            FileAccessError: the tracked files cannot be listed
        """
        manifest = await manifests.load(target)
        workspace_files = await self.list_tracked_files(workspace_path)
        stats = {"deleted": 0, "restored": 0, "unchanged": 0, "missing_objects": 0, "failed": 0}

        for file_path in workspace_files:
            relative_path = make_relative_path(workspace_path, file_path)
            if not relative_path or relative_path in manifest.files:
                continue
            try:
                await self.access.delete_file(file_path)
            except FileAccessError as e:
                logger.error("rewind_delete_failed", path=file_path, error=str(e))
                stats["failed"] += 1
                continue
            logger.info("deleted_untracked_file", path=relative_path)
            stats["deleted"] += 1

        for relative_path, content_hash in sorted(manifest.files.items()):
            target_path = join_path(workspace_path, relative_path)
            if await self._content_matches(target_path, content_hash):
                stats["unchanged"] += 1
                continue
            try:
                content_base64 = await objects.read_base64(content_hash)
                parent = parent_path(target_path)
                if parent:
                    await self.access.make_directory(parent, create_parents=True)
                await self.access.write_binary_base64(target_path, content_base64)
            except ObjectMissingError as e:
                logger.error(
                    "backup_object_missing",
                    path=relative_path,
                    hash=content_hash,
                    candidates=e.candidates,
                )
                stats["missing_objects"] += 1
                continue
            except FileAccessError as e:
                logger.error("restore_file_failed", path=relative_path, error=str(e))
                stats["failed"] += 1
                continue
            logger.info("restored_file", path=relative_path)
            stats["restored"] += 1

        return stats

    async def _content_matches(self, path: str, content_hash: str) -> bool:
        try:
            exists = await self.access.exists(path)
            if not exists.exists or exists.is_directory:
                return False
            return hash_base64(await self.access.read_binary_base64(path)) == content_hash
        except (FileAccessError, HashingError) as e:
            logger.debug("content_check_failed", path=path, error=str(e))
            return False

    async def preview_changes(self, workspace_path: str, target_timestamp: int) -> List[WorkspaceFileChange]:
        """Describe how restoring snapshot ``target_timestamp`` would change the workspace.

        Read-only. Unchanged files are omitted.
        """
        try:
            await self._require_workspace(workspace_path)
        except WorkspaceNotFoundError:
            logger.warning("workspace_not_found", workspace=workspace_path)
            return []

        manifests, objects = self._stores(workspace_path)
        manifest = await manifests.load_or_none(target_timestamp)
        if manifest is None:
            return []

        try:
            workspace_files = await self.list_tracked_files(workspace_path)
        except FileAccessError as e:
            logger.error("preview_listing_failed", workspace=workspace_path, error=str(e))
            return []

        changes: List[WorkspaceFileChange] = []
        for file_path in workspace_files:
            relative_path = make_relative_path(workspace_path, file_path)
            if not relative_path:
                continue
            try:
                current_base64 = await self.access.read_binary_base64(file_path)
                current = decode_base64(current_base64)
            except (FileAccessError, HashingError) as e:
                logger.warning("preview_read_failed", path=file_path, error=str(e))
                continue

            if relative_path not in manifest.files:
                text = _decode_text(current)
                changes.append(WorkspaceFileChange(
                    relative_path, ChangeType.DELETED, count_lines(text) if text is not None else 0
                ))
                continue

            content_hash = manifest.files[relative_path]
            if hash_bytes(current) == content_hash:
                continue
            changed_lines = 0
            stored = await self._read_object_text(objects, content_hash, relative_path)
            text = _decode_text(current)
            if stored is not None and text is not None:
                changed_lines = estimate_changed_lines(text, stored)
            changes.append(WorkspaceFileChange(relative_path, ChangeType.MODIFIED, changed_lines))

        for relative_path, content_hash in sorted(manifest.files.items()):
            target_path = join_path(workspace_path, relative_path)
            try:
                exists = await self.access.exists(target_path)
            except FileAccessError as e:
                logger.warning("preview_probe_failed", path=target_path, error=str(e))
                continue
            if exists.exists:
                continue
            stored = await self._read_object_text(objects, content_hash, relative_path)
            changes.append(WorkspaceFileChange(
                relative_path, ChangeType.ADDED, count_lines(stored) if stored is not None else 0
            ))

        changes.sort(key=lambda change: change.path)
        return changes

    async def _read_object_text(self, objects: ObjectStore, content_hash: str, relative_path: str) -> Optional[str]:
        try:
            return _decode_text(await objects.read(content_hash))
        except ObjectMissingError:
            logger.error("backup_object_missing", path=relative_path, hash=content_hash)
        except (FileAccessError, HashingError) as e:
            logger.warning("object_read_failed", path=relative_path, hash=content_hash, error=str(e))
        return None

    async def preview_changes_for_rewind(self, workspace_path: str, rewind_timestamp: int) -> List[WorkspaceFileChange]:
        """Preview the rewind a ``sync_state(rewind_timestamp)`` call would perform."""
        try:
            existing = await self.list_backups(workspace_path)
        except FileAccessError as e:
            logger.error("backup_dir_unavailable", workspace=workspace_path, error=str(e))
            return []
        decision = decide_sync_action(existing, rewind_timestamp)
        if decision.action is not SyncAction.REWIND:
            return []
        return await self.preview_changes(workspace_path, decision.target_timestamp)


async def sync_workspace(
    access: FileAccess,
    workspace_path: str,
    message_timestamp: int,
    config: Optional[BackupConfig] = None
) -> SyncResult:
    """Run one sync for ``workspace_path`` with a throwaway manager."""
    return await WorkspaceBackupManager(access, config).sync_state(workspace_path, message_timestamp)
