"""
Error hierarchy for Workspace Rewind.

Every error carries a stable code, a severity, a category and an
``ErrorContext`` so callers can log or serialize failures uniformly.
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    FILE_ACCESS = "file_access"
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    workspace: Optional[str] = None
    path: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class RewindError(Exception):
    """Base exception for all Workspace Rewind errors."""

    code: str = "REWIND_ERROR"
    default_message: str = "An error occurred in Workspace Rewind"
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message or self.default_message
        self.context = context or ErrorContext()
        self.cause = cause
        super().__init__(self.message)

    def get_suggestions(self) -> List[str]:
        """Get error resolution suggestions."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "category": self.category.value,
                "suggestions": self.get_suggestions(),
                "cause": repr(self.cause) if self.cause else None,
                "context": {
                    "timestamp": self.context.timestamp.isoformat(),
                    "workspace": self.context.workspace,
                    "path": self.context.path,
                    "operation": self.context.operation,
                    "metadata": self.context.metadata
                }
            }
        }


# Configuration

class ConfigurationError(RewindError):
    """Configuration errors."""
    code = "CONFIG_ERROR"
    default_message = "Configuration error"
    category = ErrorCategory.CONFIGURATION

    def get_suggestions(self) -> List[str]:
        return [
            "Check your configuration file syntax",
            "Verify REWIND_* environment variables",
        ]


# File access

class FileAccessError(RewindError):
    """A file-access collaborator call failed."""
    code = "FILE_ACCESS_ERROR"
    default_message = "File access failed"
    category = ErrorCategory.FILE_ACCESS

    def __init__(self, operation: str, path: str, message: Optional[str] = None, **kwargs):
        self.operation = operation
        self.path = path
        context = kwargs.pop("context", None) or ErrorContext(path=path, operation=operation)
        super().__init__(message or f"{operation} failed for {path}", context=context, **kwargs)


class WorkspaceNotFoundError(RewindError):
    """The workspace root is missing or is not a directory."""
    code = "WORKSPACE_NOT_FOUND"
    default_message = "Workspace path does not exist or is not a directory"
    category = ErrorCategory.FILE_ACCESS
    severity = ErrorSeverity.WARNING

    def __init__(self, workspace: str, **kwargs):
        self.workspace = workspace
        super().__init__(
            f"Workspace path does not exist or is not a directory: {workspace}",
            context=ErrorContext(workspace=workspace),
            **kwargs
        )


# Storage

class StorageError(RewindError):
    """Backup storage errors."""
    code = "STORAGE_ERROR"
    default_message = "Backup storage error"
    category = ErrorCategory.STORAGE


class ManifestParseError(StorageError):
    """A manifest document could not be decoded."""
    code = "MANIFEST_PARSE_ERROR"
    default_message = "Backup manifest is unreadable"

    def __init__(self, path: str, **kwargs):
        self.path = path
        super().__init__(
            f"Backup manifest is unreadable: {path}",
            context=ErrorContext(path=path, operation="load_manifest"),
            **kwargs
        )


class ObjectMissingError(StorageError):
    """A manifest references an object that is not in the store."""
    code = "OBJECT_MISSING"
    default_message = "Referenced backup object not found"
    severity = ErrorSeverity.CRITICAL

    def __init__(self, content_hash: str, candidates: List[str], **kwargs):
        self.content_hash = content_hash
        self.candidates = candidates
        super().__init__(
            f"Object file not found for hash {content_hash}",
            context=ErrorContext(
                operation="resolve_object",
                metadata={"candidates": candidates}
            ),
            **kwargs
        )

    def get_suggestions(self) -> List[str]:
        return ["The backup directory may be corrupted; take a fresh snapshot"]


class HashingError(RewindError):
    """Content could not be decoded or hashed."""
    code = "HASHING_ERROR"
    default_message = "Failed to hash file content"
    category = ErrorCategory.INTERNAL


__all__ = [
    'RewindError',
    'ErrorContext',
    'ErrorSeverity',
    'ErrorCategory',
    'ConfigurationError',
    'FileAccessError',
    'WorkspaceNotFoundError',
    'StorageError',
    'ManifestParseError',
    'ObjectMissingError',
    'HashingError',
]
