"""
Configuration loader for Workspace Rewind.

This module provides configuration management with:
- Multiple configuration sources (JSON, YAML, TOML, .env files, dicts)
- Environment variable overrides (REWIND_ prefix)
- Schema validation through pydantic
- Priority-ordered merging
"""

import os
import json
import yaml
import toml
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

from .logging import get_logger, setup_logging
from .errors import ConfigurationError


logger = get_logger("workspace-rewind.config")

ENV_PREFIX = "REWIND_"

# Always excluded from snapshots, ahead of the workspace ignore file
DEFAULT_IGNORE_RULES = (".backup", ".operit")


class ConfigSource(BaseModel):
    """Configuration source definition."""
    path: Optional[Path] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    source_type: str = "dict"

    model_config = ConfigDict(arbitrary_types_allowed=True)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "json"
    directory: Path = Field(default_factory=lambda: Path.home() / ".workspace-rewind" / "logs")
    max_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 10
    enable_sentry: bool = False
    sentry_dsn: Optional[str] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v not in ("json", "console"):
            raise ValueError(f"Invalid log format: {v}")
        return v

    def apply(self, app_name: str = "workspace-rewind") -> Dict[str, Any]:
        """Configure process logging from this section."""
        return setup_logging(
            app_name=app_name,
            log_level=self.level,
            log_dir=self.directory,
            enable_json=self.format == "json",
            max_bytes=self.max_size,
            backup_count=self.backup_count,
            enable_sentry=self.enable_sentry,
            sentry_dsn=self.sentry_dsn,
        )


class BackupConfig(BaseModel):
    """Workspace backup layout and tracking rules."""
    backup_dir_name: str = ".backup"
    objects_dir_name: str = "objects"
    ignore_file_name: str = ".gitignore"
    default_ignore_rules: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_RULES))
    extra_text_extensions: List[str] = Field(default_factory=list)
    extra_text_file_names: List[str] = Field(default_factory=list)

    @field_validator('backup_dir_name', 'objects_dir_name', 'ignore_file_name')
    @classmethod
    def validate_name(cls, v):
        """Directory and file names must be a single path segment."""
        if not v or "/" in v or v in (".", ".."):
            raise ValueError(f"Invalid name: {v!r}")
        return v

    @field_validator('default_ignore_rules', 'extra_text_extensions', 'extra_text_file_names', mode='before')
    @classmethod
    def parse_list(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator('extra_text_extensions')
    @classmethod
    def normalize_extensions(cls, v):
        return [ext.lower().lstrip(".") for ext in v]


class RewindConfig(BaseModel):
    """Main Workspace Rewind configuration."""
    app_name: str = "workspace-rewind"
    debug: bool = False

    backup: BackupConfig = Field(default_factory=BackupConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True
    )


class ConfigLoader:
    """Configuration loader with multiple source support."""

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self.env_prefix = env_prefix
        self._sources: List[ConfigSource] = []
        self._config: Optional[RewindConfig] = None

    def add_source(
        self,
        source: Union[str, Path, Dict[str, Any]],
        priority: int = 0,
        source_type: Optional[str] = None
    ) -> None:
        """
        Add configuration source.

        Args:
            source: Configuration source (file path or dict)
            priority: Source priority (higher wins)
            source_type: Source type (auto-detected if None)
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not source_type:
                source_type = self._detect_source_type(path)
            self._sources.append(ConfigSource(
                path=path,
                priority=priority,
                source_type=source_type
            ))
        else:
            self._sources.append(ConfigSource(
                data=source,
                priority=priority,
                source_type="dict"
            ))

        # Lowest priority first so later merges override earlier ones
        self._sources.sort(key=lambda s: s.priority)

    def _detect_source_type(self, path: Path) -> str:
        """Detect configuration file type."""
        suffix = path.suffix.lower()
        if suffix == ".json":
            return "json"
        elif suffix in (".yaml", ".yml"):
            return "yaml"
        elif suffix == ".toml":
            return "toml"
        elif suffix == ".env" or path.name == ".env":
            return "env"
        else:
            raise ConfigurationError(f"Unknown config file type: {suffix}")

    def load(self) -> RewindConfig:
        """
        Load configuration from all sources.

        Returns:
            Merged configuration
        """
        merged_data: Dict[str, Any] = {}

        for source in self._sources:
            try:
                data = self._load_source(source)
            except (OSError, ValueError, yaml.YAMLError, toml.TomlDecodeError) as e:
                logger.error(
                    "failed_to_load_source",
                    source=str(source.path or "dict"),
                    error=str(e)
                )
                if source.priority > 100:
                    raise ConfigurationError(
                        f"Failed to load configuration source {source.path}",
                        cause=e
                    ) from e
                continue
            merged_data = self._deep_merge(merged_data, data)

        merged_data = self._deep_merge(merged_data, self._load_env_vars())

        try:
            self._config = RewindConfig(**merged_data)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                errors.append(f"{field}: {error['msg']}")
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}"
            ) from e

        logger.info("configuration_loaded", sources=len(self._sources))
        return self._config

    def _load_source(self, source: ConfigSource) -> Dict[str, Any]:
        """Load data from a configuration source."""
        if source.path is None:
            return source.data

        if not source.path.exists():
            logger.warning("config_file_not_found", path=str(source.path))
            return {}

        content = source.path.read_text(encoding="utf-8")

        if source.source_type == "json":
            return json.loads(content)
        elif source.source_type == "yaml":
            return yaml.safe_load(content) or {}
        elif source.source_type == "toml":
            return toml.loads(content)
        elif source.source_type == "env":
            return self._nest(self._parse_env_file(content))
        else:
            raise ConfigurationError(f"Unknown source type: {source.source_type}")

    def _parse_env_file(self, content: str) -> Dict[str, str]:
        """Parse .env file format into a flat key/value mapping."""
        result = {}
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            if key.startswith(self.env_prefix):
                key = key[len(self.env_prefix):]
            result[key.lower()] = value.strip().strip('"').strip("'")
        return result

    def _load_env_vars(self) -> Dict[str, Any]:
        """Load configuration from environment variables.

        ``REWIND_BACKUP__BACKUP_DIR_NAME=.snapshots`` maps to
        ``backup.backup_dir_name``; a double underscore separates sections so
        that field names may contain single underscores.
        """
        flat = {
            key[len(self.env_prefix):].lower(): value
            for key, value in os.environ.items()
            if key.startswith(self.env_prefix)
        }
        return self._nest(flat)

    def _nest(self, flat: Dict[str, str]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in flat.items():
            parts = key.split("__")
            current = result
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = self._convert_value(value)
        return result

    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        elif value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        if value.startswith("~"):
            return Path(value).expanduser()

        return value

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def get_config(self) -> RewindConfig:
        """Get current configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._config


def load_config(
    config_paths: Optional[List[Union[str, Path]]] = None,
    extra_config: Optional[Dict[str, Any]] = None
) -> RewindConfig:
    """
    Load configuration from standard locations.

    Args:
        config_paths: Additional configuration paths
        extra_config: Extra configuration to merge

    Returns:
        Loaded configuration
    """
    loader = ConfigLoader()

    default_paths = [
        Path.home() / ".workspace-rewind" / "config.yaml",
        Path.home() / ".workspace-rewind" / "config.json",
        Path("./workspace-rewind.yaml"),
        Path("./workspace-rewind.toml"),
    ]
    for path in default_paths:
        if path.exists():
            loader.add_source(path, priority=10)

    if config_paths:
        for i, path in enumerate(config_paths):
            loader.add_source(path, priority=20 + i)

    if extra_config:
        loader.add_source(extra_config, priority=100)

    return loader.load()


__all__ = [
    'RewindConfig',
    'BackupConfig',
    'LoggingConfig',
    'ConfigLoader',
    'load_config',
]
