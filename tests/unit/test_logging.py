"""
Unit tests for logging setup.
"""

import json
import logging

import pytest
import structlog

from workspace_rewind.utils.config import LoggingConfig
from workspace_rewind.utils.logging import JSONFormatter, setup_logging


@pytest.fixture
def restore_logging():
    """Put the root logger and structlog back the way they were."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


def _flush(root):
    for handler in root.handlers:
        handler.flush()


class TestJSONFormatter:
    """Test JSONFormatter."""

    def test_formats_record_with_extra_fields(self):
        record = logging.LogRecord(
            "workspace_rewind.backup", logging.ERROR, __file__, 10, "restore %s failed", ("a.txt",), None
        )
        record.workspace = "/ws"
        record.payload = object()

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "ERROR"
        assert data["logger"] == "workspace_rewind.backup"
        assert data["message"] == "restore a.txt failed"
        assert data["workspace"] == "/ws"
        assert isinstance(data["payload"], str)
        assert "args" not in data


class TestSetupLogging:
    """Test setup_logging."""

    def test_creates_rotating_log_files(self, tmp_path, restore_logging):
        result = setup_logging(log_dir=tmp_path, enable_console=False, log_level="debug")

        logging.getLogger("workspace_rewind.test").error("disk full", extra={"workspace": "/ws"})
        logging.getLogger("workspace_rewind.test").info("just info")
        _flush(restore_logging)

        assert result["log_dir"] == tmp_path
        assert result["config"]["log_level"] == "debug"
        main_lines = (tmp_path / "workspace-rewind.log").read_text().splitlines()
        error_lines = (tmp_path / "workspace-rewind-errors.log").read_text().splitlines()
        errors = [json.loads(line) for line in error_lines]
        assert [e["message"] for e in errors] == ["disk full"]
        assert errors[0]["workspace"] == "/ws"
        assert any(json.loads(line)["message"] == "just info" for line in main_lines)

    def test_console_handler_is_optional(self, tmp_path, restore_logging):
        setup_logging(log_dir=tmp_path, enable_console=False)
        assert not any(type(h).__name__ == "RichHandler" for h in restore_logging.handlers)

        setup_logging(log_dir=tmp_path, enable_console=True)
        assert any(type(h).__name__ == "RichHandler" for h in restore_logging.handlers)

    def test_logging_config_apply(self, tmp_path, restore_logging):
        result = LoggingConfig(level="warning", format="console", directory=tmp_path).apply("rewind-test")

        assert restore_logging.level == logging.WARNING
        assert result["config"]["enable_json"] is False
        assert (tmp_path / "rewind-test.log").exists()
