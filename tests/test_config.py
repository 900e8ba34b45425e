"""Test settings loading and logging setup."""
import logging
from pathlib import Path

import pytest

from core.config import Settings
from core.logging_setup import setup_logging


def test_defaults():
    settings = Settings.default()
    assert settings.uploads.max_files_per_request == 3
    assert settings.listing.default_page_size == 10
    assert settings.auth.token_ttl_seconds == 30 * 24 * 3600
    assert settings.database_url.startswith("sqlite+aiosqlite")


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/tasks")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("DB_ECHO", "true")
    monkeypatch.setenv("TASKBOARD_TOKEN_SECRET", "s3cret")
    monkeypatch.setenv("TASKBOARD_UPLOAD_DIR", str(tmp_path / "files"))
    monkeypatch.setenv("TASKBOARD_MAX_FILE_SIZE", "2048")
    monkeypatch.setenv("TASKBOARD_MAX_PAGE_SIZE", "not-a-number")
    monkeypatch.setenv("TASKBOARD_LOG_LEVEL", "debug")

    settings = Settings.from_env()
    assert settings.database_url == "postgresql+asyncpg://u:p@db/tasks"
    assert settings.cors_origins == ("http://a.test", "http://b.test")
    assert settings.db_echo is True
    assert settings.auth.token_secret == "s3cret"
    assert settings.uploads.upload_dir == Path(tmp_path / "files")
    assert settings.uploads.max_file_size == 2048
    assert settings.listing.max_page_size == 100
    assert settings.log_level == "DEBUG"


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging.captureWarnings(False)


def _own_handlers(root):
    return [h for h in root.handlers if getattr(h, "_taskboard_handler", False)]


def test_setup_logging_is_idempotent(restore_root_logger):
    root = restore_root_logger
    setup_logging(level="WARNING")
    setup_logging(level="INFO")
    assert len(_own_handlers(root)) == 1
    assert root.level == logging.INFO


def test_setup_logging_writes_file(restore_root_logger, tmp_path):
    setup_logging(level="INFO", log_dir=tmp_path / "logs")
    assert len(_own_handlers(restore_root_logger)) == 2

    logging.getLogger("verticals.tasks.service").info("hello from the service")
    for handler in _own_handlers(restore_root_logger):
        handler.flush()

    text = (tmp_path / "logs" / "taskboard.log").read_text(encoding="utf-8")
    assert "hello from the service" in text
    assert "[-]" in text
