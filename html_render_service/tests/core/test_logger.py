import logging
from logging.handlers import RotatingFileHandler

import pytest

from html_render_service.core import logger as logger_module


@pytest.fixture
def fresh_logging(monkeypatch):
    """Lets setup_logging run again and restores the root logger afterwards."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    monkeypatch.setattr(logger_module, "_logging_initialized", False)
    yield root
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)


def test_console_only_setup(fresh_logging, mock_config):
    config = mock_config({
        "logging": {"level": "debug", "handlers": {"console": {"enabled": True}, "file": {"enabled": False}}}
    })
    logger_module.setup_logging(config)

    assert fresh_logging.level == logging.DEBUG
    assert [type(h) for h in fresh_logging.handlers] == [logging.StreamHandler]
    assert logger_module._logging_initialized is True


def test_file_handler_is_created_under_project_root(fresh_logging, mock_config, tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "PROJECT_ROOT", str(tmp_path))
    config = mock_config({
        "logging": {
            "level": "INFO",
            "handlers": {"file": {"enabled": True, "path": "logs/render.log", "max_bytes": 1024, "backup_count": 2}},
        }
    })
    logger_module.setup_logging(config)

    file_handlers = [h for h in fresh_logging.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == 1024
    assert file_handlers[0].backupCount == 2
    assert (tmp_path / "logs" / "render.log").exists()


def test_missing_logging_section_falls_back_to_basic_config(fresh_logging, mock_config):
    logger_module.setup_logging(mock_config({}))
    assert logger_module._logging_initialized is True


def test_repeated_setup_is_ignored(fresh_logging, mock_config):
    config = mock_config({"logging": {"level": "WARNING", "handlers": {"console": {"enabled": True}}}})
    logger_module.setup_logging(config)
    handlers = fresh_logging.handlers[:]

    logger_module.setup_logging(mock_config({"logging": {"level": "DEBUG"}}))

    assert fresh_logging.handlers == handlers
    assert fresh_logging.level == logging.WARNING


def test_get_logger_returns_named_logger():
    assert logger_module.get_logger("html_render_service.test").name == "html_render_service.test"
