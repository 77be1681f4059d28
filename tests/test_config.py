# tests/test_config.py

from __future__ import annotations

import logging
from pathlib import Path

from config import default_data_file, load_settings
from logging_setup import setup_logging


def test_defaults(monkeypatch, tmp_path) -> None:
    for name in ("TASKS_FILE", "TASKS_LOG_FILE", "TASKS_LOG_LEVEL", "TASKS_LOCK_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    settings = load_settings(use_dotenv=False)
    assert settings.data_file == tmp_path / "tasks" / "tasks.json"
    assert settings.log_file is None
    assert settings.log_level == logging.WARNING
    assert settings.lock_timeout == 10.0


def test_default_data_file_without_xdg(monkeypatch) -> None:
    monkeypatch.delenv("XDG_DATA_HOME", raising=False)
    assert default_data_file() == Path.home() / ".local" / "share" / "tasks" / "tasks.json"


def test_environment_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TASKS_FILE", str(tmp_path / "mine.json"))
    monkeypatch.setenv("TASKS_LOG_FILE", str(tmp_path / "tasks.log"))
    monkeypatch.setenv("TASKS_LOG_LEVEL", "debug")
    monkeypatch.setenv("TASKS_LOCK_TIMEOUT", "2.5")
    settings = load_settings(use_dotenv=False)
    assert settings.data_file == tmp_path / "mine.json"
    assert settings.log_file == tmp_path / "tasks.log"
    assert settings.log_level == logging.DEBUG
    assert settings.lock_timeout == 2.5


def test_invalid_values_fall_back(monkeypatch) -> None:
    monkeypatch.setenv("TASKS_LOG_LEVEL", "chatty")
    monkeypatch.setenv("TASKS_LOCK_TIMEOUT", "soon")
    settings = load_settings(use_dotenv=False)
    assert settings.log_level == logging.WARNING
    assert settings.lock_timeout == 10.0


def test_setup_logging_writes_file(tmp_path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    log_file = tmp_path / "logs" / "tasks.log"
    try:
        setup_logging(console_level=logging.ERROR, log_file=log_file)
        logging.getLogger("storage").debug("hello from the test")
        logging.getLogger("filelock").info("lock noise")
        for handler in root.handlers:
            handler.flush()
        content = log_file.read_text(encoding="utf-8")
        assert "DEBUG storage: hello from the test" in content
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            if handler not in saved[0]:
                handler.close()
        for handler in saved[0]:
            root.addHandler(handler)
        root.setLevel(saved[1])
        logging.captureWarnings(False)
