"""Settings loaded from environment variables (+ optional .env).

Priority: real environment variable > .env entry > default. The .env file
is looked up from the current directory upwards by python-dotenv and never
overrides variables that are already set.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = 'TASKS'
APP_DIR_NAME = 'tasks'
DATA_FILE_NAME = 'tasks.json'


def _k(suffix: str) -> str:
    return f'{ENV_PREFIX}_{suffix}'


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return None
    return Path(raw).expanduser()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_level(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else default


def default_data_file() -> Path:
    base = _env_path('XDG_DATA_HOME') or Path.home() / '.local' / 'share'
    return base / APP_DIR_NAME / DATA_FILE_NAME


@dataclass(frozen=True)
class Settings:
    data_file: Path
    log_file: Optional[Path]
    log_level: int
    lock_timeout: float


def load_settings(use_dotenv: bool = True) -> Settings:
    if use_dotenv:
        load_dotenv(override=False)
    return Settings(
        data_file=_env_path(_k('FILE')) or default_data_file(),
        log_file=_env_path(_k('LOG_FILE')),
        log_level=_env_level(_k('LOG_LEVEL'), logging.WARNING),
        lock_timeout=_env_float(_k('LOCK_TIMEOUT'), 10.0),
    )
