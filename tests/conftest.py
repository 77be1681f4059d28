# tests/conftest.py

from __future__ import annotations

from datetime import date
from typing import Callable

import pytest

from collection import TaskCollection
from models import Task
from storage import MemoryStorage

TODAY = date(2026, 2, 10)


@pytest.fixture()
def today() -> date:
    return TODAY


@pytest.fixture()
def make_task() -> Callable[..., Task]:
    """Factory for tasks with sensible defaults; keyword args override fields."""

    def _make(text: str = "task", **fields) -> Task:
        fields.setdefault("created_at", TODAY)
        return Task(text=text, **fields)

    return _make


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def collection(storage: MemoryStorage) -> TaskCollection:
    """Collection over in-memory storage with a fixed 'today'."""
    return TaskCollection(storage, today=lambda: TODAY)
