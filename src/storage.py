"""Persistence backends and the load/mutate/save transaction.

The core never touches the filesystem: every command runs inside a
Transaction that loads the full list, lets the command mutate it, and saves
the full list back only if the command marked it dirty and finished
without raising.

JsonStorage holds an exclusive file lock for the whole transaction so two
invocations cannot interleave their load/save cycles. Writes go through a
temp file and os.replace.

Legacy records are migrated on read:
- records without an id (or with the older `uuid` key) get one;
- integer entries in depends_on are old 1-based positions and are resolved
  to ids against the current list order; unresolvable ones are dropped.
A migrated file is saved back immediately.
"""
from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ContextManager, Dict, List, Optional

from filelock import FileLock, Timeout

from errors import StorageError
from models import Task, new_task_id

logger = logging.getLogger(__name__)

TaskRecord = Dict[str, Any]


class Storage(ABC):
    @abstractmethod
    def load(self) -> List[Task]:
        """Return the full ordered task list."""

    @abstractmethod
    def save(self, tasks: List[Task]) -> None:
        """Replace the stored list with `tasks`."""

    @abstractmethod
    def location(self) -> str:
        """Human-readable description of where tasks live."""

    def lock(self) -> ContextManager[Any]:
        """Exclusive access for one load/mutate/save cycle."""
        return contextlib.nullcontext()


class MemoryStorage(Storage):
    """Keeps deep copies in memory; used by tests and dry runs."""

    def __init__(self, tasks: Optional[List[Task]] = None):
        self._tasks: List[Task] = copy.deepcopy(tasks or [])
        self.save_count = 0

    def load(self) -> List[Task]:
        return copy.deepcopy(self._tasks)

    def save(self, tasks: List[Task]) -> None:
        self._tasks = copy.deepcopy(tasks)
        self.save_count += 1

    def location(self) -> str:
        return 'memory'

    def __len__(self) -> int:
        return len(self._tasks)


class JsonStorage(Storage):
    def __init__(self, path: Path, lock_timeout: float = 10.0):
        self.path = Path(path)
        self._lock = FileLock(str(self.path) + '.lock', timeout=lock_timeout)

    def lock(self) -> ContextManager[Any]:
        return self._lock

    def location(self) -> str:
        return str(self.path)

    # -------------------- load / migration --------------------
    def load(self) -> List[Task]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f'Failed to parse {self.path} - file may be corrupted ({e})') from e
        except UnicodeDecodeError as e:
            raise StorageError(f'Failed to decode {self.path} as UTF-8 - file may be corrupted ({e})') from e
        except OSError as e:
            raise StorageError(f'Failed to read {self.path}: {e}') from e
        if not isinstance(data, list):
            raise StorageError(f'Unexpected data in {self.path}: expected a list of tasks')

        for pos, raw in enumerate(data, start=1):
            if not isinstance(raw, dict):
                raise StorageError(f'Invalid task record #{pos} in {self.path}: expected an object')
        try:
            migrated = _migrate_records(data)
            tasks = [Task.from_dict(raw) for raw in data]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise StorageError(f'Invalid task record in {self.path}: {e}') from e
        if migrated:
            logger.info('Migrated %d legacy task record(s) in %s', migrated, self.path)
            self.save(tasks)
        return tasks

    # -------------------- save --------------------
    def save(self, tasks: List[Task]) -> None:
        payload = json.dumps([t.to_dict() for t in tasks], indent=2, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                tmp_path = self.path.with_name(self.path.name + '.tmp')
                tmp_path.write_text(payload, encoding='utf-8')
                os.replace(tmp_path, self.path)
        except Timeout as e:
            raise StorageError(f'Could not lock {self.path}; is another instance running?') from e
        except OSError as e:
            raise StorageError(f'Failed to write {self.path} - check file permissions ({e})') from e
        logger.debug('Saved %d task(s) to %s', len(tasks), self.path)

    def size(self) -> Optional[int]:
        return self.path.stat().st_size if self.path.exists() else None


def _migrate_records(records: List[TaskRecord]) -> int:
    """Backfill ids and convert positional dependencies in place."""
    migrated = 0
    for raw in records:
        if not raw.get('id'):
            raw['id'] = raw.pop('uuid', None) or new_task_id()
            migrated += 1
    ids = [raw['id'] for raw in records]
    for raw in records:
        deps = raw.get('depends_on') or []
        if any(isinstance(d, int) for d in deps):
            resolved = []
            for d in deps:
                if isinstance(d, int):
                    if 1 <= d <= len(ids) and ids[d - 1] != raw['id']:
                        resolved.append(ids[d - 1])
                else:
                    resolved.append(d)
            raw['depends_on'] = resolved
            migrated += 1
    return migrated


class Transaction:
    """One command's exclusive load -> mutate -> save cycle.

    Usage:
        with Transaction(storage) as tx:
            tx.tasks.append(...)
            tx.mark_dirty()
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self.tasks: List[Task] = []
        self.dirty = False
        self._lock: Optional[ContextManager[Any]] = None

    def mark_dirty(self) -> None:
        self.dirty = True

    def __enter__(self) -> 'Transaction':
        self._lock = self.storage.lock()
        try:
            self._lock.__enter__()
        except Timeout as e:
            raise StorageError(f'Could not lock {self.storage.location()}; is another instance running?') from e
        try:
            self.tasks = self.storage.load()
        except BaseException:
            self._lock.__exit__(None, None, None)
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None and self.dirty:
                self.storage.save(self.tasks)
        finally:
            assert self._lock is not None
            self._lock.__exit__(exc_type, exc, tb)
