"""Data models for the task tracker.

Exposes the Task dataclass plus the small enums used to describe and filter
tasks. Enum values are lowercase strings because that is what ends up in
the JSON file; changing them breaks existing data.

Identity decision: `Task.id` is a uuid4 hex string assigned once at
creation. The 1-based numbers shown in the terminal are list positions,
recomputed on every command, and are never stored.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


def new_task_id() -> str:
    return uuid.uuid4().hex


class Priority(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @property
    def order(self) -> int:
        """Sort key; lower sorts first."""
        return _PRIORITY_ORDER[self]

    @property
    def letter(self) -> str:
        return self.value[0].upper()


_PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Recurrence(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'

    def __str__(self) -> str:
        return self.value


class StatusFilter(str, Enum):
    PENDING = 'pending'
    DONE = 'done'
    ALL = 'all'


class DueFilter(str, Enum):
    OVERDUE = 'overdue'
    SOON = 'soon'
    WITH_DUE = 'with-due'
    NO_DUE = 'no-due'


class RecurrenceFilter(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    RECURRING = 'recurring'
    NON_RECURRING = 'non-recurring'


class SortBy(str, Enum):
    PRIORITY = 'priority'
    DUE = 'due'
    CREATED = 'created'


DUE_SOON_DAYS = 7


@dataclass
class Task:
    """A single tracked task.

    Fields:
        id: Stable identifier (uuid4 hex), never renumbered.
        text: Trimmed, non-empty description.
        completed / completed_at: completed_at is set exactly while completed.
        depends_on: ids of tasks that must be completed first.
        parent_id: id of the task this one was spawned from by recurrence.
        created_at: creation date, never mutated.
        updated_at: timestamp of the last mutation (None until first edit).
    """
    text: str
    id: str = field(default_factory=new_task_id)
    completed: bool = False
    completed_at: Optional[date] = None
    priority: Priority = Priority.MEDIUM
    tags: List[str] = field(default_factory=list)
    project: Optional[str] = None
    due_date: Optional[date] = None
    recurrence: Optional[Recurrence] = None
    depends_on: List[str] = field(default_factory=list)
    parent_id: Optional[str] = None
    created_at: date = field(default_factory=date.today)
    updated_at: Optional[datetime] = None

    def touch(self) -> None:
        self.updated_at = datetime.now()

    # -------------------- date queries --------------------
    def is_overdue(self, today: Optional[date] = None) -> bool:
        if self.due_date is None or self.completed:
            return False
        return self.due_date < (today or date.today())

    def is_due_soon(self, days: int = DUE_SOON_DAYS, today: Optional[date] = None) -> bool:
        if self.due_date is None or self.completed:
            return False
        days_until = (self.due_date - (today or date.today())).days
        return 0 <= days_until <= days

    # -------------------- filter predicates --------------------
    def matches_status(self, status: StatusFilter) -> bool:
        if status is StatusFilter.PENDING:
            return not self.completed
        if status is StatusFilter.DONE:
            return self.completed
        return True

    def matches_due_filter(self, due_filter: DueFilter, today: Optional[date] = None) -> bool:
        if due_filter is DueFilter.OVERDUE:
            return self.is_overdue(today)
        if due_filter is DueFilter.SOON:
            return self.is_due_soon(today=today)
        if due_filter is DueFilter.WITH_DUE:
            return self.due_date is not None
        return self.due_date is None

    def matches_recurrence_filter(self, recur_filter: RecurrenceFilter) -> bool:
        if recur_filter is RecurrenceFilter.RECURRING:
            return self.recurrence is not None
        if recur_filter is RecurrenceFilter.NON_RECURRING:
            return self.recurrence is None
        return self.recurrence is not None and self.recurrence.value == recur_filter.value

    def has_project(self, name: str) -> bool:
        return self.project is not None and self.project.lower() == name.lower()

    # -------------------- serialization --------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'text': self.text,
            'completed': self.completed,
            'completed_at': _date_str(self.completed_at),
            'priority': self.priority.value,
            'tags': list(self.tags),
            'project': self.project,
            'due_date': _date_str(self.due_date),
            'recurrence': self.recurrence.value if self.recurrence else None,
            'depends_on': list(self.depends_on),
            'parent_id': self.parent_id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> 'Task':
        """Build a Task from a stored record.

        Optional fields default when missing. A missing or empty id is left
        as '' so the storage layer can detect and backfill it.
        """
        recurrence = raw.get('recurrence')
        updated_at = raw.get('updated_at')
        return cls(
            id=str(raw.get('id') or ''),
            text=str(raw['text']),
            completed=bool(raw.get('completed', False)),
            completed_at=_parse_date(raw.get('completed_at')),
            priority=Priority(raw.get('priority') or Priority.MEDIUM.value),
            tags=[str(t) for t in raw.get('tags') or []],
            project=raw.get('project'),
            due_date=_parse_date(raw.get('due_date')),
            recurrence=Recurrence(recurrence) if recurrence else None,
            depends_on=[str(d) for d in raw.get('depends_on') or []],
            parent_id=raw.get('parent_id'),
            created_at=_parse_date(raw.get('created_at')) or date.today(),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"Task(id={self.id[:8]}, text={self.text!r}, completed={self.completed})"


def _date_str(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    # older records stored full timestamps
    return date.fromisoformat(str(value)[:10])
