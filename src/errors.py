"""Error types raised by the task tracker core.

Every rejected operation raises exactly one TaskError subclass describing
the violated precondition. The CLI catches TaskError at the command
boundary; anything else is a bug and propagates.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional


class TaskError(Exception):
    """Base class for all user-facing task errors."""


# -------------------- identity / range --------------------
class TaskNotFoundError(TaskError):
    def __init__(self, position: int, total: int):
        self.position = position
        self.total = total
        if total == 0:
            msg = f'Task #{position} does not exist (the list is empty)'
        else:
            msg = f'Task #{position} does not exist (valid range: 1-{total})'
        super().__init__(msg)


# -------------------- state transitions --------------------
class InvalidTransitionError(TaskError):
    def __init__(self, position: int, status: str):
        self.position = position
        self.status = status
        super().__init__(f'Task #{position} is already marked as {status}')


# -------------------- dependencies --------------------
class DependencyError(TaskError):
    pass


class SelfDependencyError(DependencyError):
    def __init__(self, position: int):
        self.position = position
        super().__init__(f'Task #{position} cannot depend on itself')


class DependencyCycleError(DependencyError):
    def __init__(self, position: int, dep_position: int):
        self.position = position
        self.dep_position = dep_position
        super().__init__(
            f'Dependency cycle detected: task #{dep_position} already depends '
            f'(directly or indirectly) on task #{position}'
        )


class DuplicateDependencyError(DependencyError):
    def __init__(self, position: int, dep_position: int):
        self.position = position
        self.dep_position = dep_position
        super().__init__(f'Task #{position} already depends on task #{dep_position}')


class DependencyNotFoundError(DependencyError):
    def __init__(self, position: int, dep_position: int):
        self.position = position
        self.dep_position = dep_position
        super().__init__(f'Task #{position} does not depend on task #{dep_position}')


class TaskBlockedError(DependencyError):
    """Completion rejected; `blocking_ids` names the incomplete dependencies."""

    def __init__(self, position: int, blocking_ids: Iterable[str], labels: Optional[List[str]] = None):
        self.position = position
        self.blocking_ids = sorted(blocking_ids)
        detail = ', '.join(labels) if labels else ', '.join(self.blocking_ids)
        super().__init__(f'Task #{position} is blocked by pending dependencies: {detail}')


# -------------------- field validation --------------------
class ValidationError(TaskError):
    pass


class DueDateInPastError(ValidationError):
    def __init__(self, due: date):
        self.due = due
        super().__init__(f'Due date cannot be in the past: {due.isoformat()}')


# -------------------- collection queries --------------------
class EmptyResultError(TaskError):
    pass


# -------------------- storage --------------------
class StorageError(TaskError):
    pass
