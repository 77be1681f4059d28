"""Pending/completed state machine.

Only two transitions exist: pending -> completed (`mark_done`) and
completed -> pending (`mark_undone`). Completing a recurring task may
append its next occurrence to the list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from errors import InvalidTransitionError, TaskBlockedError
from graph import blocking_deps, position_of
from models import Task
from recurrence import create_next_occurrence, find_existing_occurrence

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    task: Task
    spawned: Optional[Task] = None
    spawned_position: Optional[int] = None
    occurrence_exists: bool = False


def mark_done(tasks: List[Task], index: int, today: Optional[date] = None) -> CompletionResult:
    today = today or date.today()
    task = tasks[index]
    position = index + 1
    if task.completed:
        raise InvalidTransitionError(position, 'completed')

    blocking = blocking_deps(task, tasks)
    if blocking:
        labels = []
        for dep_id in sorted(blocking, key=lambda d: position_of(tasks, d) or 0):
            dep_pos = position_of(tasks, dep_id)
            labels.append(f'#{dep_pos} "{tasks[dep_pos - 1].text}"')
        raise TaskBlockedError(position, blocking, labels)

    task.completed = True
    task.completed_at = today
    task.touch()
    result = CompletionResult(task=task)

    occurrence = create_next_occurrence(task, today)
    if occurrence is None:
        return result
    if find_existing_occurrence(tasks, occurrence) is not None:
        logger.debug('next occurrence of %s already exists; not spawning', task.id)
        result.occurrence_exists = True
        return result
    tasks.append(occurrence)
    result.spawned = occurrence
    result.spawned_position = len(tasks)
    logger.debug('spawned %s from %s due %s', occurrence.id, task.id, occurrence.due_date)
    return result


def mark_undone(tasks: List[Task], index: int) -> Task:
    """Reopen a completed task. Spawned occurrences are left alone."""
    task = tasks[index]
    if not task.completed:
        raise InvalidTransitionError(index + 1, 'pending')
    task.completed = False
    task.completed_at = None
    task.touch()
    return task
