"""Next-occurrence computation for repeating tasks.

Monthly recurrence keeps the day of month where possible and clamps to the
last day of a shorter month (Jan 31 -> Feb 28/29); it never spills into
the month after.
"""
from __future__ import annotations

import calendar
from dataclasses import replace
from datetime import date, timedelta
from typing import Iterable, Optional

from models import Recurrence, Task, new_task_id


def add_months(from_date: date, months: int = 1) -> date:
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(from_date.day, last_day))


def next_date(pattern: Recurrence, from_date: date) -> date:
    if pattern is Recurrence.DAILY:
        return from_date + timedelta(days=1)
    if pattern is Recurrence.WEEKLY:
        return from_date + timedelta(days=7)
    return add_months(from_date, 1)


def create_next_occurrence(task: Task, today: Optional[date] = None) -> Optional[Task]:
    """Clone `task` into its next scheduled occurrence.

    The copy gets a fresh id, points back via parent_id, starts pending
    and carries no dependencies.
    """
    if task.recurrence is None or task.due_date is None:
        return None
    return replace(
        task,
        id=new_task_id(),
        tags=list(task.tags),
        due_date=next_date(task.recurrence, task.due_date),
        completed=False,
        completed_at=None,
        depends_on=[],
        parent_id=task.id,
        created_at=today or date.today(),
        updated_at=None,
    )


def find_existing_occurrence(tasks: Iterable[Task], occurrence: Task) -> Optional[Task]:
    """A pending task already standing in for `occurrence`, if any.

    Matches on the same due date plus either the same parent or the same
    text, so completing again after an undo does not fork the chain.
    """
    for task in tasks:
        if task.completed or task.due_date != occurrence.due_date:
            continue
        if task.parent_id == occurrence.parent_id or task.text == occurrence.text:
            return task
    return None
