"""Field validation and position resolution.

Validators raise ValidationError (or a subclass) on the first violated rule
and return the cleaned value otherwise, so callers can write
`text = validate_text(text)`.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Iterable, List, Optional, Sequence

from errors import DueDateInPastError, TaskNotFoundError, ValidationError
from models import Recurrence, Task

MAX_TEXT_LENGTH = 500
MAX_TAG_LENGTH = 50
MAX_PROJECT_LENGTH = 100
TAG_RE = re.compile(r'^[A-Za-z0-9_-]+$')


def resolve_position(tasks: Sequence[Task], position: int) -> int:
    """Map a 1-based display position to a list index."""
    if position < 1 or position > len(tasks):
        raise TaskNotFoundError(position, len(tasks))
    return position - 1


def validate_text(text: str) -> str:
    trimmed = text.strip()
    if not trimmed:
        raise ValidationError('Task text cannot be empty')
    if len(trimmed) > MAX_TEXT_LENGTH:
        raise ValidationError(
            f'Task text too long (max: {MAX_TEXT_LENGTH} characters, actual: {len(trimmed)} characters)'
        )
    return trimmed


def validate_tags(tags: Iterable[str]) -> List[str]:
    cleaned: List[str] = []
    seen = set()
    for tag in tags:
        trimmed = tag.strip()
        if not trimmed:
            raise ValidationError('Tag cannot be empty')
        if len(trimmed) > MAX_TAG_LENGTH:
            raise ValidationError(
                f'Tag too long (max: {MAX_TAG_LENGTH} characters, actual: {len(trimmed)} characters)'
            )
        if not TAG_RE.match(trimmed):
            raise ValidationError(
                f"Invalid tag format: '{trimmed}' (tags can only contain letters, digits, hyphens and underscores)"
            )
        if trimmed.lower() in seen:
            raise ValidationError(f"Duplicate tag: '{trimmed}' (tags must be unique, case-insensitive)")
        seen.add(trimmed.lower())
        cleaned.append(trimmed)
    return cleaned


def validate_project_name(name: str) -> str:
    trimmed = name.strip()
    if not trimmed:
        raise ValidationError('Project name cannot be empty')
    if len(trimmed) > MAX_PROJECT_LENGTH:
        raise ValidationError(
            f'Project name too long (max: {MAX_PROJECT_LENGTH} characters, actual: {len(trimmed)} characters)'
        )
    return trimmed


def validate_due_date(due: Optional[date], *, allow_past: bool, today: Optional[date] = None) -> None:
    """New tasks may not be due in the past; edits may (to fix overdue tasks)."""
    if due is None or allow_past:
        return
    if due < (today or date.today()):
        raise DueDateInPastError(due)


def validate_recurrence(recurrence: Optional[Recurrence], due: Optional[date]) -> None:
    if recurrence is not None and due is None:
        raise ValidationError('Recurring tasks must have a due date (use --due YYYY-MM-DD)')
