# tests/test_recurrence.py

from __future__ import annotations

from datetime import date

import pytest

from models import Priority, Recurrence
from recurrence import add_months, create_next_occurrence, find_existing_occurrence, next_date


@pytest.mark.parametrize(
    ("pattern", "start", "expected"),
    [
        (Recurrence.DAILY, date(2026, 2, 10), date(2026, 2, 11)),
        (Recurrence.WEEKLY, date(2026, 2, 10), date(2026, 2, 17)),
        (Recurrence.MONTHLY, date(2026, 2, 10), date(2026, 3, 10)),
        (Recurrence.MONTHLY, date(2026, 1, 31), date(2026, 2, 28)),
        (Recurrence.MONTHLY, date(2028, 1, 31), date(2028, 2, 29)),
        (Recurrence.MONTHLY, date(2026, 3, 31), date(2026, 4, 30)),
        (Recurrence.MONTHLY, date(2026, 12, 15), date(2027, 1, 15)),
        (Recurrence.DAILY, date(2026, 12, 31), date(2027, 1, 1)),
    ],
)
def test_next_date(pattern: Recurrence, start: date, expected: date) -> None:
    assert next_date(pattern, start) == expected


def test_add_months_across_years() -> None:
    assert add_months(date(2026, 11, 30), 3) == date(2027, 2, 28)


def test_non_recurring_task_has_no_next_occurrence(make_task) -> None:
    assert create_next_occurrence(make_task(due_date=date(2026, 2, 10))) is None


def test_recurring_task_without_due_date_has_no_next_occurrence(make_task) -> None:
    assert create_next_occurrence(make_task(recurrence=Recurrence.DAILY)) is None


def test_next_occurrence_copies_metadata_but_not_identity(make_task) -> None:
    source = make_task(
        "water plants",
        priority=Priority.HIGH,
        tags=["home"],
        project="House",
        due_date=date(2026, 2, 10),
        recurrence=Recurrence.WEEKLY,
        depends_on=["other"],
        completed=True,
        completed_at=date(2026, 2, 10),
    )
    nxt = create_next_occurrence(source, today=date(2026, 2, 10))

    assert nxt is not None
    assert nxt.id != source.id
    assert nxt.parent_id == source.id
    assert nxt.text == "water plants"
    assert nxt.priority is Priority.HIGH
    assert nxt.tags == ["home"]
    assert nxt.tags is not source.tags
    assert nxt.project == "House"
    assert nxt.recurrence is Recurrence.WEEKLY
    assert nxt.due_date == date(2026, 2, 17)
    assert nxt.depends_on == []
    assert not nxt.completed
    assert nxt.completed_at is None


def test_find_existing_occurrence_by_parent(make_task) -> None:
    source = make_task("a", due_date=date(2026, 2, 10), recurrence=Recurrence.DAILY)
    nxt = create_next_occurrence(source)
    existing = make_task("renamed", due_date=date(2026, 2, 11), parent_id=source.id)
    assert find_existing_occurrence([source, existing], nxt) is existing


def test_find_existing_occurrence_by_text(make_task) -> None:
    source = make_task("a", due_date=date(2026, 2, 10), recurrence=Recurrence.DAILY)
    nxt = create_next_occurrence(source)
    existing = make_task("a", due_date=date(2026, 2, 11))
    assert find_existing_occurrence([source, existing], nxt) is existing


def test_completed_or_differently_dated_tasks_do_not_count(make_task) -> None:
    source = make_task("a", due_date=date(2026, 2, 10), recurrence=Recurrence.DAILY)
    nxt = create_next_occurrence(source)
    done_copy = make_task("a", due_date=date(2026, 2, 11), completed=True)
    other_day = make_task("a", due_date=date(2026, 2, 12), parent_id=source.id)
    assert find_existing_occurrence([source, done_copy, other_day], nxt) is None
