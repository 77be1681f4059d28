# tests/test_validation.py

from __future__ import annotations

from datetime import date

import pytest

from errors import DueDateInPastError, TaskNotFoundError, ValidationError
from models import Recurrence
from validation import (
    resolve_position,
    validate_due_date,
    validate_project_name,
    validate_recurrence,
    validate_tags,
    validate_text,
)

from conftest import TODAY


def test_resolve_position(make_task) -> None:
    tasks = [make_task("a"), make_task("b")]
    assert resolve_position(tasks, 1) == 0
    assert resolve_position(tasks, 2) == 1


@pytest.mark.parametrize("position", [0, -1, 3])
def test_resolve_position_out_of_range(make_task, position) -> None:
    with pytest.raises(TaskNotFoundError, match="valid range: 1-2"):
        resolve_position([make_task("a"), make_task("b")], position)


def test_resolve_position_empty_list() -> None:
    with pytest.raises(TaskNotFoundError, match="the list is empty"):
        resolve_position([], 1)


def test_validate_text_trims() -> None:
    assert validate_text("  hello \n") == "hello"
    assert validate_text("x" * 500) == "x" * 500


@pytest.mark.parametrize("text", ["", " \t ", "y" * 501])
def test_validate_text_rejects(text) -> None:
    with pytest.raises(ValidationError):
        validate_text(text)


def test_validate_tags_returns_trimmed() -> None:
    assert validate_tags([" work ", "a_b-1"]) == ["work", "a_b-1"]
    assert validate_tags([]) == []


@pytest.mark.parametrize(
    "tags, message",
    [
        ([""], "empty"),
        (["t" * 51], "too long"),
        (["has space"], "Invalid tag format"),
        (["ü"], "Invalid tag format"),
        (["Work", "work"], "Duplicate tag"),
    ],
)
def test_validate_tags_rejects(tags, message) -> None:
    with pytest.raises(ValidationError, match=message):
        validate_tags(tags)


def test_validate_project_name() -> None:
    assert validate_project_name("  Home ") == "Home"
    with pytest.raises(ValidationError):
        validate_project_name("  ")
    with pytest.raises(ValidationError, match="too long"):
        validate_project_name("p" * 101)


def test_validate_due_date() -> None:
    validate_due_date(None, allow_past=False, today=TODAY)
    validate_due_date(TODAY, allow_past=False, today=TODAY)
    validate_due_date(date(2020, 1, 1), allow_past=True, today=TODAY)
    with pytest.raises(DueDateInPastError, match="2026-02-09"):
        validate_due_date(date(2026, 2, 9), allow_past=False, today=TODAY)


def test_validate_recurrence() -> None:
    validate_recurrence(None, None)
    validate_recurrence(Recurrence.DAILY, TODAY)
    with pytest.raises(ValidationError):
        validate_recurrence(Recurrence.WEEKLY, None)
