"""Dependency graph over a task list.

An edge `A.depends_on -> B` means B has to be completed before A. The graph
is not stored separately: it is read from every task's `depends_on` on
demand, so there is nothing to keep in sync.

Edges pointing at ids that no longer exist never block (a missing
dependency is not a deadlock).
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from errors import (
    DependencyCycleError,
    DependencyNotFoundError,
    DuplicateDependencyError,
    SelfDependencyError,
    TaskNotFoundError,
)
from models import Task

logger = logging.getLogger(__name__)


def index_by_id(tasks: Iterable[Task]) -> Dict[str, Task]:
    return {t.id: t for t in tasks}


def position_of(tasks: Sequence[Task], task_id: str) -> Optional[int]:
    """1-based position of a task id, or None if it is not in the list."""
    for pos, task in enumerate(tasks, start=1):
        if task.id == task_id:
            return pos
    return None


# -------------------- blocking --------------------
def blocking_deps(task: Task, tasks: Iterable[Task]) -> Set[str]:
    by_id = index_by_id(tasks)
    return {
        dep_id for dep_id in task.depends_on
        if dep_id in by_id and not by_id[dep_id].completed
    }


def is_blocked(task: Task, tasks: Iterable[Task]) -> bool:
    return bool(blocking_deps(task, tasks))


def dependents(task: Task, tasks: Iterable[Task]) -> List[Task]:
    """Tasks that list `task` as a dependency (reverse edges)."""
    return [t for t in tasks if t.id != task.id and task.id in t.depends_on]


# -------------------- cycles --------------------
def would_create_cycle(tasks: Iterable[Task], task_id: str, candidate_dep_id: str) -> bool:
    """True if adding `task_id -> candidate_dep_id` closes a cycle.

    That happens exactly when task_id is already reachable from the
    candidate. Iterative DFS with a visited set: chains are user-built and
    may be arbitrarily deep.
    """
    if task_id == candidate_dep_id:
        return True
    by_id = index_by_id(tasks)
    stack = [candidate_dep_id]
    visited: Set[str] = set()
    while stack:
        current = stack.pop()
        if current == task_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        node = by_id.get(current)
        if node is None:
            continue
        stack.extend(d for d in node.depends_on if d not in visited)
    return False


# -------------------- edge validation --------------------
def check_new_dependency(
    tasks: Sequence[Task],
    task_id: str,
    dep_position: int,
    current: Iterable[str] = (),
) -> str:
    """Validate a new edge from `task_id` to the task at `dep_position`.

    `current` is the dependency set the edge would be added to (existing
    edges plus any already accepted earlier in the same batch). Returns
    the dependency's id. Rules, in order: self-dependency, unknown task,
    duplicate edge, cycle.
    """
    own_position = position_of(tasks, task_id) or len(tasks) + 1
    if dep_position == own_position:
        raise SelfDependencyError(own_position)
    if dep_position < 1 or dep_position > len(tasks):
        raise TaskNotFoundError(dep_position, len(tasks))
    dep_id = tasks[dep_position - 1].id
    if dep_id == task_id:
        raise SelfDependencyError(own_position)
    if dep_id in set(current):
        raise DuplicateDependencyError(own_position, dep_position)
    if would_create_cycle(tasks, task_id, dep_id):
        logger.debug('rejecting edge %s -> %s: cycle', task_id, dep_id)
        raise DependencyCycleError(own_position, dep_position)
    return dep_id


def check_new_dependencies(tasks: Sequence[Task], task_id: str, dep_positions: Iterable[int],
                           existing: Iterable[str] = ()) -> List[str]:
    """Validate a batch of new edges; nothing is written here."""
    accepted: List[str] = []
    current = list(existing)
    for dep_position in dep_positions:
        dep_id = check_new_dependency(tasks, task_id, dep_position, current)
        accepted.append(dep_id)
        current.append(dep_id)
    return accepted


def check_removed_dependencies(tasks: Sequence[Task], task: Task, dep_positions: Iterable[int]) -> List[str]:
    """Resolve edges to remove; removing an edge that does not exist is an error."""
    own_position = position_of(tasks, task.id) or len(tasks) + 1
    removed: List[str] = []
    for dep_position in dep_positions:
        if dep_position < 1 or dep_position > len(tasks):
            raise TaskNotFoundError(dep_position, len(tasks))
        dep_id = tasks[dep_position - 1].id
        if dep_id not in task.depends_on:
            raise DependencyNotFoundError(own_position, dep_position)
        removed.append(dep_id)
    return removed


def drop_edges_to(tasks: Iterable[Task], removed_id: str) -> int:
    """Remove every edge pointing at `removed_id`; returns how many were dropped."""
    dropped = 0
    for task in tasks:
        if removed_id in task.depends_on:
            task.depends_on = [d for d in task.depends_on if d != removed_id]
            task.touch()
            dropped += 1
    return dropped
