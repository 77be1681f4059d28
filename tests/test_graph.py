# tests/test_graph.py

from __future__ import annotations

import pytest

from errors import (
    DependencyCycleError,
    DependencyNotFoundError,
    DuplicateDependencyError,
    SelfDependencyError,
    TaskNotFoundError,
)
from graph import (
    blocking_deps,
    check_new_dependencies,
    check_new_dependency,
    check_removed_dependencies,
    dependents,
    drop_edges_to,
    is_blocked,
    would_create_cycle,
)


@pytest.fixture()
def chain(make_task):
    """a <- b <- c  (c depends on b, b depends on a)."""
    a = make_task("a")
    b = make_task("b", depends_on=[a.id])
    c = make_task("c", depends_on=[b.id])
    return [a, b, c]


# -------------------- blocking --------------------
def test_task_without_dependencies_is_not_blocked(make_task) -> None:
    t = make_task()
    assert not is_blocked(t, [t])
    assert blocking_deps(t, [t]) == set()


def test_pending_dependency_blocks(chain) -> None:
    a, b, _ = chain
    assert is_blocked(b, chain)
    assert blocking_deps(b, chain) == {a.id}


def test_completed_dependency_does_not_block(chain) -> None:
    a, b, _ = chain
    a.completed = True
    assert not is_blocked(b, chain)


def test_missing_dependency_does_not_block(make_task) -> None:
    t = make_task(depends_on=["does-not-exist"])
    assert not is_blocked(t, [t])


def test_blocking_deps_is_exactly_the_incomplete_subset(make_task) -> None:
    deps = [make_task(f"dep {i}") for i in range(3)]
    t = make_task("main", depends_on=[d.id for d in deps])
    tasks = deps + [t]
    deps[1].completed = True
    assert blocking_deps(t, tasks) == {deps[0].id, deps[2].id}
    deps[0].completed = True
    deps[2].completed = True
    assert blocking_deps(t, tasks) == set()
    assert not is_blocked(t, tasks)


def test_dependents_are_reverse_edges(chain) -> None:
    a, b, c = chain
    assert dependents(a, chain) == [b]
    assert dependents(b, chain) == [c]
    assert dependents(c, chain) == []


# -------------------- cycles --------------------
def test_self_edge_is_a_cycle(make_task) -> None:
    t = make_task()
    assert would_create_cycle([t], t.id, t.id)


def test_direct_cycle(chain) -> None:
    a, b, _ = chain
    assert would_create_cycle(chain, a.id, b.id)


def test_transitive_cycle(chain) -> None:
    a, _, c = chain
    assert would_create_cycle(chain, a.id, c.id)


def test_edge_keeping_graph_acyclic(chain) -> None:
    a, _, c = chain
    assert not would_create_cycle(chain, c.id, a.id)


def test_diamond_is_not_a_cycle(make_task) -> None:
    root = make_task("root")
    left = make_task("left", depends_on=[root.id])
    right = make_task("right", depends_on=[root.id])
    top = make_task("top", depends_on=[left.id])
    tasks = [root, left, right, top]
    assert not would_create_cycle(tasks, top.id, right.id)
    assert would_create_cycle(tasks, root.id, top.id)


def test_deep_chain_does_not_hit_recursion_limit(make_task) -> None:
    tasks = [make_task("t0")]
    for i in range(1, 5000):
        tasks.append(make_task(f"t{i}", depends_on=[tasks[-1].id]))
    assert would_create_cycle(tasks, tasks[0].id, tasks[-1].id)
    assert not would_create_cycle(tasks, tasks[-1].id, tasks[0].id)


def test_existing_cycle_in_data_does_not_loop_forever(make_task) -> None:
    a = make_task("a")
    b = make_task("b", depends_on=[a.id])
    a.depends_on = [b.id]
    c = make_task("c")
    assert not would_create_cycle([a, b, c], c.id, a.id)


# -------------------- edge validation --------------------
def test_check_rejects_self_dependency(chain) -> None:
    with pytest.raises(SelfDependencyError):
        check_new_dependency(chain, chain[0].id, 1)


def test_check_rejects_unknown_position(chain) -> None:
    with pytest.raises(TaskNotFoundError):
        check_new_dependency(chain, chain[0].id, 4)
    with pytest.raises(TaskNotFoundError):
        check_new_dependency(chain, chain[0].id, 0)


def test_check_rejects_duplicate(chain) -> None:
    _, b, c = chain
    with pytest.raises(DuplicateDependencyError):
        check_new_dependency(chain, c.id, 2, c.depends_on)


def test_check_rejects_cycle(chain) -> None:
    a = chain[0]
    with pytest.raises(DependencyCycleError):
        check_new_dependency(chain, a.id, 3, a.depends_on)


def test_check_accepts_valid_edge(chain) -> None:
    a, _, c = chain
    assert check_new_dependency(chain, c.id, 1, c.depends_on) == a.id


def test_new_task_may_depend_on_any_existing_task(chain) -> None:
    assert check_new_dependencies(chain, "new-id", [1, 3]) == [chain[0].id, chain[2].id]


def test_new_task_cannot_reference_its_own_future_position(chain) -> None:
    with pytest.raises(SelfDependencyError):
        check_new_dependencies(chain, "new-id", [4])


def test_batch_rejects_repeated_position(chain) -> None:
    c = chain[2]
    with pytest.raises(DuplicateDependencyError):
        check_new_dependencies(chain, c.id, [1, 1], c.depends_on)


def test_remove_requires_existing_edge(chain) -> None:
    _, b, c = chain
    assert check_removed_dependencies(chain, c, [2]) == [b.id]
    with pytest.raises(DependencyNotFoundError):
        check_removed_dependencies(chain, c, [1])


def test_drop_edges_to_removed_task(chain) -> None:
    a, b, c = chain
    assert drop_edges_to(chain, a.id) == 1
    assert b.depends_on == []
    assert c.depends_on == [b.id]
