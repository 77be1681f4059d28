"""Task collection: every command the tracker supports.

Each mutating method is one transaction: load the whole list, validate
everything the command needs, apply the change, save. A command that raises
leaves the stored list untouched.

Tasks are addressed by their 1-based position in the current list order;
positions are resolved to stable ids at the start of each command.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import graph
import lifecycle
from errors import EmptyResultError, ValidationError
from models import (
    DueFilter,
    Priority,
    Recurrence,
    RecurrenceFilter,
    SortBy,
    StatusFilter,
    Task,
)
from storage import Storage, Transaction
from tags import Normalization, collect_existing_tags, normalize_tags
from validation import (
    resolve_position,
    validate_due_date,
    validate_project_name,
    validate_recurrence,
    validate_tags,
    validate_text,
)

logger = logging.getLogger(__name__)

IndexedTask = Tuple[int, Task]

ACTIVITY_DAYS = 7


@dataclass
class AddResult:
    position: int
    task: Task
    normalizations: List[Normalization] = field(default_factory=list)


@dataclass
class EditResult:
    position: int
    changes: List[str] = field(default_factory=list)
    normalizations: List[Normalization] = field(default_factory=list)


@dataclass
class ListResult:
    title: str
    entries: List[IndexedTask]
    all_tasks: List[Task]


@dataclass
class DependencyEntry:
    task_id: str
    position: Optional[int]
    task: Optional[Task]


@dataclass
class DepsView:
    position: int
    task: Task
    dependencies: List[DependencyEntry]
    dependents: List[IndexedTask]
    blocking_positions: List[int]

    @property
    def blocked(self) -> bool:
        return bool(self.blocking_positions)


@dataclass
class Stats:
    total: int
    completed: int
    pending: int
    overdue: int
    due_soon: int
    blocked: int
    by_priority: List[Tuple[Priority, int, int, int]]
    by_project: List[Tuple[str, int, int]]
    without_project: int
    activity: List[Tuple[date, int]]

    @property
    def percent_done(self) -> int:
        return percent(self.completed, self.total)


def percent(part: int, total: int) -> int:
    return (part * 100) // total if total else 0


class TaskCollection:
    def __init__(self, storage: Storage, today: Optional[Callable[[], date]] = None):
        self.storage = storage
        self._today = today or date.today

    @property
    def today(self) -> date:
        return self._today()

    def all_tasks(self) -> List[Task]:
        with Transaction(self.storage) as tx:
            return tx.tasks

    # -------------------- add --------------------
    def add(
        self,
        text: str,
        *,
        priority: Priority = Priority.MEDIUM,
        tags: Iterable[str] = (),
        project: Optional[str] = None,
        due: Optional[date] = None,
        recurrence: Optional[Recurrence] = None,
        depends_on: Iterable[int] = (),
    ) -> AddResult:
        text = validate_text(text)
        tags = validate_tags(tags)
        if project is not None:
            project = validate_project_name(project)
        validate_due_date(due, allow_past=False, today=self.today)
        validate_recurrence(recurrence, due)

        with Transaction(self.storage) as tx:
            task = Task(text=text, priority=priority, project=project, due_date=due,
                        recurrence=recurrence, created_at=self.today)
            task.depends_on = graph.check_new_dependencies(tx.tasks, task.id, depends_on)
            task.tags, normalizations = normalize_tags(tags, collect_existing_tags(tx.tasks))
            tx.tasks.append(task)
            tx.mark_dirty()
            logger.debug('added %s with %d dependencies', task.id, len(task.depends_on))
            return AddResult(len(tx.tasks), task, normalizations)

    # -------------------- edit --------------------
    def edit(
        self,
        position: int,
        *,
        text: Optional[str] = None,
        priority: Optional[Priority] = None,
        add_tags: Sequence[str] = (),
        remove_tags: Sequence[str] = (),
        clear_tags: bool = False,
        project: Optional[str] = None,
        clear_project: bool = False,
        due: Optional[date] = None,
        clear_due: bool = False,
        add_deps: Sequence[int] = (),
        remove_deps: Sequence[int] = (),
        clear_deps: bool = False,
    ) -> EditResult:
        if clear_tags and (add_tags or remove_tags):
            raise ValidationError('--clear-tags cannot be combined with adding or removing tags')
        if clear_project and project is not None:
            raise ValidationError('--clear-project cannot be combined with --project')
        if clear_due and due is not None:
            raise ValidationError('--clear-due cannot be combined with --due')
        if clear_deps and (add_deps or remove_deps):
            raise ValidationError('--clear-deps cannot be combined with adding or removing dependencies')

        if text is not None:
            text = validate_text(text)
        if project is not None:
            project = validate_project_name(project)
        add_tags = validate_tags(add_tags)

        with Transaction(self.storage) as tx:
            tasks = tx.tasks
            task = tasks[resolve_position(tasks, position)]

            # validate everything before touching the task
            removed_deps = graph.check_removed_dependencies(tasks, task, remove_deps)
            kept_deps = [d for d in task.depends_on if d not in removed_deps]
            added_deps = graph.check_new_dependencies(tasks, task.id, add_deps, kept_deps)
            tags_to_remove = self._match_tags(task, remove_tags, position)
            if clear_due and task.recurrence is not None:
                raise ValidationError(
                    f'Task #{position} repeats {task.recurrence}; remove the recurrence before clearing its due date'
                )
            new_tags, normalizations = normalize_tags(add_tags, collect_existing_tags(tasks))

            changes: List[str] = []
            if text is not None and text != task.text:
                task.text = text
                changes.append(f'text -> {text}')
            if priority is not None and priority != task.priority:
                task.priority = priority
                changes.append(f'priority -> {priority.value}')

            if clear_project:
                if task.project is not None:
                    changes.append(f'project cleared (was {task.project})')
                    task.project = None
            elif project is not None and project != task.project:
                task.project = project
                changes.append(f'project -> {project}')

            if clear_tags:
                if task.tags:
                    changes.append(f"tags cleared (was [{', '.join(task.tags)}])")
                    task.tags = []
            else:
                if tags_to_remove:
                    task.tags = [t for t in task.tags if t not in tags_to_remove]
                    changes.append(f"removed tags -> [{', '.join(tags_to_remove)}]")
                present = {t.lower() for t in task.tags}
                added = [t for t in new_tags if t.lower() not in present]
                if added:
                    task.tags.extend(added)
                    changes.append(f"added tags -> [{', '.join(added)}]")

            if clear_due:
                if task.due_date is not None:
                    task.due_date = None
                    changes.append('due date cleared')
            elif due is not None and due != task.due_date:
                task.due_date = due
                changes.append(f'due date -> {due.isoformat()}')

            if clear_deps:
                if task.depends_on:
                    old = ', '.join(self._labels(tasks, task.depends_on))
                    task.depends_on = []
                    changes.append(f'dependencies cleared (was [{old}])')
            else:
                if removed_deps:
                    task.depends_on = kept_deps
                    changes.append(f"removed deps -> [{', '.join(self._labels(tasks, removed_deps))}]")
                if added_deps:
                    task.depends_on = task.depends_on + added_deps
                    changes.append(f"added deps -> [{', '.join(self._labels(tasks, added_deps))}]")

            if changes:
                task.touch()
                tx.mark_dirty()
                logger.debug('edited %s: %d change(s)', task.id, len(changes))
            return EditResult(position, changes, normalizations)

    @staticmethod
    def _match_tags(task: Task, remove_tags: Sequence[str], position: int) -> List[str]:
        if not remove_tags:
            return []
        wanted = {t.strip().lower() for t in remove_tags}
        matched = [t for t in task.tags if t.lower() in wanted]
        if not matched:
            raise ValidationError(
                f"None of the specified tags [{', '.join(remove_tags)}] exist in task #{position}"
            )
        return matched

    @staticmethod
    def _labels(tasks: Sequence[Task], ids: Iterable[str]) -> List[str]:
        labels = []
        for task_id in ids:
            pos = graph.position_of(tasks, task_id)
            labels.append(f'#{pos}' if pos else '#?')
        return labels

    # -------------------- lifecycle --------------------
    def done(self, position: int) -> lifecycle.CompletionResult:
        with Transaction(self.storage) as tx:
            index = resolve_position(tx.tasks, position)
            result = lifecycle.mark_done(tx.tasks, index, self.today)
            tx.mark_dirty()
            return result

    def undone(self, position: int) -> Task:
        with Transaction(self.storage) as tx:
            index = resolve_position(tx.tasks, position)
            task = lifecycle.mark_undone(tx.tasks, index)
            tx.mark_dirty()
            return task

    # -------------------- remove / clear --------------------
    def get(self, position: int) -> Task:
        tasks = self.all_tasks()
        return tasks[resolve_position(tasks, position)]

    def remove(self, position: int) -> Task:
        with Transaction(self.storage) as tx:
            removed = tx.tasks.pop(resolve_position(tx.tasks, position))
            dropped = graph.drop_edges_to(tx.tasks, removed.id)
            tx.mark_dirty()
            logger.debug('removed %s; dropped %d dependency edge(s)', removed.id, dropped)
            return removed

    def clear(self) -> int:
        with Transaction(self.storage) as tx:
            count = len(tx.tasks)
            tx.tasks.clear()
            tx.mark_dirty()
            return count

    # -------------------- recurrence --------------------
    def recur(self, position: int, pattern: Recurrence) -> Optional[Recurrence]:
        """Set the recurrence pattern; returns the previous one."""
        with Transaction(self.storage) as tx:
            task = tx.tasks[resolve_position(tx.tasks, position)]
            if task.due_date is None:
                raise ValidationError(
                    f'Task #{position} has no due date. Add one with: edit {position} --due YYYY-MM-DD'
                )
            old = task.recurrence
            if old is not pattern:
                task.recurrence = pattern
                task.touch()
                tx.mark_dirty()
            return old

    def norecur(self, position: int) -> Optional[Recurrence]:
        """Remove the recurrence pattern; returns what was removed (None if nothing)."""
        with Transaction(self.storage) as tx:
            task = tx.tasks[resolve_position(tx.tasks, position)]
            old = task.recurrence
            if old is not None:
                task.recurrence = None
                task.touch()
                tx.mark_dirty()
            return old

    # -------------------- queries --------------------
    def list_tasks(
        self,
        *,
        status: StatusFilter = StatusFilter.ALL,
        priority: Optional[Priority] = None,
        due: Optional[DueFilter] = None,
        sort: Optional[SortBy] = None,
        tag: Optional[str] = None,
        project: Optional[str] = None,
        recurrence: Optional[RecurrenceFilter] = None,
    ) -> ListResult:
        all_tasks = self.all_tasks()
        today = self.today
        entries = [(pos, t) for pos, t in enumerate(all_tasks, start=1) if t.matches_status(status)]
        if priority is not None:
            entries = [(p, t) for p, t in entries if t.priority is priority]
        if due is not None:
            entries = [(p, t) for p, t in entries if t.matches_due_filter(due, today)]
        if tag is not None:
            before = len(entries)
            entries = [(p, t) for p, t in entries if tag in t.tags]
            if before and not entries:
                raise EmptyResultError(f"Tag '{tag}' not found in any task")
        if project is not None:
            before = len(entries)
            entries = [(p, t) for p, t in entries if t.has_project(project)]
            if before and not entries:
                raise EmptyResultError(f"Project '{project}' not found in any task")
        if recurrence is not None:
            entries = [(p, t) for p, t in entries if t.matches_recurrence_filter(recurrence)]
        if not entries:
            raise EmptyResultError('No tasks found matching the specified filters')

        if sort is SortBy.PRIORITY:
            entries.sort(key=lambda e: e[1].priority.order)
        elif sort is SortBy.DUE:
            entries.sort(key=lambda e: (e[1].due_date is None, e[1].due_date or date.max))
        elif sort is SortBy.CREATED:
            entries.sort(key=lambda e: e[1].created_at)

        title = list_title(status, priority, due, project, recurrence)
        return ListResult(title, entries, all_tasks)

    def search(
        self,
        query: str,
        *,
        tag: Optional[str] = None,
        project: Optional[str] = None,
        status: StatusFilter = StatusFilter.ALL,
    ) -> ListResult:
        all_tasks = self.all_tasks()
        needle = query.lower()
        entries = [
            (pos, t) for pos, t in enumerate(all_tasks, start=1)
            if needle in t.text.lower() and t.matches_status(status)
        ]
        if tag is not None:
            entries = [(p, t) for p, t in entries if tag in t.tags]
        if project is not None:
            entries = [(p, t) for p, t in entries if t.has_project(project)]
        if not entries:
            raise EmptyResultError(f"Search returned no results for query: '{query}'")
        return ListResult(f'Search results for "{query}"', entries, all_tasks)

    def tag_counts(self) -> List[Tuple[str, int]]:
        tasks = self.all_tasks()
        counts = Counter(tag for t in tasks for tag in t.tags)
        if not counts:
            raise EmptyResultError('No tags found in any task')
        return sorted(counts.items())

    def project_counts(self) -> List[Tuple[str, int, int]]:
        """(project, pending, done) for each project, sorted by name."""
        tasks = self.all_tasks()
        names = sorted({t.project for t in tasks if t.project is not None})
        if not names:
            raise EmptyResultError('No projects found in any task')
        out = []
        for name in names:
            members = [t for t in tasks if t.project == name]
            done = sum(1 for t in members if t.completed)
            out.append((name, len(members) - done, done))
        return out

    def stats(self) -> Stats:
        tasks = self.all_tasks()
        today = self.today
        completed = sum(1 for t in tasks if t.completed)

        by_priority = []
        for pri in Priority:
            members = [t for t in tasks if t.priority is pri]
            if members:
                done = sum(1 for t in members if t.completed)
                by_priority.append((pri, len(members), len(members) - done, done))

        by_project = []
        for name in sorted({t.project for t in tasks if t.project is not None}):
            members = [t for t in tasks if t.project == name]
            done = sum(1 for t in members if t.completed)
            by_project.append((name, len(members), percent(done, len(members))))

        activity = []
        for offset in range(ACTIVITY_DAYS - 1, -1, -1):
            day = today - timedelta(days=offset)
            activity.append((day, sum(1 for t in tasks if t.completed_at == day)))

        return Stats(
            total=len(tasks),
            completed=completed,
            pending=len(tasks) - completed,
            overdue=sum(1 for t in tasks if t.is_overdue(today)),
            due_soon=sum(1 for t in tasks if t.is_due_soon(today=today)),
            blocked=sum(1 for t in tasks if not t.completed and graph.is_blocked(t, tasks)),
            by_priority=by_priority,
            by_project=by_project,
            without_project=sum(1 for t in tasks if t.project is None) if by_project else 0,
            activity=activity,
        )

    def deps(self, position: int) -> DepsView:
        tasks = self.all_tasks()
        task = tasks[resolve_position(tasks, position)]
        by_id = graph.index_by_id(tasks)
        dependencies = [
            DependencyEntry(dep_id, graph.position_of(tasks, dep_id), by_id.get(dep_id))
            for dep_id in task.depends_on
        ]
        dependents = [(graph.position_of(tasks, t.id) or 0, t) for t in graph.dependents(task, tasks)]
        blocking = sorted(graph.position_of(tasks, d) or 0 for d in graph.blocking_deps(task, tasks))
        return DepsView(position, task, dependencies, dependents, blocking)


def list_title(
    status: StatusFilter,
    priority: Optional[Priority],
    due: Optional[DueFilter],
    project: Optional[str],
    recurrence: Optional[RecurrenceFilter],
) -> str:
    if project is not None:
        return f'Tasks in project "{project}"'
    prefix = {StatusFilter.PENDING: 'Pending ', StatusFilter.DONE: 'Completed ', StatusFilter.ALL: ''}[status]
    if recurrence is not None:
        if recurrence is RecurrenceFilter.NON_RECURRING:
            label = 'non-recurring tasks'
        elif recurrence is RecurrenceFilter.RECURRING:
            label = 'recurring tasks'
        else:
            label = f'{recurrence.value} recurring tasks'
        return (prefix + label)[0].upper() + (prefix + label)[1:]
    if status is StatusFilter.DONE:
        return 'Completed tasks'
    if priority is not None:
        return f'{priority.value.capitalize()} priority {prefix.lower()}tasks'
    due_labels = {
        DueFilter.OVERDUE: 'overdue tasks',
        DueFilter.SOON: 'tasks due soon',
        DueFilter.WITH_DUE: 'tasks with due date',
        DueFilter.NO_DUE: 'tasks without due date',
    }
    if due is not None:
        label = prefix + due_labels[due]
        return label[0].upper() + label[1:]
    return 'Pending tasks' if status is StatusFilter.PENDING else 'Tasks'
