"""Command-line surface for the task tracker.

Tasks are addressed by their 1-based position as shown by `list`. The
position is resolved against the current list on every invocation, so
after a `remove` later tasks shift up by one; dependency edges are stored
by id and are not affected.

Core errors (TaskError) are reported in red on stderr with exit status 1.
"""
from __future__ import annotations

import functools
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Tuple

import click

from collection import TaskCollection
from config import load_settings
from display import render_deps, render_info, render_list, render_projects, render_stats, render_tags
from errors import TaskError
from logging_setup import setup_logging
from models import DueFilter, Priority, Recurrence, RecurrenceFilter, SortBy, StatusFilter
from storage import JsonStorage, Storage
from theme import ACCENT, DIM, ERROR_COLOR, OK_COLOR, WARN_COLOR, color

logger = logging.getLogger(__name__)

DATE = click.DateTime(formats=['%Y-%m-%d'])


def _choice(enum_cls) -> click.Choice:
    return click.Choice([m.value for m in enum_cls], case_sensitive=False)


def _as_date(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value is not None else None


def _split(values: Iterable[str]) -> List[str]:
    """Accept both `-t a -t b` and `-t a,b`."""
    out: List[str] = []
    for value in values:
        out.extend(part for part in value.split(',') if part.strip())
    return out


def _echo(lines: Iterable[str]) -> None:
    for line in lines:
        click.echo(line)


def _ok(message: str) -> None:
    click.echo(f"{color('✓', OK_COLOR)} {message}")


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except TaskError as e:
            logger.debug('command failed: %s', e)
            click.echo(color(f'Error: {e}', ERROR_COLOR), err=True)
            raise click.exceptions.Exit(1)
    return wrapper


class AppContext:
    def __init__(self, storage: Storage):
        self.storage = storage
        self.tasks = TaskCollection(storage)


pass_app = click.make_pass_decorator(AppContext)


@click.group()
@click.option('--file', 'data_file', type=click.Path(dir_okay=False, path_type=Path),
              help='Task data file (overrides TASKS_FILE).')
@click.option('-v', '--verbose', is_flag=True, help='Log progress to stderr.')
@click.pass_context
def cli(ctx: click.Context, data_file: Optional[Path], verbose: bool) -> None:
    """Personal task tracker with dependencies, recurrence and tags."""
    if ctx.obj is not None:
        return  # injected by tests
    settings = load_settings()
    setup_logging(
        console_level=logging.INFO if verbose else settings.log_level,
        log_file=settings.log_file,
    )
    storage = JsonStorage(data_file or settings.data_file, lock_timeout=settings.lock_timeout)
    logger.debug('using %s', storage.location())
    ctx.obj = AppContext(storage)


# -------------------- add / edit --------------------
@cli.command()
@click.argument('text')
@click.option('--priority', type=_choice(Priority), default=Priority.MEDIUM.value, show_default=True)
@click.option('-t', '--tag', 'tags', multiple=True, help='Tag (repeat or comma-separate).')
@click.option('-p', '--project')
@click.option('--due', type=DATE, help='Due date, YYYY-MM-DD.')
@click.option('--recur', type=_choice(Recurrence), help='Repeat pattern (requires --due).')
@click.option('--depends-on', 'depends_on', type=int, multiple=True, metavar='ID',
              help='Task that must be completed first.')
@pass_app
@handle_errors
def add(app: AppContext, text: str, priority: str, tags: Tuple[str, ...], project: Optional[str],
        due: Optional[datetime], recur: Optional[str], depends_on: Tuple[int, ...]) -> None:
    """Add a new task."""
    result = app.tasks.add(
        text,
        priority=Priority(priority.lower()),
        tags=_split(tags),
        project=project,
        due=_as_date(due),
        recurrence=Recurrence(recur.lower()) if recur else None,
        depends_on=depends_on,
    )
    for norm in result.normalizations:
        click.echo(f"  {color('~', WARN_COLOR)} Tag normalized: '{norm.original}' -> '{norm.tag}'")
    if result.task.recurrence is not None:
        _ok(f'Added task #{result.position} with {result.task.recurrence} recurrence')
    else:
        _ok(f'Added task #{result.position}')


@cli.command()
@click.argument('position', type=int, metavar='ID')
@click.option('--text')
@click.option('--priority', type=_choice(Priority))
@click.option('--add-tag', 'add_tags', multiple=True)
@click.option('--remove-tag', 'remove_tags', multiple=True)
@click.option('--clear-tags', is_flag=True)
@click.option('-p', '--project')
@click.option('--clear-project', is_flag=True)
@click.option('--due', type=DATE)
@click.option('--clear-due', is_flag=True)
@click.option('--add-dep', 'add_deps', type=int, multiple=True, metavar='ID')
@click.option('--remove-dep', 'remove_deps', type=int, multiple=True, metavar='ID')
@click.option('--clear-deps', is_flag=True)
@pass_app
@handle_errors
def edit(app: AppContext, position: int, text: Optional[str], priority: Optional[str],
         add_tags: Tuple[str, ...], remove_tags: Tuple[str, ...], clear_tags: bool,
         project: Optional[str], clear_project: bool, due: Optional[datetime], clear_due: bool,
         add_deps: Tuple[int, ...], remove_deps: Tuple[int, ...], clear_deps: bool) -> None:
    """Edit an existing task; only the given fields change."""
    result = app.tasks.edit(
        position,
        text=text,
        priority=Priority(priority.lower()) if priority else None,
        add_tags=_split(add_tags),
        remove_tags=_split(remove_tags),
        clear_tags=clear_tags,
        project=project,
        clear_project=clear_project,
        due=_as_date(due),
        clear_due=clear_due,
        add_deps=add_deps,
        remove_deps=remove_deps,
        clear_deps=clear_deps,
    )
    for norm in result.normalizations:
        click.echo(f"  {color('~', WARN_COLOR)} Tag normalized: '{norm.original}' -> '{norm.tag}'")
    if not result.changes:
        click.echo('No changes made (values are already set to the specified values).')
        return
    _ok(f'Task #{position} updated:')
    for change in result.changes:
        click.echo(f'  • {change}')


# -------------------- lifecycle --------------------
@cli.command()
@click.argument('position', type=int, metavar='ID')
@pass_app
@handle_errors
def done(app: AppContext, position: int) -> None:
    """Mark a task as completed."""
    result = app.tasks.done(position)
    _ok('Task marked as completed')
    if result.spawned is not None:
        due = result.spawned.due_date.isoformat()  # type: ignore[union-attr]
        click.echo(f"{color('↻', ACCENT)} Task #{result.spawned_position} created (due {due})")
    elif result.occurrence_exists:
        click.echo(color('Next recurrence already exists, skipping creation.', DIM))


@cli.command()
@click.argument('position', type=int, metavar='ID')
@pass_app
@handle_errors
def undone(app: AppContext, position: int) -> None:
    """Mark a completed task as pending again."""
    app.tasks.undone(position)
    click.echo(color('✓ Task unmarked', WARN_COLOR))


@cli.command()
@click.argument('position', type=int, metavar='ID')
@click.option('-y', '--yes', is_flag=True, help='Skip the confirmation prompt.')
@pass_app
@handle_errors
def remove(app: AppContext, position: int, yes: bool) -> None:
    """Remove a task permanently."""
    if not yes:
        task = app.tasks.get(position)
        click.echo(f'\n{color(task.text, ACCENT)}')
        if not click.confirm('Are you sure?', default=False):
            click.echo('Removal cancelled.')
            return
    removed = app.tasks.remove(position)
    _ok(color(f'Task removed: {removed.text}', DIM))


@cli.command()
@click.option('-y', '--yes', is_flag=True, help='Skip the confirmation prompt.')
@pass_app
@handle_errors
def clear(app: AppContext, yes: bool) -> None:
    """Remove all tasks."""
    count = len(app.tasks.all_tasks())
    if count == 0:
        click.echo('No tasks to remove')
        return
    if not yes:
        click.echo(color(f'\n{count} tasks will be permanently deleted!', WARN_COLOR))
        if not click.confirm('Continue?', default=False):
            click.echo('Clear cancelled.')
            return
    app.tasks.clear()
    _ok('All tasks have been removed')


# -------------------- recurrence --------------------
@cli.command()
@click.argument('position', type=int, metavar='ID')
@click.argument('pattern', type=_choice(Recurrence))
@pass_app
@handle_errors
def recur(app: AppContext, position: int, pattern: str) -> None:
    """Set or change the recurrence pattern of a task."""
    new = Recurrence(pattern.lower())
    old = app.tasks.recur(position, new)
    if old is new:
        click.echo(f'Recurrence already set to {new} for task #{position}')
    elif old is not None:
        _ok(f'Updated recurrence for task #{position}: {old} -> {new}')
    else:
        _ok(f'Set {new} recurrence for task #{position}')


@cli.command()
@click.argument('position', type=int, metavar='ID')
@pass_app
@handle_errors
def norecur(app: AppContext, position: int) -> None:
    """Remove the recurrence pattern from a task."""
    old = app.tasks.norecur(position)
    if old is None:
        click.echo(f'Task #{position} has no recurrence')
    else:
        _ok(f'Removed {old} recurrence from task #{position}')


# -------------------- queries --------------------
@cli.command('list')
@click.option('--status', type=_choice(StatusFilter), default=StatusFilter.ALL.value, show_default=True)
@click.option('--priority', type=_choice(Priority))
@click.option('--due', type=_choice(DueFilter))
@click.option('-s', '--sort', type=_choice(SortBy))
@click.option('-t', '--tag')
@click.option('-p', '--project')
@click.option('-r', '--recurrence', type=_choice(RecurrenceFilter))
@pass_app
@handle_errors
def list_cmd(app: AppContext, status: str, priority: Optional[str], due: Optional[str], sort: Optional[str],
             tag: Optional[str], project: Optional[str], recurrence: Optional[str]) -> None:
    """List and filter tasks."""
    result = app.tasks.list_tasks(
        status=StatusFilter(status.lower()),
        priority=Priority(priority.lower()) if priority else None,
        due=DueFilter(due.lower()) if due else None,
        sort=SortBy(sort.lower()) if sort else None,
        tag=tag,
        project=project,
        recurrence=RecurrenceFilter(recurrence.lower()) if recurrence else None,
    )
    _echo(render_list(result, app.tasks.today))


@cli.command()
@click.argument('query')
@click.option('-t', '--tag')
@click.option('-p', '--project')
@click.option('--status', type=_choice(StatusFilter), default=StatusFilter.ALL.value, show_default=True)
@pass_app
@handle_errors
def search(app: AppContext, query: str, tag: Optional[str], project: Optional[str], status: str) -> None:
    """Search task text (case-insensitive)."""
    result = app.tasks.search(query, tag=tag, project=project, status=StatusFilter(status.lower()))
    _echo(render_list(result, app.tasks.today))


@cli.command('deps')
@click.argument('position', type=int, metavar='ID')
@pass_app
@handle_errors
def deps_cmd(app: AppContext, position: int) -> None:
    """Show dependencies and dependents of a task."""
    _echo(render_deps(app.tasks.deps(position)))


@cli.command()
@pass_app
@handle_errors
def tags(app: AppContext) -> None:
    """List all tags with task counts."""
    _echo(render_tags(app.tasks.tag_counts()))


@cli.command()
@pass_app
@handle_errors
def projects(app: AppContext) -> None:
    """List all projects with pending/done counts."""
    _echo(render_projects(app.tasks.project_counts()))


@cli.command()
@pass_app
@handle_errors
def stats(app: AppContext) -> None:
    """Show statistics and recent activity."""
    _echo(render_stats(app.tasks.stats()))


@cli.command()
@pass_app
def info(app: AppContext) -> None:
    """Show where the task data lives."""
    size = app.storage.size() if isinstance(app.storage, JsonStorage) else None
    _echo(render_info(app.storage.location(), size))


if __name__ == '__main__':  # pragma: no cover
    cli()
