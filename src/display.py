"""Rendering: task tables, dependency view, tag/project summaries, stats.

Every function returns a list of lines; the CLI decides where they go.
Display numbers are list positions, recomputed per command. Ids never
appear in the output.
"""
from __future__ import annotations

import re
import shutil
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import graph
from collection import DepsView, ListResult, Stats, percent
from models import Task
from theme import (
    ACCENT, BOLD, C_DONE, DIM, ERROR_COLOR, HEADER_COLOR, ID_COLOR, OK_COLOR,
    PRIORITY_COLOR, TAG_COLOR, UNDERLINE, WARN_COLOR, color,
)

ID_WIDTH = 4
MIN_TASK_WIDTH = 10
MAX_TASK_WIDTH = 40
MAX_TAGS_WIDTH = 20
MAX_DUE_WIDTH = 20
SEP = '  '
BAR_WIDTH = 10
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def visible_len(s: str) -> int:
    return len(ANSI_RE.sub('', s))


def pad(s: str, width: int) -> str:
    gap = width - visible_len(s)
    return s + ' ' * gap if gap > 0 else s


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    return text[:max(0, width - 3)] + '...'


def plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


# -------------------- due dates --------------------
def due_text(task: Task, today: Optional[date] = None) -> str:
    if task.due_date is None:
        return ''
    days = (task.due_date - (today or date.today())).days
    if days < 0:
        return f'late {plural(-days, "day")}'
    if days == 0:
        return 'due today'
    return f'in {plural(days, "day")}'


def due_colored(task: Task, text: str, today: Optional[date] = None) -> str:
    if not text:
        return ''
    if task.completed:
        return color(text, DIM)
    days = (task.due_date - (today or date.today())).days  # type: ignore[operator]
    if days < 0:
        return color(text, ERROR_COLOR, BOLD)
    if days == 0:
        return color(text, WARN_COLOR, BOLD)
    if days <= 7:
        return color(text, WARN_COLOR)
    return color(text, ACCENT)


# -------------------- task table --------------------
def _column_widths(entries: Sequence[Tuple[int, Task]], today: Optional[date]) -> Dict[str, int]:
    task_w, tags_w, due_w = MIN_TASK_WIDTH, len('Tags'), len('Due')
    for _, task in entries:
        task_w = max(task_w, len(task.text))
        tags_w = max(tags_w, len(', '.join(task.tags)))
        due_w = max(due_w, len(due_text(task, today)))
    term_width = shutil.get_terminal_size((120, 30)).columns
    fixed = ID_WIDTH + 1 + 3 + len(SEP) * 5
    task_cap = max(MIN_TASK_WIDTH, min(MAX_TASK_WIDTH, term_width - fixed - MAX_TAGS_WIDTH - MAX_DUE_WIDTH))
    return {
        'task': min(task_w, task_cap),
        'tags': min(tags_w, MAX_TAGS_WIDTH),
        'due': min(due_w, MAX_DUE_WIDTH),
    }


def _marker(task: Task, all_tasks: Sequence[Task]) -> str:
    if task.completed:
        return color('[x]', C_DONE)
    if graph.is_blocked(task, all_tasks):
        return color('[~]', ERROR_COLOR)
    return '[ ]'


def render_task_line(position: int, task: Task, all_tasks: Sequence[Task], widths: Dict[str, int],
                     today: Optional[date] = None) -> str:
    number = color(str(position).rjust(ID_WIDTH), DIM)
    letter = color(task.priority.letter, PRIORITY_COLOR[task.priority.value])
    text = truncate(task.text, widths['task'])
    tags = truncate(', '.join(task.tags), widths['tags'])
    if task.recurrence is not None:
        text = truncate(f'{task.text} ↻', widths['task'])
    if task.completed:
        text_c, tags_c = color(text, C_DONE), color(tags, DIM)
    else:
        text_c, tags_c = color(text, BOLD), color(tags, TAG_COLOR)
    cells = [
        number,
        letter,
        _marker(task, all_tasks),
        pad(text_c, widths['task']),
        pad(tags_c, widths['tags']),
        due_colored(task, due_text(task, today), today),
    ]
    return SEP.join(cells).rstrip()


def render_list(result: ListResult, today: Optional[date] = None) -> List[str]:
    widths = _column_widths(result.entries, today)
    header = SEP.join([
        color('ID'.rjust(ID_WIDTH), DIM),
        color('P', DIM),
        color(' S ', DIM),
        pad(color('Task', DIM), widths['task']),
        pad(color('Tags', DIM), widths['tags']),
        color('Due', DIM),
    ])
    total_width = ID_WIDTH + 1 + 3 + widths['task'] + widths['tags'] + widths['due'] + len(SEP) * 5
    rule = color('─' * total_width, DIM)

    lines = ['', f'{result.title}:', '', header, rule]
    lines.extend(render_task_line(pos, t, result.all_tasks, widths, today) for pos, t in result.entries)
    lines.append(rule)

    done = sum(1 for _, t in result.entries if t.completed)
    total = len(result.entries)
    pct = percent(done, total)
    summary = f'{done} of {total} completed ({pct}%)'
    lines.append(color(summary, *_completion_style(pct)))
    lines.append('')
    return lines


def _completion_style(pct: int) -> Tuple[str, ...]:
    if pct == 100:
        return (OK_COLOR, BOLD)
    if pct >= 50:
        return (WARN_COLOR,)
    return (ERROR_COLOR,)


# -------------------- dependency view --------------------
def render_deps(view: DepsView) -> List[str]:
    lines = ['', f"{color('Task', DIM)} #{view.position}: {color(view.task.text, BOLD)}", '']
    if not view.dependencies:
        lines.append(color('  No dependencies.', DIM))
    else:
        lines.append(color('  Depends on', DIM) + ':')
        for entry in view.dependencies:
            if entry.task is None:
                lines.append(f"    {color('?', WARN_COLOR)} - {color('(task not found)', DIM)}")
                continue
            if entry.task.completed:
                lines.append(f"    {color('✓', OK_COLOR)} #{entry.position} - {color(entry.task.text, DIM)}")
            else:
                lines.append(f"    {color('◦', ERROR_COLOR)} #{entry.position} - {color(entry.task.text, BOLD)}")

    lines.append('')
    if not view.dependents:
        lines.append(color('  No tasks depend on this one.', DIM))
    else:
        lines.append(color('  Required by', DIM) + ':')
        for pos, task in view.dependents:
            mark = color('✓', OK_COLOR) if task.completed else color('◦', WARN_COLOR)
            lines.append(f'    {mark} #{pos} - {color(task.text, BOLD)}')

    lines.append('')
    if view.blocked:
        ids = ', '.join(f'#{p}' for p in view.blocking_positions)
        lines.append(f"  {color('[~]', ERROR_COLOR)} Blocked by: {color(ids, ERROR_COLOR)}")
    elif view.dependencies:
        lines.append(f"  {color('✓', OK_COLOR)} All dependencies satisfied")
    lines.append('')
    return lines


# -------------------- summaries --------------------
def render_tags(counts: Sequence[Tuple[str, int]]) -> List[str]:
    lines = ['', 'Tags:', '']
    lines.extend(f"  {color(tag, TAG_COLOR)} ({plural(n, 'task')})" for tag, n in counts)
    lines.append('')
    return lines


def render_projects(counts: Sequence[Tuple[str, int, int]]) -> List[str]:
    lines = ['', 'Projects:', '']
    lines.extend(f'  {color(name, TAG_COLOR)} ({pending} pending, {done} done)' for name, pending, done in counts)
    lines.append('')
    return lines


def render_stats(stats: Stats) -> List[str]:
    if stats.total == 0:
        return ['', color('No tasks found.', DIM), '']

    def section(title: str) -> List[str]:
        return [color(title, BOLD, UNDERLINE), '']

    def stat(label: str, value: str, *styles: str) -> str:
        return f"  {pad(color(label, DIM), 16)} {color(value, *(styles or (ACCENT,)))}"

    pct = stats.percent_done
    lines = ['', color('Task Statistics', BOLD), '']
    lines += section('Overview')
    lines.append(stat('Total tasks', str(stats.total)))
    lines.append(stat('Completed', f'{stats.completed} ({pct}%)', *_completion_style(pct)))
    lines.append(stat('Pending', str(stats.pending)))
    if stats.overdue:
        lines.append(stat('Overdue', str(stats.overdue), ERROR_COLOR))
    if stats.due_soon:
        lines.append(stat('Due soon', str(stats.due_soon), WARN_COLOR))
    if stats.blocked:
        lines.append(stat('Blocked', str(stats.blocked), WARN_COLOR))
    lines.append('')

    lines += section('By Priority')
    for pri, total, pending, done in stats.by_priority:
        label = pad(color(pri.value.capitalize(), BOLD), 8)
        lines.append(f'  {label} {color(str(total), ACCENT)}  ({pending} pending, {done} done)')
    lines.append('')

    if stats.by_project:
        lines += section('By Project')
        for name, total, pct_done in stats.by_project:
            lines.append(f"  {pad(color(name, BOLD), 24)} {color(plural(total, 'task'), ACCENT)}  ({pct_done}% done)")
        if stats.without_project:
            lines.append(f"  {pad(color('(no project)', DIM), 24)} {color(plural(stats.without_project, 'task'), DIM)}")
        lines.append('')

    lines += section(f'Activity - last {len(stats.activity)} days')
    max_count = max([n for _, n in stats.activity] + [1])
    for day, n in stats.activity:
        filled = (n * BAR_WIDTH) // max_count
        bar = '█' * filled + '░' * (BAR_WIDTH - filled)
        if n == 0:
            lines.append(f"  {color(day.strftime('%b %d'), DIM)}  {color(bar, DIM)}  {color('0 completed', DIM)}")
        else:
            lines.append(f"  {color(day.strftime('%b %d'), DIM)}  {color(bar, OK_COLOR)}  {n} completed")
    lines.append('')
    return lines


def render_info(location: str, size: Optional[int]) -> List[str]:
    lines = ['', color('Task Tracker Information', HEADER_COLOR, BOLD), '']
    lines.append(f"{color('Data file:', DIM)} {location}")
    if size is None:
        lines.append(f"{color('Status:', DIM)} {color('not created yet', ID_COLOR)}")
    else:
        lines.append(f"{color('Status:', DIM)} {color('exists ✓', OK_COLOR)}")
        lines.append(f"{color('Size:', DIM)} {size} bytes")
    lines.append('')
    return lines
