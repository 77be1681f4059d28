"""Tag normalization with fuzzy matching.

When a tag is added it is resolved against the tags already used anywhere
in the task list:

1. exact match           -> unchanged
2. case-insensitive match -> existing spelling
3. edit distance within threshold -> closest existing tag
4. otherwise             -> new tag, kept verbatim

Threshold is 1 for tags of up to 4 characters and 2 from 5 characters on,
so `rust` does not drift to `just` while `fronteend` still finds
`frontend`. Ties at the same distance go to the lexicographically smallest
existing tag (compared lower-cased, then as spelled) so the outcome never
depends on list order.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from models import Task

UNCHANGED = 'unchanged'
NORMALIZED = 'normalized'
NEW = 'new'

SHORT_TAG_LENGTH = 4


@dataclass(frozen=True)
class Normalization:
    original: str
    tag: str
    kind: str

    @property
    def changed(self) -> bool:
        return self.kind == NORMALIZED


def levenshtein(a: str, b: str) -> int:
    """Classic two-row edit distance (insert, delete, substitute)."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def fuzzy_threshold(tag: str) -> int:
    return 1 if len(tag) <= SHORT_TAG_LENGTH else 2


def _tie_key(tag: str) -> Tuple[str, str]:
    return tag.lower(), tag


def normalize_tag(tag: str, existing: Sequence[str]) -> Normalization:
    if tag in existing:
        return Normalization(tag, tag, UNCHANGED)

    lowered = tag.lower()
    same_case = [t for t in existing if t.lower() == lowered]
    if same_case:
        return Normalization(tag, min(same_case, key=_tie_key), NORMALIZED)

    threshold = fuzzy_threshold(tag)
    candidates = []
    for existing_tag in existing:
        dist = levenshtein(lowered, existing_tag.lower())
        if dist <= threshold:
            candidates.append((dist, _tie_key(existing_tag), existing_tag))
    if candidates:
        best = min(candidates)[2]
        return Normalization(tag, best, NORMALIZED)

    return Normalization(tag, tag, NEW)


def normalize_tags(tags: Iterable[str], existing: Sequence[str]) -> Tuple[List[str], List[Normalization]]:
    """Normalize each tag; return (canonical tags, normalizations that changed something).

    Two inputs that resolve to the same canonical tag collapse into one.
    """
    result: List[str] = []
    changes: List[Normalization] = []
    seen = set()
    for tag in tags:
        norm = normalize_tag(tag, existing)
        if norm.changed:
            changes.append(norm)
        if norm.tag.lower() in seen:
            continue
        seen.add(norm.tag.lower())
        result.append(norm.tag)
    return result, changes


def collect_existing_tags(tasks: Iterable[Task]) -> List[str]:
    """Unique tags across all tasks, in first-seen order."""
    seen = set()
    out: List[str] = []
    for task in tasks:
        for tag in task.tags:
            if tag not in seen:
                seen.add(tag)
                out.append(tag)
    return out
