"""
Generic backtracking over set partitions.

Items are placed in input order: each item joins every existing group that
still has room, then (while the group cap allows) opens a new group. Every
complete assignment is checked against the size limits, deduplicated by its
sorted-index-set key and, when a validator is given, kept only if valid.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

# validate(groups) -> object with a truthy ``valid`` attribute when accepted
Validator = Callable[[List[List[T]]], Any]


def combination_key(groups: Sequence[Sequence[int]]) -> str:
    return json.dumps(sorted(sorted(g) for g in groups))


def iter_combinations(items: Sequence[T],
                      validate: Optional[Validator] = None,
                      max_groups: Optional[int] = None,
                      min_items_per_group: int = 1,
                      max_items_per_group: Optional[int] = None,
                      ) -> Iterator[Tuple[List[List[T]], Any]]:
    """Lazily yield ``(groups, validation_result)`` for each accepted partition."""
    n = len(items)
    max_groups = n if max_groups is None else max_groups
    max_items = n if max_items_per_group is None else max_items_per_group
    seen = set()

    def place(pos: int, current: List[List[int]]):
        if pos == n:
            groups = [g for g in current if g]
            if any(len(g) < min_items_per_group or len(g) > max_items for g in groups):
                return
            key = combination_key(groups)
            if key in seen:
                return
            resolved = [[items[i] for i in g] for g in groups]
            result = None
            if validate is not None:
                result = validate(resolved)
                if not getattr(result, "valid", result):
                    return
            seen.add(key)
            yield resolved, result
            return

        for group in current:
            if len(group) < max_items:
                group.append(pos)
                yield from place(pos + 1, current)
                group.pop()
        if len(current) < max_groups:
            current.append([pos])
            yield from place(pos + 1, current)
            current.pop()

    if n == 0:
        return
    yield from place(0, [])


def generate_combinations(items: Sequence[T],
                          validate: Optional[Validator] = None,
                          max_groups: Optional[int] = None,
                          min_items_per_group: int = 1,
                          max_items_per_group: Optional[int] = None,
                          ) -> List[Tuple[List[List[T]], Any]]:
    """
    All accepted partitions of ``items``.

    Args:
        validate:            Called with each candidate grouping; the result
                             is kept when its ``valid`` attribute (or the
                             value itself) is truthy.
        max_groups:          Upper bound on the number of groups (default n).
        min_items_per_group: Groups smaller than this reject the candidate.
        max_items_per_group: Groups never grow past this (default n).

    Returns:
        List of ``(groups, validation_result)``; ``validation_result`` is None
        without a validator.
    """
    return list(iter_combinations(
        items, validate, max_groups, min_items_per_group, max_items_per_group,
    ))
