"""Contiguous ``display_order`` maintenance for ordered configuration lists.

Every ordered list in a template (aspect wordings, defects per category,
taint/fault definitions, screen-size constraints, wording scale options)
keeps ``display_order`` equal to list position. These helpers take a list
of frozen models and always return a new list; the input is never touched.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from src.models.common import QualityEngineBase

T = TypeVar("T", bound=QualityEngineBase)


def renumber(items: Sequence[T]) -> list[T]:
    """Return copies of ``items`` with display_order set to 0..n-1."""
    return [
        item if item.display_order == index
        else item.model_copy(update={"display_order": index})
        for index, item in enumerate(items)
    ]


def sort_by_display_order(items: Sequence[T]) -> list[T]:
    """Return items in ascending display_order (stable)."""
    return sorted(items, key=lambda item: item.display_order)


def append_item(items: Sequence[T], item: T) -> list[T]:
    """Append ``item`` at the end and renumber."""
    return renumber([*items, item])


def remove_at(items: Sequence[T], index: int) -> list[T]:
    """Remove the item at ``index`` and renumber the rest.

    Raises:
        IndexError: If ``index`` is out of range.
    """
    if not 0 <= index < len(items):
        msg = f"Index {index} out of range for {len(items)} item(s)."
        raise IndexError(msg)
    return renumber([*items[:index], *items[index + 1:]])


def swap(items: Sequence[T], first: int, second: int) -> list[T]:
    """Swap two entries' positions and display_order in one step.

    Raises:
        IndexError: If either index is out of range.
    """
    for index in (first, second):
        if not 0 <= index < len(items):
            msg = f"Index {index} out of range for {len(items)} item(s)."
            raise IndexError(msg)
    result = list(items)
    result[first], result[second] = result[second], result[first]
    return renumber(result)


def move(items: Sequence[T], index: int, direction: int) -> list[T]:
    """Move an entry one step up (-1) or down (+1).

    Moving past either end is a no-op and returns a renumbered copy.
    """
    if direction not in (-1, 1):
        msg = f"direction must be -1 or 1, got {direction}."
        raise ValueError(msg)
    target = index + direction
    if not 0 <= target < len(items):
        return renumber(items)
    return swap(items, index, target)


def has_contiguous_order(items: Sequence[QualityEngineBase]) -> bool:
    """True if display_order values are exactly 0..n-1 in list order."""
    return [item.display_order for item in items] == list(range(len(items)))  # type: ignore[attr-defined]
