"""Position reconciliation for the ranked film list.

Positions are 1-based and, after every mutation, cover exactly 1..N. The
helpers here work on anything exposing a mutable ``position`` attribute and
never touch storage.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Sequence, TypeVar


class Positioned(Protocol):
    position: int


T = TypeVar("T", bound=Positioned)


def sort_by_position(items: Iterable[T]) -> List[T]:
    return sorted(items, key=lambda item: item.position)


def resolve_position(
    sorted_positions: Sequence[int],
    desired: int,
    *,
    upper: Optional[int] = None,
) -> int:
    """Return the tightest legal slot for ``desired``.

    A desired position that lands inside a gap between two neighbours is
    pulled down to the slot right after the lower neighbour. Anything past
    the end becomes ``last + 1`` (or ``upper`` when given, used when moving
    an existing item whose own slot is already counted).
    """
    resolved = desired
    for lower, higher in zip(sorted_positions, sorted_positions[1:]):
        if lower < resolved < higher:
            if resolved > lower + 1:
                resolved = lower + 1
            break
    ceiling = upper if upper is not None else (sorted_positions[-1] + 1 if sorted_positions else 1)
    return max(1, min(resolved, ceiling))


def shift_for_insert(items: Iterable[Positioned], position: int) -> None:
    """Make room at ``position`` by moving it and everything below down one."""
    items = list(items)
    if not any(item.position == position for item in items):
        return
    for item in items:
        if item.position >= position:
            item.position += 1


def shift_for_move(items: Iterable[Positioned], old: int, new: int) -> None:
    """Shift the span between ``old`` and ``new`` toward the vacated slot.

    The moving item itself must not be in ``items``.
    """
    if new < old:
        for item in items:
            if new <= item.position < old:
                item.position += 1
    elif new > old:
        for item in items:
            if old < item.position <= new:
                item.position -= 1


def compact_after_delete(items: Iterable[Positioned], removed: int) -> None:
    for item in items:
        if item.position > removed:
            item.position -= 1


def is_contiguous(positions: Iterable[int]) -> bool:
    ordered = sorted(positions)
    return ordered == list(range(1, len(ordered) + 1))
