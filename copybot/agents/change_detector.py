"""
Change Detector Agent — decides whether a fresh snapshot differs meaningfully
from the stored one, and diffs two position maps into opened/closed sets.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from copybot.models import Position, Snapshot

log = logging.getLogger(__name__)

# Quantity moves must exceed max(_MIN_QUANTITY_DELTA, prior * _RELATIVE_THRESHOLD)
_MIN_QUANTITY_DELTA = Decimal("1")
_RELATIVE_THRESHOLD = Decimal("0.01")
# Floor for the total-value divisor so an empty account does not divide by zero
_MIN_VALUE_DIVISOR = Decimal("0.01")


@dataclass
class PositionDiff:
    opened: list[Position] = field(default_factory=list)
    closed: list[Position] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.opened or self.closed)


def quantity_changed(previous: Decimal, current: Decimal) -> bool:
    """True when the share count moved by more than max(1, 1% of *previous*)."""
    threshold = max(_MIN_QUANTITY_DELTA, previous * _RELATIVE_THRESHOLD)
    return abs(current - previous) > threshold


def value_changed(previous: Decimal, current: Decimal) -> bool:
    """True when the total value moved by more than 1% relative to *previous*."""
    divisor = max(previous, _MIN_VALUE_DIVISOR)
    return abs(current - previous) / divisor > _RELATIVE_THRESHOLD


def has_significant_change(previous: Snapshot | None, current: Snapshot) -> bool:
    """
    Compare *current* to *previous* and report whether listeners should hear about it.

    Parameters
    ----------
    previous : Snapshot | None
        Last snapshot handed to listeners, or None before the first poll.
    current : Snapshot
        Freshly fetched snapshot.

    Returns
    -------
    bool
        True for a first snapshot, a different position count, an unknown id,
        a quantity move beyond threshold, or a >1% total value move.
    """
    if previous is None:
        return True

    if current.total_positions != previous.total_positions:
        return True

    prev_map = previous.position_map()
    for curr in current.positions:
        prev = prev_map.get(curr.id)
        if prev is None:
            return True
        if quantity_changed(prev.quantity, curr.quantity):
            log.debug(
                "Quantity change on %s: %s → %s", curr.id, prev.quantity, curr.quantity
            )
            return True

    return value_changed(previous.total_value, current.total_value)


def diff_positions(
    previous: dict[str, Position],
    current: dict[str, Position],
) -> PositionDiff:
    """
    Split the id sets of two position maps.

    ``opened`` holds positions in *current* whose id is missing from *previous*;
    ``closed`` holds positions in *previous* whose id is missing from *current*
    (the previous entry is returned since there is no current one).
    Order follows the insertion order of each map.
    """
    diff = PositionDiff()
    for position_id, position in current.items():
        if position_id not in previous:
            diff.opened.append(position)
    for position_id, position in previous.items():
        if position_id not in current:
            diff.closed.append(position)
    return diff
