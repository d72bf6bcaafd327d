"""
Tests for the Change Detector agent.

Run with:  pytest tests/test_change_detector.py
"""
from __future__ import annotations

from decimal import Decimal

from copybot.agents.change_detector import (
    diff_positions,
    has_significant_change,
    quantity_changed,
    value_changed,
)
from copybot.models import Market, Position, Snapshot


def _make_position(position_id: str, quantity: str = "100", price: str = "0.5") -> Position:
    return Position(
        id=position_id,
        market=Market(question="Test market question?", market_id="0xcond"),
        outcome="Yes",
        quantity=Decimal(quantity),
        price=Decimal(price),
        value=Decimal(quantity) * Decimal(price),
    )


def _make_snapshot(*positions: Position, total_value: str = "50") -> Snapshot:
    return Snapshot(user="0x1234", positions=tuple(positions), total_value=Decimal(total_value))


class TestHasSignificantChange:
    def test_first_snapshot_is_always_a_change(self):
        assert has_significant_change(None, _make_snapshot()) is True

    def test_identical_snapshots_unchanged(self):
        snap = _make_snapshot(_make_position("tok1"))
        assert has_significant_change(snap, snap) is False

    def test_count_change_wins_over_everything_else(self):
        previous = _make_snapshot(_make_position("tok1"), total_value="50")
        current = _make_snapshot(
            _make_position("tok1"), _make_position("tok2"), total_value="50"
        )
        assert has_significant_change(previous, current) is True

    def test_count_change_when_position_disappears(self):
        previous = _make_snapshot(_make_position("tok1"), _make_position("tok2"))
        current = _make_snapshot(_make_position("tok1"))
        assert has_significant_change(previous, current) is True

    def test_replaced_position_with_same_count(self):
        previous = _make_snapshot(_make_position("tok1"))
        current = _make_snapshot(_make_position("tok2"))
        assert has_significant_change(previous, current) is True

    def test_small_quantity_move_ignored(self):
        previous = _make_snapshot(_make_position("tok1", "100"))
        current = _make_snapshot(_make_position("tok1", "100.5"))
        assert has_significant_change(previous, current) is False

    def test_large_quantity_move_detected(self):
        previous = _make_snapshot(_make_position("tok1", "100"))
        current = _make_snapshot(_make_position("tok1", "150"))
        assert has_significant_change(previous, current) is True

    def test_total_value_move_over_one_percent(self):
        previous = _make_snapshot(_make_position("tok1"), total_value="100")
        current = _make_snapshot(_make_position("tok1"), total_value="101.5")
        assert has_significant_change(previous, current) is True

    def test_total_value_move_under_one_percent(self):
        previous = _make_snapshot(_make_position("tok1"), total_value="100")
        current = _make_snapshot(_make_position("tok1"), total_value="100.5")
        assert has_significant_change(previous, current) is False

    def test_zero_prior_value_does_not_divide_by_zero(self):
        previous = _make_snapshot(total_value="0")
        assert has_significant_change(previous, _make_snapshot(total_value="0")) is False
        # Divisor is floored at 0.01, so 0.0001 is exactly 1%
        assert has_significant_change(previous, _make_snapshot(total_value="0.0001")) is False
        assert has_significant_change(previous, _make_snapshot(total_value="1")) is True


class TestQuantityThreshold:
    def test_absolute_floor_applies_to_small_positions(self):
        # 1% of 10 is 0.1, so the floor of 1 share is the threshold
        assert quantity_changed(Decimal("10"), Decimal("11")) is False
        assert quantity_changed(Decimal("10"), Decimal("11.01")) is True

    def test_relative_threshold_on_large_positions(self):
        # 1% of 1000 is 10
        assert quantity_changed(Decimal("1000"), Decimal("1009.99")) is False
        assert quantity_changed(Decimal("1000"), Decimal("1010")) is False
        assert quantity_changed(Decimal("1000"), Decimal("1010.01")) is True

    def test_decrease_counts_like_increase(self):
        assert quantity_changed(Decimal("1000"), Decimal("989.99")) is True
        assert quantity_changed(Decimal("1000"), Decimal("990.01")) is False

    def test_value_threshold_boundary(self):
        assert value_changed(Decimal("100"), Decimal("101")) is False
        assert value_changed(Decimal("100"), Decimal("101.01")) is True


class TestDiffPositions:
    def test_new_and_closed(self):
        previous = {"tok1": _make_position("tok1"), "tok2": _make_position("tok2")}
        current = {"tok2": _make_position("tok2"), "tok3": _make_position("tok3")}
        diff = diff_positions(previous, current)
        assert [p.id for p in diff.opened] == ["tok3"]
        assert [p.id for p in diff.closed] == ["tok1"]

    def test_empty_previous_opens_everything(self):
        current = {"tok1": _make_position("tok1"), "tok2": _make_position("tok2")}
        diff = diff_positions({}, current)
        assert [p.id for p in diff.opened] == ["tok1", "tok2"]
        assert diff.closed == []

    def test_no_difference_is_falsy(self):
        same = {"tok1": _make_position("tok1")}
        assert not diff_positions(same, dict(same))

    def test_closed_entry_is_the_previous_position(self):
        prev_pos = _make_position("tok1", "42")
        diff = diff_positions({"tok1": prev_pos}, {})
        assert diff.closed[0] is prev_pos
