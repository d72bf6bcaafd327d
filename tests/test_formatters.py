"""
Tests for the log formatting helpers.

Run with:  pytest tests/test_formatters.py
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from copybot.models import CopyTradingStats, Market, Position, Snapshot
from copybot.utils.formatters import (
    format_address,
    format_currency,
    format_stats,
    format_status,
    truncate,
)


def _make_position(i: int) -> Position:
    return Position(
        id=str(i),
        market=Market(question=f"Question {i}?", market_id=f"0x{i}"),
        outcome="No",
        quantity=Decimal("8583.2"),
        price=Decimal("0.07"),
    )


class TestHelpers:
    def test_format_address(self):
        address = "0x1234567890abcdef1234567890abcdef12345678"
        assert format_address(address) == "0x12345678...12345678"
        assert format_address("0xshort") == "0xshort"

    def test_format_currency(self):
        assert format_currency(Decimal("1234.5")) == "1,234.50"
        assert format_currency("garbage") == "0.00"

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        assert truncate("a" * 20, 10) == "aaaaaaa..."


class TestFormatStatus:
    def test_empty_account(self):
        snap = Snapshot(user="0xabc", positions=(), total_value=Decimal("0"))
        assert "No active positions" in format_status(snap)

    def test_lists_at_most_ten_positions(self):
        positions = tuple(_make_position(i) for i in range(12))
        snap = Snapshot(
            user="0xabc",
            positions=positions,
            total_value=Decimal("7210.89"),
            last_updated=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        text = format_status(snap)
        assert "Open positions (12):" in text
        assert "10. Question 9? [No]: 8,583.2 @ $0.0700" in text
        assert "Question 10?" not in text
        assert "... and 2 more" in text
        assert "$7,210.89" in text


def test_format_stats():
    stats = CopyTradingStats(
        enabled=True,
        dry_run=True,
        total_trades_executed=3,
        total_trades_failed=1,
        total_volume=Decimal("42.5"),
    )
    text = format_stats(stats)
    assert "enabled (dry run)" in text
    assert "3 executed, 1 failed" in text
    assert "$42.50" in text
    assert "last trade never" in text
