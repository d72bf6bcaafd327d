"""
Formatting helpers for log output.
"""
from __future__ import annotations

from decimal import Decimal

from copybot.models import CopyTradingStats, Snapshot

_MAX_LISTED_POSITIONS = 10


def format_address(address: str, start: int = 10, end: int = 8) -> str:
    """Shorten an address, e.g. '0x12345678...9abcdef0'."""
    if not address or len(address) < start + end:
        return address
    return f"{address[:start]}...{address[-end:]}"


def format_currency(value: Decimal | float | str, decimals: int = 2) -> str:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return f"{0:.{decimals}f}"
    return f"{number:,.{decimals}f}"


def format_shares(size: Decimal | float) -> str:
    return f"{float(size):,.1f}"


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length - 3]}..."


def format_status(status: Snapshot) -> str:
    """Multi-line summary of an account's open positions."""
    lines = [
        "",
        "=== Polymarket Account Monitor: Open Positions ===",
        f"Account: {format_address(status.user)}",
        f"Last updated: {status.last_updated.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        f"Total value: ${format_currency(status.total_value)}",
    ]

    if not status.positions:
        lines.append("No active positions")
    else:
        lines.append(f"Open positions ({status.total_positions}):")
        for i, p in enumerate(status.positions[:_MAX_LISTED_POSITIONS], start=1):
            lines.append(
                f"  {i}. {truncate(p.market.question, 60)} [{p.outcome}]: "
                f"{format_shares(p.quantity)} @ ${float(p.price):.4f}"
            )
        hidden = status.total_positions - _MAX_LISTED_POSITIONS
        if hidden > 0:
            lines.append(f"  ... and {hidden} more")

    return "\n".join(lines)


def format_stats(stats: CopyTradingStats) -> str:
    mode = "dry run" if stats.dry_run else "live"
    last = stats.last_trade_time.isoformat() if stats.last_trade_time else "never"
    return (
        f"Copy trading {'enabled' if stats.enabled else 'disabled'} ({mode}): "
        f"{stats.total_trades_executed} executed, {stats.total_trades_failed} failed, "
        f"volume ${format_currency(stats.total_volume)}, last trade {last}"
    )
