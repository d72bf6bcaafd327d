"""
Data models used across the Polymarket Copy Bot.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal


@dataclass(frozen=True)
class Market:
    question: str            # e.g. "Will Oscar Piastri be the 2026 F1 Drivers' Champion?"
    market_id: str           # on-chain condition ID
    slug: str = ""           # e.g. "will-oscar-piastri-be-the-2026-f1-drivers-champion"
    event_slug: str = ""     # e.g. "2026-f1-drivers-champion"


@dataclass(frozen=True)
class Position:
    id: str                  # CLOB token ID (unique key per market outcome)
    market: Market
    outcome: str             # "Yes" / "No" or a named outcome
    quantity: Decimal        # Number of shares held
    price: Decimal           # Current market price (0.0 – 1.0)
    value: Decimal = Decimal("0")  # Current value in USD


@dataclass(frozen=True)
class PositionsResult:
    positions: list[Position]
    total_value: Decimal


@dataclass(frozen=True)
class Snapshot:
    user: str
    positions: tuple[Position, ...]
    total_value: Decimal
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_positions(self) -> int:
        return len(self.positions)

    def position_map(self) -> dict[str, Position]:
        return {p.id: p for p in self.positions}


OrderSide = Literal["BUY", "SELL"]


@dataclass(frozen=True)
class OrderResult:
    success: bool
    executed_quantity: Decimal | None = None
    executed_price: Decimal | None = None
    error: str | None = None
    order_id: str | None = None

    @property
    def notional(self) -> Decimal:
        return (self.executed_quantity or Decimal("0")) * (self.executed_price or Decimal("0"))


@dataclass
class CopyTradingStats:
    enabled: bool
    dry_run: bool
    total_trades_executed: int = 0
    total_trades_failed: int = 0
    total_volume: Decimal = Decimal("0")
    last_trade_time: datetime | None = None
