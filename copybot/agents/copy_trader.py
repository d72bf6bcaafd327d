"""
Copy Trader Agent — turns Position Tracker updates into buy/sell orders.

A position that appears in the target account is bought; a position that
disappears is sold, but only if this process bought it. The set of such ids
(the execution ledger) is what keeps repeated updates idempotent.

Known gap, kept on purpose: the target map is replaced after every cycle even
when orders fail, so a failed buy is retried only if the position is seen as
new again, and a failed sell only if the id goes from present to absent again.
Retrying independently would need a pending-intent set kept apart from the diff.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from copybot.agents.change_detector import diff_positions
from copybot.agents.order_gateway import OrderGateway
from copybot.agents.position_tracker import PositionTracker
from copybot.config import CopyTradingConfig
from copybot.models import CopyTradingStats, OrderResult, OrderSide, Position, Snapshot


class CopyTradeEngine:
    def __init__(
        self,
        tracker: PositionTracker,
        gateway: OrderGateway,
        config: CopyTradingConfig,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.tracker = tracker
        self.gateway = gateway
        self._config = config
        self._log = logger or logging.getLogger(__name__)

        self._executed: set[str] = set()
        self._target_positions: dict[str, Position] = {}
        self._stats = CopyTradingStats(enabled=config.enabled, dry_run=config.dry_run)

        tracker.add_update_listener(self.handle_status_update)
        tracker.add_error_listener(self._on_tracker_error)

    @property
    def executed_positions(self) -> frozenset[str]:
        return frozenset(self._executed)

    def get_stats(self) -> CopyTradingStats:
        return replace(self._stats)

    def is_running(self) -> bool:
        return self.tracker.is_running()

    async def start(self) -> None:
        if not self._config.enabled:
            self._log.warning("Copy trading is disabled. Starting monitor only...")
            await self.tracker.start()
            return

        self._log.info("Starting copy trading monitor...")
        self._log.info("Target address: %s", self.tracker.target_address)
        if self._config.dry_run:
            self._log.info("DRY RUN MODE: no actual trades will be executed")
        else:
            self._log.info("LIVE MODE: trades will be executed")

        try:
            await self.gateway.initialize()
        except Exception as exc:
            self._log.error("Failed to initialise order gateway: %s", exc)
            if not self._config.dry_run:
                raise
        else:
            self._log.info("Trading wallet: %s", self.gateway.wallet_address())

        await self.tracker.start()
        self._log.info("Copy trading monitor started")

    def stop(self) -> None:
        self.tracker.stop()
        self._log.info("Copy trading monitor stopped")

    def _on_tracker_error(self, exc: Exception) -> None:
        self._log.error("Copy trading monitor error: %s", exc)

    async def handle_status_update(self, status: Snapshot) -> None:
        """Diff *status* against the previous target positions and execute the result."""
        if not self._config.enabled:
            return

        current = status.position_map()
        diff = diff_positions(self._target_positions, current)

        for position in diff.opened:
            if position.id in self._executed:
                continue
            self._log.info(
                "New position detected: %s | %s | %s shares @ $%s",
                position.market.question, position.outcome, position.quantity, position.price,
            )
            if await self._execute("BUY", position):
                self._executed.add(position.id)

        for position in diff.closed:
            # Only sell what we bought ourselves
            if position.id not in self._executed:
                continue
            self._log.info(
                "Position closed: %s | %s | %s shares @ $%s",
                position.market.question, position.outcome, position.quantity, position.price,
            )
            if await self._execute("SELL", position):
                self._executed.discard(position.id)

        self._target_positions = current

    async def _execute(self, side: OrderSide, position: Position) -> bool:
        """Place one order and fold its outcome into the stats. Never raises."""
        place = self.gateway.buy if side == "BUY" else self.gateway.sell
        try:
            result = await place(position)
        except Exception as exc:
            self._stats.total_trades_failed += 1
            self._log.error("Error executing %s order for %s: %s", side.lower(), position.id, exc)
            return False

        if not result.success:
            self._stats.total_trades_failed += 1
            self._log.error("Failed to execute %s order for %s: %s", side.lower(), position.id, result.error)
            return False

        self._record_fill(result)
        return True

    def _record_fill(self, result: OrderResult) -> None:
        self._stats.total_trades_executed += 1
        self._stats.total_volume += result.notional
        self._stats.last_trade_time = datetime.now(timezone.utc)
