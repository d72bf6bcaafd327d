"""
Order Gateway Agent — turns a copied position into a sized limit order on the
Polymarket CLOB, or simulates the fill when running dry.
"""
from __future__ import annotations

import asyncio
import logging
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Protocol

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import OrderArgs, OrderType
from py_clob_client.order_builder.constants import BUY, SELL

from copybot.config import ApiConfig, CopyTradingConfig
from copybot.models import OrderResult, OrderSide, Position
from copybot.utils.errors import TradeExecutionError

_SIZE_STEP = Decimal("0.01")
_PRICE_TICK = Decimal("0.01")
_MIN_PRICE = Decimal("0.01")
_MAX_PRICE = Decimal("0.99")


class OrderGateway(Protocol):
    async def initialize(self) -> None: ...

    async def buy(self, position: Position) -> OrderResult: ...

    async def sell(self, position: Position) -> OrderResult: ...

    def wallet_address(self) -> str: ...


def limit_price(price: Decimal, side: OrderSide, slippage_pct: Decimal) -> Decimal:
    """Worst acceptable price: above market for buys, below for sells, clamped to [0.01, 0.99]."""
    factor = slippage_pct / Decimal("100")
    raw = price * (1 + factor) if side == "BUY" else price * (1 - factor)
    tick = raw.quantize(_PRICE_TICK, rounding=ROUND_HALF_UP)
    return min(max(tick, _MIN_PRICE), _MAX_PRICE)


def size_buy(position: Position, config: CopyTradingConfig) -> Decimal | None:
    """
    Shares to buy when copying *position*.

    The target's quantity is scaled by the multiplier and its notional capped by
    both the per-order and per-position USD limits. Returns None when the price
    is unusable or the result falls under the minimum trade size.
    """
    if position.price <= 0:
        return None

    size = position.quantity * Decimal(str(config.position_size_multiplier))
    cap = min(Decimal(str(config.max_trade_size)), Decimal(str(config.max_position_size)))
    if size * position.price > cap:
        size = cap / position.price
    size = size.quantize(_SIZE_STEP, rounding=ROUND_DOWN)

    if size <= 0 or size * position.price < Decimal(str(config.min_trade_size)):
        return None
    return size


class ClobOrderGateway:
    """
    Places copy orders through py-clob-client.

    In dry-run mode nothing is transmitted: orders are sized exactly as in a
    live run and reported back as filled at their limit price.
    """

    def __init__(
        self,
        config: CopyTradingConfig,
        api: ApiConfig | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._api = api or ApiConfig()
        self._log = logger or logging.getLogger(__name__)
        self._client: ClobClient | None = None
        # Shares filled per position id, so a sell unwinds what we actually hold
        self._holdings: dict[str, Decimal] = {}

    @property
    def dry_run(self) -> bool:
        return self._config.dry_run

    def wallet_address(self) -> str:
        if self._client is None:
            return "(not initialised)"
        return self._client.get_address() or "(unknown)"

    async def initialize(self) -> None:
        if self._client is not None:
            return
        if not self._config.private_key:
            raise TradeExecutionError("No private key configured, cannot sign orders")

        try:
            client = ClobClient(
                self._api.clob_host,
                key=self._config.private_key,
                chain_id=self._api.chain_id,
            )
            creds = await asyncio.to_thread(client.create_or_derive_api_creds)
            client.set_api_creds(creds)
        except Exception as exc:
            raise TradeExecutionError(f"Failed to initialise CLOB client: {exc}") from exc

        self._client = client
        self._log.info("Order gateway initialised for wallet %s", self.wallet_address())

    async def buy(self, position: Position) -> OrderResult:
        size = size_buy(position, self._config)
        if size is None:
            return OrderResult(
                success=False,
                error=f"Order for {position.id} is below the minimum trade size of ${self._config.min_trade_size}",
            )

        result = await self._place(position, "BUY", size)
        if result.success:
            filled = result.executed_quantity or size
            self._holdings[position.id] = self._holdings.get(position.id, Decimal("0")) + filled
        return result

    async def sell(self, position: Position) -> OrderResult:
        size = self._holdings.get(position.id) or size_buy(position, self._config)
        if not size:
            return OrderResult(success=False, error=f"No size to sell for {position.id}")

        result = await self._place(position, "SELL", size)
        if result.success:
            self._holdings.pop(position.id, None)
        return result

    async def _place(self, position: Position, side: OrderSide, size: Decimal) -> OrderResult:
        price = limit_price(position.price, side, Decimal(str(self._config.slippage_tolerance)))

        if self.dry_run:
            self._log.info(
                "[DRY RUN] %s %s shares of %s (%s) @ $%s",
                side, size, position.market.question, position.outcome, price,
            )
            return OrderResult(
                success=True,
                executed_quantity=size,
                executed_price=price,
                order_id=f"dry-run-{side.lower()}-{position.id}",
            )

        if self._client is None:
            return OrderResult(success=False, error="Order gateway is not initialised")

        args = OrderArgs(
            token_id=position.id,
            price=float(price),
            size=float(size),
            side=BUY if side == "BUY" else SELL,
        )
        try:
            signed = await asyncio.to_thread(self._client.create_order, args)
            response = await asyncio.to_thread(self._client.post_order, signed, OrderType.GTC)
        except Exception as exc:
            self._log.error("%s order for %s failed: %s", side, position.id, exc)
            return OrderResult(success=False, error=str(exc))

        if not isinstance(response, dict) or not response.get("success"):
            message = response.get("errorMsg") if isinstance(response, dict) else None
            return OrderResult(success=False, error=message or "Order submission failed")

        self._log.info("%s order placed for %s: %s shares @ $%s", side, position.id, size, price)
        return OrderResult(
            success=True,
            executed_quantity=size,
            executed_price=price,
            order_id=response.get("orderID"),
        )
