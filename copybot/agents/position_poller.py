"""
Position Poller Agent — fetches the current open positions for a given wallet address.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from copybot.models import Market, Position, PositionsResult
from copybot.utils.errors import ApiError
from copybot.utils.http_client import get_json

log = logging.getLogger(__name__)

DATA_API_BASE = "https://data-api.polymarket.com"


async def fetch_positions(wallet_address: str, *, base_url: str = DATA_API_BASE) -> PositionsResult:
    """
    Fetch all current open positions for *wallet_address* from the Data API.

    Parameters
    ----------
    wallet_address : str
        The account's Polygon wallet address (0x...).
    base_url : str
        Data API root, overridable through POLYMARKET_DATA_API_URL.

    Returns
    -------
    PositionsResult
        Parsed positions (ids unique) and their summed current value.

    Raises
    ------
    ApiError
        On any transport failure or a response shape we cannot decode.
    """
    log.debug("Fetching positions for %s …", wallet_address)

    raw: list | dict = await get_json(
        f"{base_url.rstrip('/')}/positions",
        params={"user": wallet_address},
    )

    # The API returns a list of position objects directly
    if isinstance(raw, dict):
        # Some endpoints wrap in {"positions": [...]} or {"data": [...]}
        raw = raw.get("positions") or raw.get("data") or []
    if not isinstance(raw, list):
        raise ApiError(f"Unexpected positions payload type: {type(raw).__name__}")

    positions: list[Position] = []
    seen: set[str] = set()
    for item in raw:
        try:
            position = _parse_position(item)
        except (AttributeError, InvalidOperation, TypeError, ValueError) as exc:
            log.warning("Failed to parse position entry: %s (%s)", item, exc)
            continue

        if not position.id or position.quantity <= 0:
            continue
        if position.id in seen:
            log.warning("Duplicate position id %s in response, keeping the first entry", position.id)
            continue
        seen.add(position.id)
        positions.append(position)

    total_value = sum((p.value for p in positions), Decimal("0"))
    log.debug("Fetched %d position(s) worth $%s for %s", len(positions), total_value, wallet_address)
    return PositionsResult(positions=positions, total_value=total_value)


def _decimal(value: object) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def _parse_position(item: dict) -> Position:
    """Convert a raw API response dict into a Position."""
    quantity = _decimal(item.get("size") or item.get("shares"))
    price = _decimal(item.get("curPrice") or item.get("currentPrice") or item.get("avgPrice"))
    value = item.get("currentValue") or item.get("value")
    return Position(
        id=str(item.get("asset") or item.get("tokenId") or item.get("token_id") or ""),
        market=Market(
            question=item.get("title") or item.get("question") or "",
            market_id=item.get("conditionId") or item.get("condition_id") or "",
            slug=item.get("slug") or item.get("marketSlug") or "",
            event_slug=item.get("eventSlug") or item.get("event_slug") or "",
        ),
        outcome=_parse_outcome(item),
        quantity=quantity,
        price=price,
        value=_decimal(value) if value is not None else quantity * price,
    )


def _parse_outcome(item: dict) -> str:
    """Extract the outcome label from a position item."""
    outcome = item.get("outcome") or item.get("side") or ""
    if outcome:
        return str(outcome)
    # Fallback: some shapes use a boolean "isYes" flag
    is_yes = item.get("isYes")
    if is_yes is True:
        return "Yes"
    if is_yes is False:
        return "No"
    return "Unknown"
