"""
Shared async HTTP client with retry and timeout logic.
"""
from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

from copybot.utils.errors import ApiError

log = logging.getLogger(__name__)

# Default timeouts (seconds)
_CONNECT_TIMEOUT = 10.0
_READ_TIMEOUT = 15.0

# Retry settings
_MAX_RETRIES = 3
_BACKOFF_DELAYS = [5, 15, 45]  # seconds between attempts
_DEFAULT_RETRY_AFTER = 10  # seconds, when a 429 carries no usable Retry-After


def _build_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(connect=_CONNECT_TIMEOUT, read=_READ_TIMEOUT, write=10.0, pool=5.0),
        follow_redirects=True,
        headers={"User-Agent": "polymarket-copy-bot/1.0"},
    )


# Module-level shared client (initialised lazily per async context)
_client: httpx.AsyncClient | None = None


async def get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = _build_client()
    return _client


async def close_client() -> None:
    global _client
    if _client and not _client.is_closed:
        await _client.aclose()
        _client = None


def _retry_after_seconds(value: str | None, default: int = _DEFAULT_RETRY_AFTER) -> int:
    """Parse a Retry-After header given as delta-seconds or as an HTTP-date."""
    if not value:
        return default
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0, math.ceil((when - datetime.now(timezone.utc)).total_seconds()))


async def get_json(
    url: str,
    params: dict | None = None,
    *,
    retries: int = _MAX_RETRIES,
) -> dict | list:
    """
    Perform a GET request and return the parsed JSON response.

    Timeouts, network errors and 429 responses are retried up to *retries* times
    with backoff; no wait follows the last attempt. Every failure that reaches
    the caller is an ApiError: other non-2xx statuses (with ``status_code`` set),
    an undecodable body, or the last transient error once retries are exhausted.
    """
    client = await get_client()

    last_exc: Exception | None = None
    last_status: int | None = None
    for attempt in range(retries):
        final = attempt == retries - 1
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            last_exc = exc
            if final:
                log.warning("Request to %s failed (attempt %d/%d): %s", url, attempt + 1, retries, exc)
                continue
            delay = _BACKOFF_DELAYS[min(attempt, len(_BACKOFF_DELAYS) - 1)]
            log.warning(
                "Request to %s failed (attempt %d/%d): %s, retrying in %ds",
                url, attempt + 1, retries, exc, delay,
            )
            await asyncio.sleep(delay)
            continue
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status != 429:
                raise ApiError(f"GET {url} returned HTTP {status}", status_code=status) from exc
            last_exc, last_status = exc, status
            if final:
                log.warning("Rate-limited by %s on the last attempt", url)
                continue
            retry_after = _retry_after_seconds(exc.response.headers.get("Retry-After"))
            log.warning("Rate-limited by %s, waiting %ds", url, retry_after)
            await asyncio.sleep(retry_after)
            continue

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"GET {url} returned a body that is not valid JSON") from exc

    raise ApiError(
        f"All {retries} attempts to GET {url} failed", status_code=last_status
    ) from last_exc
