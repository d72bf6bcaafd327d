"""
Position Tracker Agent — polls a target account's open positions on a fixed
cadence and notifies listeners whenever the snapshot changes meaningfully.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Union

from copybot.agents.change_detector import has_significant_change
from copybot.agents.position_poller import fetch_positions
from copybot.config import DEFAULT_POLL_INTERVAL_MS
from copybot.models import PositionsResult, Snapshot
from copybot.utils.errors import ConfigurationError

Fetcher = Callable[[str], Awaitable[PositionsResult]]
UpdateListener = Callable[[Snapshot], Union[None, Awaitable[None]]]
ErrorListener = Callable[[Exception], Union[None, Awaitable[None]]]

# Progress lines are logged at INFO no more often than this
_POLL_LOG_INTERVAL_S = 10.0


class PollingHandle:
    """Cancellation token for a running poll schedule."""

    def __init__(self, task: asyncio.Task, stop_event: asyncio.Event) -> None:
        self._task = task
        self._stop_event = stop_event

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def cancel(self) -> None:
        self._stop_event.set()

    async def wait(self) -> None:
        await self._task


class PositionTracker:
    def __init__(
        self,
        target_address: str,
        fetcher: Fetcher = fetch_positions,
        *,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        logger: logging.Logger | None = None,
    ) -> None:
        if not target_address:
            raise ConfigurationError("Target address is required")
        if poll_interval_ms <= 0:
            raise ConfigurationError("Poll interval must be positive")

        self.target_address = target_address
        self.poll_interval_ms = poll_interval_ms
        self._fetcher = fetcher
        self._log = logger or logging.getLogger(__name__)

        self._update_listeners: list[UpdateListener] = []
        self._error_listeners: list[ErrorListener] = []

        self._handle: PollingHandle | None = None
        self._cycle_task: asyncio.Task | None = None
        self._monitoring = False
        self._polling = False
        self.last_status: Snapshot | None = None
        self.last_poll_time: datetime | None = None
        self._last_progress_log: float | None = None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_update_listener(self, listener: UpdateListener) -> None:
        self._update_listeners.append(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    async def _notify(self, listeners: list, payload: Any) -> None:
        for listener in list(listeners):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                # A broken listener must not stop the others or the poll loop
                self._log.error("Listener %r failed: %s", listener, exc, exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> PollingHandle:
        """
        Run one fetch-and-notify cycle immediately, then schedule a tick every
        ``poll_interval_ms``. Calling start() on a running tracker only warns
        and returns the existing handle.
        """
        if self._monitoring and self._handle is not None:
            self._log.warning("Monitor is already running for %s", self.target_address)
            return self._handle

        self._monitoring = True
        self._log.info("Starting monitor for address: %s", self.target_address)
        self._log.info("Polling interval: %gs", self.poll_interval_ms / 1000)

        # Scheduled before the first fetch; its first tick is one interval away
        # and is skipped if that fetch is still in flight.
        stop_event = asyncio.Event()
        task = asyncio.create_task(self._poll_loop(stop_event), name="copybot-poll-loop")
        handle = self._handle = PollingHandle(task, stop_event)

        # A cycle left over from before a stop() must finish first; cycles never overlap
        while self._cycle_task is not None and not self._cycle_task.done():
            self._log.info("Waiting for the previous poll to finish")
            await self._cycle_task
        self._polling = True
        self._cycle_task = asyncio.create_task(self._update_status())
        await self._cycle_task

        self._log.info("Monitor started")
        return handle

    def stop(self) -> None:
        """Cancel the recurring schedule. A cycle already in flight finishes on its own."""
        if not self._monitoring:
            return

        self._monitoring = False
        if self._handle is not None:
            self._handle.cancel()
        self._log.info("Monitor stopped")

    async def join(self) -> None:
        """Wait for the schedule to end and any in-flight cycle to complete."""
        if self._handle is not None:
            await self._handle.wait()
        if self._cycle_task is not None and not self._cycle_task.done():
            await self._cycle_task

    def is_running(self) -> bool:
        return self._monitoring

    async def _wait_for_tick(self, stop_event: asyncio.Event, interval: float) -> bool:
        """True once *interval* seconds pass, False as soon as the schedule is cancelled."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return True
        return False

    async def _poll_loop(self, stop_event: asyncio.Event) -> None:
        interval = self.poll_interval_ms / 1000
        while await self._wait_for_tick(stop_event, interval):
            self._tick()

    def _tick(self) -> asyncio.Task | None:
        """Launch a cycle unless the previous one is still in flight."""
        if self._polling:
            self._log.debug("Previous poll still in flight, skipping tick")
            return None
        self._polling = True
        self._cycle_task = asyncio.create_task(self._update_status())
        return self._cycle_task

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def _fetch_snapshot(self) -> Snapshot:
        result = await self._fetcher(self.target_address)
        return Snapshot(
            user=self.target_address,
            positions=tuple(result.positions),
            total_value=result.total_value,
            last_updated=datetime.now(timezone.utc),
        )

    async def get_status(self) -> Snapshot:
        """Fetch a fresh snapshot on demand; error listeners hear about failures before they propagate."""
        try:
            return await self._fetch_snapshot()
        except Exception as exc:
            await self._notify(self._error_listeners, exc)
            raise

    async def _update_status(self) -> None:
        self._polling = True
        try:
            try:
                status = await self._fetch_snapshot()
            except Exception as exc:
                # Keep the stale snapshot; the next tick retries
                self._log.error("Update error: %s", exc)
                await self._notify(self._error_listeners, exc)
                return

            self.last_poll_time = status.last_updated
            now = time.monotonic()
            if self._last_progress_log is None or now - self._last_progress_log > _POLL_LOG_INTERVAL_S:
                self._log.info("Polling... Found %d positions", status.total_positions)
                self._last_progress_log = now

            if has_significant_change(self.last_status, status):
                self.last_status = status
                await self._notify(self._update_listeners, status)
        finally:
            self._polling = False
