"""
main.py — Entry point. Wires the tracker, gateway and copy-trade engine and
runs until interrupted.

Run with:
    python -m copybot.main
"""
from __future__ import annotations

import asyncio
import functools
import logging

from copybot.agents.copy_trader import CopyTradeEngine
from copybot.agents.order_gateway import ClobOrderGateway
from copybot.agents.position_poller import fetch_positions
from copybot.agents.position_tracker import PositionTracker
from copybot.config import AppConfig, load_config, validate_config
from copybot.models import Snapshot
from copybot.utils.errors import TradeExecutionError
from copybot.utils.formatters import format_stats, format_status
from copybot.utils.http_client import close_client
from copybot.utils.logger import setup_logging

log = logging.getLogger(__name__)


def build_engine(config: AppConfig, logger: logging.Logger) -> CopyTradeEngine:
    """Assemble the engine and its collaborators from *config*, sharing *logger*."""
    tracker = PositionTracker(
        config.target_address,
        functools.partial(fetch_positions, base_url=config.api.data_api_url),
        poll_interval_ms=config.monitoring.poll_interval_ms,
        logger=logger.getChild("tracker"),
    )
    gateway = ClobOrderGateway(
        config.copy_trading,
        config.api,
        logger=logger.getChild("gateway"),
    )
    engine = CopyTradeEngine(
        tracker,
        gateway,
        config.copy_trading,
        logger=logger.getChild("engine"),
    )

    def _log_status(status: Snapshot) -> None:
        logger.info(format_status(status))

    tracker.add_update_listener(_log_status)
    return engine


async def main() -> None:
    try:
        config = load_config()
        validate_config(config)
    except ValueError as exc:
        setup_logging()
        log.critical("Configuration error: %s", exc)
        return

    logger = setup_logging(config.log_level)
    logger.info("Polymarket Copy Bot starting for %s", config.target_address)

    engine = build_engine(config, logger)
    try:
        try:
            await engine.start()
        except TradeExecutionError as exc:
            logger.critical("Startup aborted: %s", exc)
            return

        # Runs until the poll loop is stopped or the task is cancelled (Ctrl+C)
        await engine.tracker.join()
    finally:
        engine.stop()
        logger.info(format_stats(engine.get_stats()))
        await close_client()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log.info("Shutting down ...")


if __name__ == "__main__":
    run()
