"""
Config loader — reads .env and the process environment into typed config objects.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from copybot.utils.errors import ConfigurationError

# Load .env from the project root (one level above copybot/)
_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_ROOT / ".env")

DEFAULT_POLL_INTERVAL_MS = 30_000
MIN_POLL_INTERVAL_MS = 1_000


@dataclass
class CopyTradingConfig:
    enabled: bool = False
    private_key: str = ""
    dry_run: bool = False
    position_size_multiplier: float = 1.0
    max_position_size: float = 10_000.0   # USD per position
    max_trade_size: float = 5_000.0       # USD per order
    min_trade_size: float = 1.0           # USD per order
    slippage_tolerance: float = 1.0       # percent


@dataclass
class MonitoringConfig:
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS


@dataclass
class ApiConfig:
    data_api_url: str = "https://data-api.polymarket.com"
    clob_host: str = "https://clob.polymarket.com"
    chain_id: int = 137  # Polygon mainnet


@dataclass
class AppConfig:
    target_address: str
    copy_trading: CopyTradingConfig = field(default_factory=CopyTradingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = "INFO"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def load_config() -> AppConfig:
    """Load configuration from the environment (and .env)."""
    target = os.getenv("TARGET_ADDRESS", "").strip()
    if not target:
        raise ConfigurationError(
            "TARGET_ADDRESS is not set. Copy .env.example to .env and fill in the address to mirror."
        )

    copy_trading = CopyTradingConfig(
        enabled=_env_bool("COPY_TRADING_ENABLED"),
        private_key=os.getenv("PRIVATE_KEY", "").strip(),
        dry_run=_env_bool("DRY_RUN"),
        position_size_multiplier=_env_float("POSITION_SIZE_MULTIPLIER", 1.0),
        max_position_size=_env_float("MAX_POSITION_SIZE", 10_000.0),
        max_trade_size=_env_float("MAX_TRADE_SIZE", 5_000.0),
        min_trade_size=_env_float("MIN_TRADE_SIZE", 1.0),
        slippage_tolerance=_env_float("SLIPPAGE_TOLERANCE", 1.0),
    )

    # A live run cannot sign orders without a key; dry runs never need one.
    if copy_trading.enabled and not copy_trading.dry_run and not copy_trading.private_key:
        raise ConfigurationError(
            "PRIVATE_KEY is required when copy trading is enabled. Never share your private key!"
        )

    return AppConfig(
        target_address=target,
        copy_trading=copy_trading,
        monitoring=MonitoringConfig(
            poll_interval_ms=_env_int("POLL_INTERVAL", DEFAULT_POLL_INTERVAL_MS),
        ),
        api=ApiConfig(
            data_api_url=os.getenv("POLYMARKET_DATA_API_URL") or ApiConfig.data_api_url,
            clob_host=os.getenv("CLOB_HOST") or ApiConfig.clob_host,
            chain_id=_env_int("CHAIN_ID", ApiConfig.chain_id),
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip() or "INFO",
    )


def validate_config(config: AppConfig) -> None:
    """Raise ConfigurationError if *config* holds values the bot cannot run with."""
    if not config.target_address.startswith("0x"):
        raise ConfigurationError("Invalid target address format (expected 0x...)")

    ct = config.copy_trading
    if ct.enabled:
        if ct.private_key and not ct.private_key.startswith("0x"):
            raise ConfigurationError("Invalid private key format (expected 0x...)")
        if ct.position_size_multiplier <= 0:
            raise ConfigurationError("Position size multiplier must be greater than 0")
        if ct.min_trade_size <= 0:
            raise ConfigurationError("Minimum trade size must be greater than 0")
        if ct.max_trade_size < ct.min_trade_size:
            raise ConfigurationError(
                "Maximum trade size must be greater than or equal to minimum trade size"
            )

    if config.monitoring.poll_interval_ms < MIN_POLL_INTERVAL_MS:
        raise ConfigurationError(
            f"Poll interval must be at least {MIN_POLL_INTERVAL_MS}ms (1 second)"
        )
