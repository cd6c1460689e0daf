"""Price feed configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_ORDER = ("kucoin", "kraken", "coinbase", "coingecko")
DEFAULT_CACHE_TTL = 30.0
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_HISTORY_CAPACITY = 1440
DEFAULT_HISTORY_SAMPLE = 60.0  # With the default capacity, 24h of history


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        value = -1.0
    if value <= 0:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime settings. Build with Settings.from_env(); tests construct directly."""

    mode: str = "live"  # "live" or "simulated"
    cache_ttl: float = DEFAULT_CACHE_TTL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    history_sample: float = DEFAULT_HISTORY_SAMPLE
    source_order: tuple[str, ...] = DEFAULT_SOURCE_ORDER
    coingecko_api_key: str = ""
    log_level: str = "INFO"

    @property
    def simulated(self) -> bool:
        return self.mode == "simulated"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Read PRICE_* variables (and COINGECKO_API_KEY, LOG_LEVEL)."""
        env = os.environ if env is None else env

        mode = env.get("PRICE_FEED_MODE", "live").strip().lower() or "live"
        if mode not in ("live", "simulated"):
            logger.warning("Unknown PRICE_FEED_MODE=%r, using live", mode)
            mode = "live"

        order_raw = env.get("PRICE_SOURCE_ORDER", "").strip()
        source_order = (
            tuple(name.strip().lower() for name in order_raw.split(",") if name.strip())
            if order_raw
            else DEFAULT_SOURCE_ORDER
        )

        log_level = env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
        if not isinstance(logging.getLevelName(log_level), int):
            log_level = "INFO"

        return cls(
            mode=mode,
            cache_ttl=_env_float(env, "PRICE_CACHE_TTL", DEFAULT_CACHE_TTL),
            poll_interval=_env_float(env, "PRICE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            http_timeout=_env_float(env, "PRICE_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            history_capacity=max(
                1, int(_env_float(env, "PRICE_HISTORY_CAPACITY", DEFAULT_HISTORY_CAPACITY))
            ),
            history_sample=_env_float(env, "PRICE_HISTORY_SAMPLE", DEFAULT_HISTORY_SAMPLE),
            source_order=source_order,
            coingecko_api_key=env.get("COINGECKO_API_KEY", "").strip(),
            log_level=log_level,
        )
