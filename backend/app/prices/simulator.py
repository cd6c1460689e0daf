"""GBM-based price simulator, used as an offline upstream."""

from __future__ import annotations

import logging
import math
import random
import time
from collections.abc import Callable, Mapping
from typing import Any

import numpy as np

from .batch import BatchLookup
from .models import PriceUpdate, Quote
from .sources import SourceAdapter, TokenPriceSource
from .token_ids import ASSET_PARAMS, DEFAULT_PARAMS, SEED_PRICES, SYMBOLS, TOKEN_ID_MAP

logger = logging.getLogger(__name__)

SOL_GROUP = {"solana", "marinade-staked-sol"}
STABLECOINS = {"usd-coin", "tether"}
INTRA_SOL_CORR = 0.95  # mSOL tracks SOL closely
DEFAULT_CORR = 0.3


class PriceSimulator:
    """Geometric Brownian Motion simulator for correlated crypto prices.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Crypto trades around the clock, so dt is the wall-clock time since the
    previous advance() expressed as a fraction of a calendar year. Prices
    therefore move at the same pace however often they are read.
    """

    SECONDS_PER_YEAR = 365 * 24 * 3600

    def __init__(
        self,
        assets: list[str] | None = None,
        event_probability: float = 0.001,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._event_prob = event_probability
        self._clock = clock
        self._last_advance = clock()

        self._assets: list[str] = []
        self._prices: dict[str, float] = {}
        self._opening: dict[str, float] = {}
        self._params: dict[str, dict[str, float]] = {}
        self._cholesky: np.ndarray | None = None

        for asset in assets if assets is not None else list(SEED_PRICES):
            self._add_asset_internal(asset)
        self._rebuild_cholesky()

    # --- Public API ---

    def advance(self) -> dict[str, float]:
        """Move every asset forward to the current clock time. Returns {asset: price}."""
        now = self._clock()
        elapsed = max(now - self._last_advance, 0.0)
        self._last_advance = now
        n = len(self._assets)
        if n == 0 or elapsed == 0:
            return dict(self._prices)

        dt = elapsed / self.SECONDS_PER_YEAR
        z = np.random.standard_normal(n)
        if self._cholesky is not None:
            z = self._cholesky @ z

        for i, asset in enumerate(self._assets):
            mu = self._params[asset]["mu"]
            sigma = self._params[asset]["sigma"]
            drift = (mu - 0.5 * sigma**2) * dt
            diffusion = sigma * math.sqrt(dt) * z[i]
            self._prices[asset] *= math.exp(drift + diffusion)

            # Occasional shock, never on stablecoins
            if asset not in STABLECOINS and random.random() < self._event_prob:
                shock = random.uniform(0.02, 0.05) * random.choice([-1, 1])
                self._prices[asset] *= 1 + shock
                logger.debug("Random event on %s: %+.1f%%", asset, shock * 100)

        return dict(self._prices)

    def add_asset(self, asset: str) -> None:
        if asset in self._prices:
            return
        self._add_asset_internal(asset)
        self._rebuild_cholesky()

    def get_price(self, asset: str) -> float | None:
        return self._prices.get(asset)

    def change_percent(self, asset: str) -> float:
        """Change since the asset entered the simulation, in percent."""
        opening = self._opening.get(asset)
        if not opening:
            return 0.0
        return (self._prices[asset] - opening) / opening * 100

    @property
    def assets(self) -> list[str]:
        return list(self._assets)

    # --- Internals ---

    def _add_asset_internal(self, asset: str) -> None:
        if asset in self._prices:
            return
        self._assets.append(asset)
        price = SEED_PRICES.get(asset, random.uniform(0.01, 10.0))
        self._prices[asset] = price
        self._opening[asset] = price
        self._params[asset] = ASSET_PARAMS.get(asset, dict(DEFAULT_PARAMS))

    def _rebuild_cholesky(self) -> None:
        n = len(self._assets)
        if n <= 1:
            self._cholesky = None
            return

        corr = np.eye(n)
        for i in range(n):
            for j in range(i + 1, n):
                rho = self._pairwise_correlation(self._assets[i], self._assets[j])
                corr[i, j] = rho
                corr[j, i] = rho
        self._cholesky = np.linalg.cholesky(corr)

    @staticmethod
    def _pairwise_correlation(a: str, b: str) -> float:
        """Stablecoins: 0. SOL and mSOL: 0.95. Everything else: 0.3."""
        if a in STABLECOINS or b in STABLECOINS:
            return 0.0
        if a in SOL_GROUP and b in SOL_GROUP:
            return INTRA_SOL_CORR
        return DEFAULT_CORR


class SimulatedSource(SourceAdapter):
    """Single-asset quote source reading from the simulator."""

    name = "simulator"

    def __init__(self, simulator: PriceSimulator, asset: str = "solana") -> None:
        self._sim = simulator
        self._asset = asset
        simulator.add_asset(asset)

    async def _fetch_quote(self) -> Quote:
        self._sim.advance()
        return Quote(
            price=round(self._sim.get_price(self._asset), 6),
            change_24h=self._sim.change_percent(self._asset),
        )


class SimulatedTokenSource(TokenPriceSource):
    """Per-mint updates from the simulator. Unknown mints get a random seed."""

    name = "simulator"

    def __init__(self, simulator: PriceSimulator, id_map: Mapping[str, str] = TOKEN_ID_MAP) -> None:
        self._sim = simulator
        self._id_map = dict(id_map)

    async def _fetch_update(self, mint: str) -> PriceUpdate:
        asset = self._id_map.get(mint, mint)
        self._sim.add_asset(asset)
        self._sim.advance()
        return PriceUpdate(
            mint=mint,
            symbol=SYMBOLS.get(asset, "UNKNOWN"),
            price=self._sim.get_price(asset),
            change_24h=self._sim.change_percent(asset),
        )


class SimulatedBatchLookup(BatchLookup):
    """BatchLookup answering from the simulator in CoinGecko's response shape."""

    def __init__(self, simulator: PriceSimulator, id_map: Mapping[str, str] = TOKEN_ID_MAP) -> None:
        super().__init__(client=None, id_map=id_map)
        self._sim = simulator

    async def _fetch_batch(self, upstream_ids: list[str]) -> Any:
        for asset in upstream_ids:
            self._sim.add_asset(asset)
        self._sim.advance()
        return {
            asset: {"usd": self._sim.get_price(asset), "usd_24h_change": self._sim.change_percent(asset)}
            for asset in upstream_ids
        }
