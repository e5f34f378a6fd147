"""Pool price oracle and market-cap calculation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from dex_client.constants import NATIVE_MINT
from dex_client.models import MintInfo, PoolInfo
from engine.errors import PriceUnavailable, SupplyUnavailable
from engine.gateways import LedgerGateway, RoutingClient

LOGGER = logging.getLogger("mcap_bot.engine.market_data")


@dataclass(frozen=True)
class MarketSnapshot:
    price: float
    mint_info: MintInfo
    market_cap: float


def orient_price(pool: PoolInfo, token_mint: str) -> float | None:
    """Return the pool price as quote units per target token.

    Raydium quotes ``price`` as ``mint_b`` per ``mint_a``.
    """
    if pool.price is None:
        return None
    if pool.mint_a.address == token_mint:
        return pool.price
    if pool.mint_b.address == token_mint:
        return 1 / pool.price if pool.price else None
    return None


def market_cap_from(mint_info: MintInfo, price: float) -> float:
    """Normalized supply times unit price.

    Plain float arithmetic: very large supplies lose precision in the last
    digits, which is acceptable for threshold comparisons.
    """
    return mint_info.normalized_supply * price


class PriceOracle:
    def __init__(
        self,
        router: RoutingClient,
        token_mint: str,
        *,
        usd_denominated: bool = False,
    ) -> None:
        self.router = router
        self.token_mint = token_mint
        self.usd_denominated = usd_denominated

    async def get_price(self, pool: PoolInfo) -> float:
        """Return the current unit price of the target token.

        SOL per token by default, USD per token when ``usd_denominated``.
        """
        try:
            snapshot = await self.router.get_pool(pool.id)
        except Exception as exc:
            raise PriceUnavailable(f"Price query for pool {pool.id} failed: {exc}") from exc
        if snapshot is None:
            raise PriceUnavailable(f"Pool {pool.id} is no longer listed")
        price = orient_price(snapshot, self.token_mint)
        if price is None:
            raise PriceUnavailable(f"Pool {pool.id} does not report a price")
        if self.usd_denominated:
            price *= await self._native_usd_price()
        if not math.isfinite(price) or price <= 0:
            raise PriceUnavailable(f"Pool {pool.id} reported invalid price {price}")
        LOGGER.debug("Pool %s price: %s", pool.id, price)
        return price

    async def _native_usd_price(self) -> float:
        try:
            usd_price = await self.router.get_usd_price(NATIVE_MINT)
        except Exception as exc:
            raise PriceUnavailable(f"SOL/USD price query failed: {exc}") from exc
        if usd_price is None or usd_price <= 0:
            raise PriceUnavailable("SOL/USD price unavailable")
        return usd_price


class MarketCapCalculator:
    def __init__(self, ledger: LedgerGateway, oracle: PriceOracle) -> None:
        self.ledger = ledger
        self.oracle = oracle

    async def compute_market_cap(self, mint_address: str, price: float) -> float:
        mint_info = await self._fetch_mint_info(mint_address)
        return market_cap_from(mint_info, price)

    async def fetch_market_cap(self, mint_address: str, pool: PoolInfo) -> MarketSnapshot:
        """Price first, then supply; a failed price query skips the mint lookup."""
        price = await self.oracle.get_price(pool)
        mint_info = await self._fetch_mint_info(mint_address)
        market_cap = market_cap_from(mint_info, price)
        LOGGER.debug(
            "Supply: %s, price: %s, market cap: %s",
            mint_info.normalized_supply,
            price,
            market_cap,
        )
        return MarketSnapshot(price=price, mint_info=mint_info, market_cap=market_cap)

    async def _fetch_mint_info(self, mint_address: str) -> MintInfo:
        try:
            return await self.ledger.get_mint_info(mint_address)
        except Exception as exc:
            raise SupplyUnavailable(
                f"Mint lookup for {mint_address} failed: {exc}"
            ) from exc
