"""Raydium API v3 and Trade API wrapper.

API v3 serves pool metadata and prices, the Trade API quotes swaps and builds
unsigned versioned transactions for a wallet.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from pydantic import ValidationError

from dex_client.async_rest import AsyncRestClient, AsyncRestError, AsyncRestRequest
from dex_client.constants import (
    POOL_PAGE_SIZE,
    RAYDIUM_API_V3_URL,
    RAYDIUM_TRADE_API_URL,
    TX_VERSION,
)
from dex_client.models import PoolInfo, SwapQuote, SwapRoute

LOGGER = logging.getLogger("mcap_bot.dex_client.raydium")


class RaydiumTradeClient:
    def __init__(
        self,
        api: AsyncRestClient | None = None,
        trade: AsyncRestClient | None = None,
        *,
        max_pool_pages: int = 5,
    ) -> None:
        self.api = api or AsyncRestClient(RAYDIUM_API_V3_URL)
        self.trade = trade or AsyncRestClient(RAYDIUM_TRADE_API_URL)
        self.max_pool_pages = max_pool_pages

    async def close(self) -> None:
        await self.api.close()
        await self.trade.close()

    async def list_pools(self, mint_one: str, mint_two: str) -> list[PoolInfo]:
        """Return every pool Raydium lists for the mint pair."""
        pools: list[PoolInfo] = []
        for page in range(1, self.max_pool_pages + 1):
            response = await self.api.send(
                AsyncRestRequest(
                    method="GET",
                    path="/pools/info/mint",
                    params={
                        "mint1": mint_one,
                        "mint2": mint_two,
                        "poolType": "all",
                        "poolSortField": "default",
                        "sortType": "desc",
                        "pageSize": POOL_PAGE_SIZE,
                        "page": page,
                    },
                )
            )
            data = response.get("data") or {}
            pools.extend(_parse_pools(data.get("data") or []))
            if not data.get("hasNextPage"):
                break
        LOGGER.debug("Listed %d pools for %s/%s", len(pools), mint_one, mint_two)
        return pools

    async def get_pool(self, pool_id: str) -> PoolInfo | None:
        response = await self.api.send(
            AsyncRestRequest(method="GET", path="/pools/info/ids", params={"ids": pool_id})
        )
        for pool in _parse_pools(response.get("data") or []):
            if pool.id == pool_id:
                return pool
        return None

    async def get_usd_price(self, mint: str) -> float | None:
        response = await self.api.send(
            AsyncRestRequest(method="GET", path="/mint/price", params={"mints": mint})
        )
        prices = response.get("data") or {}
        value = prices.get(mint)
        if value in (None, ""):
            return None
        return float(value)

    def get_routes(
        self, input_mint: str, output_mint: str, pools: Iterable[PoolInfo]
    ) -> list[SwapRoute]:
        """Enumerate single-hop routes through the given pools only."""
        return [
            SwapRoute(pool_id=pool.id, input_mint=input_mint, output_mint=output_mint)
            for pool in pools
            if pool.pairs(input_mint, output_mint)
        ]

    async def fetch_route_data(
        self, routes: Sequence[SwapRoute], amount: int, slippage_bps: int
    ) -> list[SwapQuote]:
        """Quote each route, keeping only quotes that stay inside the route set."""
        allowed_pools = {route.pool_id for route in routes}
        quotes: list[SwapQuote] = []
        seen: set[tuple[str, str]] = set()
        for route in routes:
            key = (route.input_mint, route.output_mint)
            if key in seen:
                continue
            seen.add(key)
            quote = await self.compute_swap_base_in(
                route.input_mint, route.output_mint, amount, slippage_bps
            )
            if quote is None:
                continue
            if not quote.route_plan or not quote.pool_ids() <= allowed_pools:
                LOGGER.info(
                    "Discarding quote routed through %s outside pools %s",
                    sorted(quote.pool_ids()),
                    sorted(allowed_pools),
                )
                continue
            quotes.append(quote)
        return quotes

    async def compute_swap_base_in(
        self, input_mint: str, output_mint: str, amount: int, slippage_bps: int
    ) -> SwapQuote | None:
        response = await self.trade.send(
            AsyncRestRequest(
                method="GET",
                path="/compute/swap-base-in",
                params={
                    "inputMint": input_mint,
                    "outputMint": output_mint,
                    "amount": str(amount),
                    "slippageBps": str(slippage_bps),
                    "txVersion": TX_VERSION,
                },
            )
        )
        data = response.get("data")
        if not isinstance(data, Mapping):
            return None
        try:
            return SwapQuote.model_validate({**data, "raw_payload": response})
        except ValidationError as exc:
            raise AsyncRestError(f"Malformed swap quote: {exc}") from exc

    async def build_swap(
        self,
        quote: SwapQuote,
        *,
        wallet: str,
        compute_unit_price_micro_lamports: int,
        wrap_sol: bool,
        unwrap_sol: bool,
        input_account: str | None = None,
        output_account: str | None = None,
    ) -> list[str]:
        """Return base64-encoded unsigned transactions for the quote."""
        body: dict[str, Any] = {
            "computeUnitPriceMicroLamports": str(compute_unit_price_micro_lamports),
            "swapResponse": dict(quote.raw_payload),
            "txVersion": TX_VERSION,
            "wallet": wallet,
            "wrapSol": wrap_sol,
            "unwrapSol": unwrap_sol,
        }
        if input_account:
            body["inputAccount"] = input_account
        if output_account:
            body["outputAccount"] = output_account
        response = await self.trade.send(
            AsyncRestRequest(method="POST", path="/transaction/swap-base-in", body=body)
        )
        entries = response.get("data") or []
        transactions = [
            str(entry["transaction"])
            for entry in entries
            if isinstance(entry, Mapping) and entry.get("transaction")
        ]
        if not transactions:
            raise AsyncRestError("Swap builder returned no transactions")
        return transactions


def _parse_pools(entries: Iterable[Any]) -> list[PoolInfo]:
    pools: list[PoolInfo] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        try:
            pools.append(PoolInfo.model_validate(entry))
        except ValidationError as exc:
            LOGGER.debug("Skipping unparseable pool entry %s: %s", entry.get("id"), exc)
    return pools
