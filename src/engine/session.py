"""
Session factory - the single place that builds RPC and routing clients.

The bot never keeps a module-level client: ``load_session`` returns an explicit
``Session`` that the runner owns and passes to every component.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from solders.keypair import Keypair

from dex_client.async_rest import AsyncRestClient
from dex_client.constants import (
    DEFAULT_RPC_URL,
    NATIVE_MINT,
    RAYDIUM_API_V3_URL,
    RAYDIUM_TRADE_API_URL,
)
from dex_client.ledger import SolanaLedgerGateway
from dex_client.models import PoolInfo
from dex_client.raydium import RaydiumTradeClient
from engine.errors import PoolNotFound
from engine.gateways import LedgerGateway, RoutingClient
from utils.config_validator import ConfigurationError

LOGGER = logging.getLogger("mcap_bot.engine.session")


@dataclass
class Session:
    owner: Keypair
    ledger: LedgerGateway
    router: RoutingClient

    @property
    def owner_address(self) -> str:
        return str(self.owner.pubkey())

    async def close(self) -> None:
        try:
            await self.router.close()
        finally:
            await self.ledger.close()


def build_ledger(config: dict[str, Any]) -> SolanaLedgerGateway:
    """
    Build the Solana RPC gateway from config.

    Args:
        config: Configuration dict containing:
            - rpc_url: str (default: public mainnet-beta endpoint)
            - call_timeout_sec: float (default: 20.0) - RPC request timeout

    Returns:
        SolanaLedgerGateway: gateway bound to the configured endpoint
    """
    rpc_url = config.get("rpc_url") or DEFAULT_RPC_URL
    if rpc_url == DEFAULT_RPC_URL:
        LOGGER.warning(
            "Using the free public RPC node may cause unexpected errors; "
            "a paid RPC endpoint is strongly recommended."
        )
    LOGGER.info("Connecting to RPC %s", rpc_url)
    timeout = float(config.get("call_timeout_sec", 20.0))
    return SolanaLedgerGateway(rpc_url, timeout=timeout)


def build_router(config: dict[str, Any]) -> RaydiumTradeClient:
    """
    Build the Raydium API client from config.

    Args:
        config: Configuration dict containing:
            - raydium_api_url: str (default: API v3 host)
            - raydium_trade_url: str (default: Trade API host)
            - call_timeout_sec: float (default: 20.0) - HTTP request timeout
            - rest_retries: int (default: 3) - Max retries for quotes/builds
            - rest_backoff_factor: float (default: 0.5) - Backoff multiplier
    """
    timeout = float(config.get("call_timeout_sec", 20.0))
    retries = int(config.get("rest_retries", 3))
    backoff = float(config.get("rest_backoff_factor", 0.5))
    api = AsyncRestClient(
        config.get("raydium_api_url", RAYDIUM_API_V3_URL),
        timeout=timeout,
        max_retries=retries,
        backoff_factor=backoff,
    )
    trade = AsyncRestClient(
        config.get("raydium_trade_url", RAYDIUM_TRADE_API_URL),
        timeout=timeout,
        max_retries=retries,
        backoff_factor=backoff,
    )
    return RaydiumTradeClient(api, trade)


def load_session(owner: Keypair, config: dict[str, Any]) -> Session:
    """Bind the wallet to freshly built ledger and routing clients."""
    session = Session(owner=owner, ledger=build_ledger(config), router=build_router(config))
    LOGGER.info("Session ready for wallet %s", session.owner_address)
    return session


async def resolve_pool(router: RoutingClient, token_mint: str, pool_id: str) -> PoolInfo:
    """Find the configured pool among the pools listed for token/SOL.

    Raises:
        PoolNotFound: no listed pool carries ``pool_id``
        ConfigurationError: the pool exists but does not pair the token with SOL
    """
    pools = await router.list_pools(token_mint, NATIVE_MINT)
    pool = next((candidate for candidate in pools if candidate.id == pool_id), None)
    if pool is None:
        raise PoolNotFound(
            f"Pool {pool_id} not found among {len(pools)} pools listed for "
            f"{token_mint}. Check POOL_ID."
        )
    if not pool.pairs(token_mint, NATIVE_MINT):
        raise ConfigurationError(
            f"Pool {pool_id} does not pair {token_mint} with native SOL."
        )
    LOGGER.info(
        "Monitoring pool %s (%s %s/%s)",
        pool.id,
        pool.type or "unknown",
        pool.mint_a.symbol or pool.mint_a.address,
        pool.mint_b.symbol or pool.mint_b.address,
    )
    return pool
