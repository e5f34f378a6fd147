"""Collaborator interfaces for engine integrations."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from solders.keypair import Keypair

from dex_client.models import MintInfo, PoolInfo, SwapQuote, SwapRoute, TokenAccount


class LedgerGateway(Protocol):
    async def get_account_info(self, address: str) -> int:
        """Return the lamport balance of an account."""

    async def get_token_accounts_by_owner(
        self, owner: str, program_id: str
    ) -> list[TokenAccount]:
        """Return the owner's token accounts under a token program."""

    async def get_mint_info(self, mint: str) -> MintInfo:
        """Return raw supply and decimals for a mint."""

    async def send_transaction(self, encoded: str, signer: Keypair) -> str:
        """Sign and submit a base64 transaction, returning its signature."""

    async def confirm_transaction(self, signature: str) -> None:
        """Wait for confirmation, raising when the transaction failed."""

    async def close(self) -> None:
        """Release the RPC connection."""


class RoutingClient(Protocol):
    async def list_pools(self, mint_one: str, mint_two: str) -> list[PoolInfo]:
        """Return pools trading the mint pair."""

    async def get_pool(self, pool_id: str) -> PoolInfo | None:
        """Return a fresh snapshot of a pool."""

    async def get_usd_price(self, mint: str) -> float | None:
        """Return the USD price of a mint."""

    def get_routes(
        self, input_mint: str, output_mint: str, pools: Iterable[PoolInfo]
    ) -> list[SwapRoute]:
        """Enumerate routes restricted to the given pools."""

    async def fetch_route_data(
        self, routes: Sequence[SwapRoute], amount: int, slippage_bps: int
    ) -> list[SwapQuote]:
        """Quote the routes."""

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
        """Build unsigned base64 transactions for a quote."""

    async def close(self) -> None:
        """Release HTTP sessions."""
