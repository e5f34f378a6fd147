"""Swap execution through the single monitored pool."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal

from solders.keypair import Keypair

from dex_client.constants import (
    DEFAULT_COMPUTE_UNIT_PRICE_MICRO_LAMPORTS,
    DEFAULT_SLIPPAGE_BPS,
    NATIVE_MINT,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    explorer_url,
)
from dex_client.ledger import LedgerError
from dex_client.models import PoolInfo, SwapQuote, TokenAccount
from engine.errors import (
    InsufficientBalance,
    LedgerUnavailable,
    NoRouteFound,
    SubmissionFailed,
)
from engine.gateways import LedgerGateway, RoutingClient
from strategies.threshold import Decision

LOGGER = logging.getLogger("mcap_bot.engine.trade_executor")


@dataclass(frozen=True)
class TxResult:
    decision: Decision
    amount: float
    tx_ids: tuple[str, ...] = ()
    dry_run: bool = False


@dataclass
class PreparedSwap:
    """Unsigned swap transactions ready to be signed and sent in order."""

    ledger: LedgerGateway
    signer: Keypair
    transactions: list[str] = field(default_factory=list)

    async def submit(self) -> list[str]:
        """Send and confirm each transaction before sending the next one."""
        confirmed: list[str] = []
        for index, encoded in enumerate(self.transactions, start=1):
            signature: str | None = None
            try:
                signature = await self.ledger.send_transaction(encoded, self.signer)
                await self.ledger.confirm_transaction(signature)
            except Exception as exc:
                pending = f" (signature {signature} outcome unknown)" if signature else ""
                raise SubmissionFailed(
                    f"Transaction {index}/{len(self.transactions)} failed{pending}: {exc}",
                    confirmed_ids=confirmed,
                ) from exc
            LOGGER.info("Transaction confirmed: %s", explorer_url(signature))
            confirmed.append(signature)
        return confirmed


def to_base_units(amount: float, decimals: int) -> int:
    scaled = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


class TradeExecutor:
    def __init__(
        self,
        ledger: LedgerGateway,
        router: RoutingClient,
        owner: Keypair,
        token_mint: str,
        *,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        compute_unit_price_micro_lamports: int = DEFAULT_COMPUTE_UNIT_PRICE_MICRO_LAMPORTS,
        check_balances: bool = True,
        dry_run: bool = False,
    ) -> None:
        self.ledger = ledger
        self.router = router
        self.owner = owner
        self.token_mint = token_mint
        self.slippage_bps = slippage_bps
        self.compute_unit_price_micro_lamports = compute_unit_price_micro_lamports
        self.check_balances = check_balances
        self.dry_run = dry_run

    @property
    def owner_address(self) -> str:
        return str(self.owner.pubkey())

    async def execute(self, decision: Decision, amount: float, pool: PoolInfo) -> TxResult:
        """Swap ``amount`` of the input currency for ``decision``.

        BUY spends SOL for the token, SELL spends the token for SOL. Submits an
        irreversible transaction; callers must not retry on SubmissionFailed.
        """
        if decision is Decision.HOLD:
            raise ValueError("HOLD does not map to a trade")
        input_mint, output_mint = self._mints_for(decision)
        base_amount = to_base_units(amount, pool.mint(input_mint).decimals)
        if base_amount <= 0:
            raise ValueError(f"Trade amount {amount} rounds to zero base units")
        LOGGER.info("%s started, amount: %s", decision.value.capitalize(), amount)

        try:
            token_account = await self._largest_token_account()
            if self.check_balances:
                await self._ensure_balance(decision, base_amount, token_account)
        except LedgerError as exc:
            raise LedgerUnavailable(f"Wallet lookup failed: {exc}") from exc

        quote = await self._select_quote(input_mint, output_mint, base_amount, pool)
        LOGGER.info(
            "Route quote via pool %s: in=%s out=%s min_out=%s impact=%s%%",
            pool.id,
            quote.input_amount,
            quote.output_amount,
            quote.other_amount_threshold,
            quote.price_impact_pct,
        )

        account = token_account.address if token_account else None
        try:
            transactions = await self.router.build_swap(
                quote,
                wallet=self.owner_address,
                compute_unit_price_micro_lamports=self.compute_unit_price_micro_lamports,
                wrap_sol=decision is Decision.BUY,
                unwrap_sol=decision is Decision.SELL,
                input_account=account if decision is Decision.SELL else None,
                output_account=account if decision is Decision.BUY else None,
            )
        except Exception as exc:
            raise SubmissionFailed(f"Swap build failed: {exc}") from exc

        if self.dry_run:
            LOGGER.info(
                "Dry run: built %d transaction(s), not submitting", len(transactions)
            )
            return TxResult(decision=decision, amount=amount, dry_run=True)

        prepared = PreparedSwap(self.ledger, self.owner, transactions)
        tx_ids = await prepared.submit()
        return TxResult(decision=decision, amount=amount, tx_ids=tuple(tx_ids))

    async def _select_quote(
        self, input_mint: str, output_mint: str, base_amount: int, pool: PoolInfo
    ) -> SwapQuote:
        routes = self.router.get_routes(input_mint, output_mint, [pool])
        if not routes:
            raise NoRouteFound(f"Pool {pool.id} has no route {input_mint} -> {output_mint}")
        try:
            quotes = await self.router.fetch_route_data(routes, base_amount, self.slippage_bps)
        except Exception as exc:
            raise NoRouteFound(f"Route data unavailable: {exc}") from exc
        if not quotes:
            raise NoRouteFound("No valid swap route found")
        return quotes[0]

    def _mints_for(self, decision: Decision) -> tuple[str, str]:
        if decision is Decision.BUY:
            return NATIVE_MINT, self.token_mint
        return self.token_mint, NATIVE_MINT

    async def _largest_token_account(self) -> TokenAccount | None:
        accounts: list[TokenAccount] = []
        for program_id in (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID):
            accounts.extend(
                await self.ledger.get_token_accounts_by_owner(self.owner_address, program_id)
            )
        matching = [account for account in accounts if account.mint == self.token_mint]
        if not matching:
            return None
        return max(matching, key=lambda account: account.amount)

    async def _ensure_balance(
        self, decision: Decision, base_amount: int, token_account: TokenAccount | None
    ) -> None:
        if decision is Decision.BUY:
            lamports = await self.ledger.get_account_info(self.owner_address)
            if lamports < base_amount:
                raise InsufficientBalance(
                    f"Wallet holds {lamports} lamports, buy needs {base_amount}"
                )
            return
        held = token_account.amount if token_account else 0
        if held < base_amount:
            raise InsufficientBalance(
                f"Wallet holds {held} base units of {self.token_mint}, sell needs {base_amount}"
            )
