"""Solana JSON-RPC ledger gateway built on solana-py's AsyncClient."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.models import TokenAccountOpts, TxOpts
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from dex_client.models import MintInfo, TokenAccount

LOGGER = logging.getLogger("mcap_bot.dex_client.ledger")


class LedgerError(Exception):
    """Raised when a ledger RPC call fails or returns an unusable payload."""


class SolanaLedgerGateway:
    """Narrow async wrapper over the RPC calls the bot needs."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = 20.0,
        confirm_sleep_sec: float = 0.5,
        client: AsyncClient | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.confirm_sleep_sec = confirm_sleep_sec
        self.client = client or AsyncClient(rpc_url, commitment=Confirmed, timeout=timeout)

    async def close(self) -> None:
        await self.client.close()

    async def get_account_info(self, address: str) -> int:
        """Return the lamport balance of an account, 0 when it does not exist."""
        try:
            response = await self.client.get_account_info(Pubkey.from_string(address))
        except (SolanaRpcException, RPCException) as exc:
            raise LedgerError(f"getAccountInfo failed for {address}") from exc
        account = response.value
        if account is None:
            return 0
        return int(account.lamports)

    async def get_token_accounts_by_owner(
        self, owner: str, program_id: str
    ) -> list[TokenAccount]:
        try:
            response = await self.client.get_token_accounts_by_owner_json_parsed(
                Pubkey.from_string(owner),
                TokenAccountOpts(program_id=Pubkey.from_string(program_id)),
            )
        except (SolanaRpcException, RPCException) as exc:
            raise LedgerError(
                f"getTokenAccountsByOwner failed for {owner} ({program_id})"
            ) from exc
        accounts: list[TokenAccount] = []
        for keyed in response.value or []:
            info = _parsed_info(keyed.account.data)
            if info is None:
                continue
            token_amount = info.get("tokenAmount") or {}
            accounts.append(
                TokenAccount(
                    address=str(keyed.pubkey),
                    mint=str(info.get("mint", "")),
                    amount=int(token_amount.get("amount", 0)),
                    decimals=int(token_amount.get("decimals", 0)),
                )
            )
        return accounts

    async def get_mint_info(self, mint: str) -> MintInfo:
        try:
            response = await self.client.get_token_supply(Pubkey.from_string(mint))
        except (SolanaRpcException, RPCException) as exc:
            raise LedgerError(f"getTokenSupply failed for {mint}") from exc
        value = response.value
        if value is None:
            raise LedgerError(f"Mint {mint} returned no supply")
        return MintInfo(supply=int(value.amount), decimals=int(value.decimals))

    async def send_transaction(self, encoded: str, signer: Keypair) -> str:
        """Sign a base64 unsigned versioned transaction and submit it."""
        try:
            unsigned = VersionedTransaction.from_bytes(base64.b64decode(encoded))
        except (binascii.Error, ValueError) as exc:
            raise LedgerError("Could not decode swap transaction") from exc
        signed = VersionedTransaction(unsigned.message, [signer])
        try:
            response = await self.client.send_raw_transaction(
                bytes(signed),
                opts=TxOpts(skip_preflight=False, preflight_commitment=Confirmed),
            )
        except (SolanaRpcException, RPCException) as exc:
            raise LedgerError("sendTransaction failed") from exc
        signature = str(response.value)
        LOGGER.debug("Submitted transaction %s", signature)
        return signature

    async def confirm_transaction(self, signature: str) -> None:
        try:
            response = await self.client.confirm_transaction(
                Signature.from_string(signature),
                commitment=Confirmed,
                sleep_seconds=self.confirm_sleep_sec,
            )
        except (SolanaRpcException, RPCException, UnconfirmedTxError) as exc:
            raise LedgerError(f"Confirmation failed for {signature}") from exc
        statuses = response.value or []
        status = statuses[0] if statuses else None
        if status is None:
            raise LedgerError(f"No status returned for {signature}")
        if status.err is not None:
            raise LedgerError(f"Transaction {signature} failed on-chain: {status.err}")


def _parsed_info(data: Any) -> dict[str, Any] | None:
    parsed = getattr(data, "parsed", None)
    if parsed is None and isinstance(data, dict):
        parsed = data.get("parsed")
    if not isinstance(parsed, dict):
        return None
    info = parsed.get("info")
    return info if isinstance(info, dict) else None
