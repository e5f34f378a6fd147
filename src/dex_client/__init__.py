"""Clients for the Raydium HTTP APIs and the Solana JSON-RPC ledger."""
