"""Shared endpoints and on-chain constants for the Raydium/Solana clients."""

# Reference: https://docs.raydium.io/raydium/traders/trade-api

RAYDIUM_API_V3_URL = "https://api-v3.raydium.io"
RAYDIUM_TRADE_API_URL = "https://transaction-v1.raydium.io"
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
EXPLORER_TX_URL = "https://explorer.solana.com/tx/{signature}"

NATIVE_MINT = "So11111111111111111111111111111111111111112"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

TX_VERSION = "V0"
DEFAULT_COMPUTE_UNIT_PRICE_MICRO_LAMPORTS = 465915
DEFAULT_SLIPPAGE_BPS = 100
POOL_PAGE_SIZE = 100


def explorer_url(signature: str) -> str:
    """Return the block explorer link for a transaction signature."""
    return EXPLORER_TX_URL.format(signature=signature)
