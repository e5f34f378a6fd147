"""Shared data models for the Raydium and Solana clients.

Pydantic-based models with validation. Raydium payloads use camelCase keys, so
most fields carry an alias and the models accept either spelling.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MintRef(BaseModel):
    """Mint reference embedded in a Raydium pool payload."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    address: str
    decimals: int
    symbol: str | None = None


class PoolInfo(BaseModel):
    """A Raydium liquidity pool as listed by API v3.

    ``price`` is quoted as units of ``mint_b`` per unit of ``mint_a``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    type: str | None = None
    program_id: str | None = Field(None, alias="programId")
    mint_a: MintRef = Field(..., alias="mintA")
    mint_b: MintRef = Field(..., alias="mintB")
    price: float | None = None
    tvl: float | None = None

    def contains(self, mint: str) -> bool:
        return mint in (self.mint_a.address, self.mint_b.address)

    def pairs(self, mint_one: str, mint_two: str) -> bool:
        """Return True when the pool trades ``mint_one`` against ``mint_two``."""
        return mint_one != mint_two and self.contains(mint_one) and self.contains(
            mint_two
        )

    def mint(self, address: str) -> MintRef:
        for candidate in (self.mint_a, self.mint_b):
            if candidate.address == address:
                return candidate
        raise KeyError(f"Mint {address} is not part of pool {self.id}")


class SwapRoute(BaseModel):
    """Candidate single-hop route through one pool."""

    model_config = ConfigDict(frozen=True)

    pool_id: str
    input_mint: str
    output_mint: str


class RoutePlanStep(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    pool_id: str = Field(..., alias="poolId")
    input_mint: str = Field(..., alias="inputMint")
    output_mint: str = Field(..., alias="outputMint")


class SwapQuote(BaseModel):
    """Quote returned by the Trade API ``compute/swap-base-in`` endpoint.

    ``raw_payload`` keeps the full response because the transaction builder
    expects it back verbatim.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, arbitrary_types_allowed=True
    )

    input_mint: str = Field(..., alias="inputMint")
    input_amount: str = Field(..., alias="inputAmount")
    output_mint: str = Field(..., alias="outputMint")
    output_amount: str = Field(..., alias="outputAmount")
    other_amount_threshold: str | None = Field(None, alias="otherAmountThreshold")
    slippage_bps: int | None = Field(None, alias="slippageBps")
    price_impact_pct: float | None = Field(None, alias="priceImpactPct")
    route_plan: list[RoutePlanStep] = Field(default_factory=list, alias="routePlan")
    raw_payload: Mapping[str, Any] = Field(default_factory=dict)

    @field_validator("input_amount", "output_amount", "other_amount_threshold", mode="before")
    @classmethod
    def validate_amounts(cls, v: Any) -> str | None:
        """Amounts arrive as integers or strings of base units."""
        if v is None:
            return None
        try:
            amount = int(str(v))
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid base-unit amount: {v}") from e
        if amount < 0:
            raise ValueError("Amount cannot be negative")
        return str(amount)

    def pool_ids(self) -> set[str]:
        return {step.pool_id for step in self.route_plan}


class MintInfo(BaseModel):
    """Supply and precision of an SPL mint."""

    model_config = ConfigDict(frozen=True)

    supply: int
    decimals: int

    @field_validator("supply", "decimals")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Mint supply and decimals cannot be negative")
        return v

    @property
    def normalized_supply(self) -> float:
        return self.supply / 10**self.decimals


class TokenAccount(BaseModel):
    """SPL token account owned by the wallet."""

    model_config = ConfigDict(frozen=True)

    address: str
    mint: str
    amount: int
    decimals: int
