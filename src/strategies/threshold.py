"""Market-cap threshold policy and optional position gate."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

LOGGER = logging.getLogger("mcap_bot.strategy.threshold")


class Decision(str, Enum):
    """Action chosen for a tick."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class PositionState(str, Enum):
    IDLE = "idle"
    POSITION_OPEN = "position_open"
    POSITION_CLOSED = "position_closed"


def decide(market_cap: float, buy_threshold: float, sell_threshold: float) -> Decision:
    """Map a market cap onto BUY, SELL or HOLD.

    BUY wins whenever ``market_cap >= buy_threshold``. When the thresholds are
    degenerate (``buy_threshold <= sell_threshold``) SELL can only fire below
    the buy threshold, so with both at 0 any non-negative market cap buys.
    """
    if math.isnan(market_cap):
        return Decision.HOLD
    if market_cap >= buy_threshold:
        return Decision.BUY
    if market_cap <= sell_threshold:
        return Decision.SELL
    return Decision.HOLD


def thresholds_are_degenerate(buy_threshold: float, sell_threshold: float) -> bool:
    """Return True when the SELL branch is shadowed by the BUY branch."""
    return buy_threshold <= sell_threshold


@dataclass
class PositionGate:
    """Suppresses repeat trades on the same side until a cooldown elapses.

    A successful BUY opens the position, a successful SELL closes it. Trading
    the opposite side is always allowed.
    """

    cooldown_sec: float
    state: PositionState = PositionState.IDLE
    last_trade_at: float | None = None

    def allows(self, decision: Decision, now: float) -> bool:
        if decision is Decision.HOLD:
            return True
        if not self._repeats_current_side(decision):
            return True
        if self.last_trade_at is None:
            return True
        return now - self.last_trade_at >= self.cooldown_sec

    def record(self, decision: Decision, now: float) -> None:
        if decision is Decision.BUY:
            self.state = PositionState.POSITION_OPEN
        elif decision is Decision.SELL:
            self.state = PositionState.POSITION_CLOSED
        else:
            return
        self.last_trade_at = now
        LOGGER.debug("Position gate moved to %s", self.state.value)

    def _repeats_current_side(self, decision: Decision) -> bool:
        return (
            decision is Decision.BUY and self.state is PositionState.POSITION_OPEN
        ) or (
            decision is Decision.SELL and self.state is PositionState.POSITION_CLOSED
        )


def describe() -> str:
    return "Buy above a market-cap threshold, sell below another."
