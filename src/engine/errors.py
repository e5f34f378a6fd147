"""Error taxonomy for the monitor engine."""

from __future__ import annotations

from typing import Sequence


class MonitorError(Exception):
    """Base exception for engine errors."""


class PoolNotFound(MonitorError):
    """Raised at startup when the configured pool id matches no listed pool."""


class TickError(MonitorError):
    """Recoverable error scoped to a single tick."""


class PriceUnavailable(TickError):
    pass


class SupplyUnavailable(TickError):
    pass


class TickTimeout(TickError):
    pass


class NoRouteFound(TickError):
    pass


class InsufficientBalance(TickError):
    pass


class SubmissionFailed(TickError):
    """Swap submission failed; the on-chain outcome may be partial.

    ``confirmed_ids`` lists signatures that were confirmed before the failure.
    """

    def __init__(self, message: str, confirmed_ids: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.confirmed_ids = tuple(confirmed_ids)


class LedgerUnavailable(TickError):
    """Wallet balance or token account lookup failed for this tick."""
