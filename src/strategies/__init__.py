"""Strategy implementations for the market-cap bot."""

from .threshold import describe as threshold_describe

__all__ = ["threshold_describe"]
