"""Runtime state tracking for the monitor loop."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from engine.trade_executor import TxResult
from strategies.threshold import Decision


class MonitorPhase(str, enum.Enum):
    INITIALIZING = "initializing"
    IDLE = "idle"
    FETCHING = "fetching"
    DECIDING = "deciding"
    TRADING = "trading"
    STOPPED = "stopped"


@dataclass
class Tick:
    timestamp: float
    price: float | None = None
    market_cap: float | None = None
    decision: Decision | None = None
    suppressed: bool = False
    result: TxResult | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_log_fields(self) -> dict[str, Any]:
        return {
            "tick_timestamp": self.timestamp,
            "price": self.price,
            "market_cap": self.market_cap,
            "decision": self.decision.value if self.decision else None,
            "suppressed": self.suppressed,
            "tx_ids": list(self.result.tx_ids) if self.result else [],
            "dry_run": self.result.dry_run if self.result else False,
            "error": self.error,
        }


@dataclass
class RunnerState:
    phase: MonitorPhase = MonitorPhase.INITIALIZING
    ticks_run: int = 0
    ticks_failed: int = 0
    ticks_skipped: int = 0
    trades_submitted: int = 0
    last_error: str | None = None
    last_tick: Tick | None = field(default=None, repr=False)

    def enter(self, phase: MonitorPhase) -> None:
        self.phase = phase

    def mark_tick(self, tick: Tick) -> None:
        self.ticks_run += 1
        self.last_tick = tick
        if tick.failed:
            self.ticks_failed += 1
            self.last_error = tick.error
        if tick.result is not None and tick.result.tx_ids:
            self.trades_submitted += 1

    def mark_skipped(self) -> None:
        self.ticks_skipped += 1

    def to_payload(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "ticks_run": self.ticks_run,
            "ticks_failed": self.ticks_failed,
            "ticks_skipped": self.ticks_skipped,
            "trades_submitted": self.trades_submitted,
            "last_error": self.last_error,
        }
