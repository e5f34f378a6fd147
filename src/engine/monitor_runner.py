"""Runner utilities for the market-cap threshold monitor."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import time
from dataclasses import dataclass
from typing import Any, Callable

from dex_client.constants import (
    DEFAULT_COMPUTE_UNIT_PRICE_MICRO_LAMPORTS,
    DEFAULT_SLIPPAGE_BPS,
)
from dex_client.models import PoolInfo
from engine.errors import SubmissionFailed, TickError, TickTimeout
from engine.market_data import MarketCapCalculator, PriceOracle
from engine.session import Session, load_session, resolve_pool
from engine.state import MonitorPhase, RunnerState, Tick
from engine.trade_executor import TradeExecutor
from strategies.threshold import (
    Decision,
    PositionGate,
    decide,
    thresholds_are_degenerate,
)
from utils.config_validator import validate_config
from utils.credentials import DEFAULT_SERVICE_NAME, load_keypair
from utils.settings import parse_bool

LOGGER = logging.getLogger("mcap_bot.engine.monitor_runner")


@dataclass(frozen=True)
class MonitorConfig:
    token_mint_address: str
    pool_id: str
    buy_amount: float
    sell_amount: float
    buy_threshold: float = 0.0
    sell_threshold: float = 0.0
    poll_interval_sec: float = 30.0
    call_timeout_sec: float = 20.0
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    compute_unit_price_micro_lamports: int = DEFAULT_COMPUTE_UNIT_PRICE_MICRO_LAMPORTS
    mode: str = "live"
    cooldown_sec: float | None = None
    usd_denominated: bool = False
    check_balances: bool = True

    @property
    def dry_run(self) -> bool:
        return self.mode == "dry-run"

    @property
    def trading_enabled(self) -> bool:
        return self.mode != "monitor"

    def amount_for(self, decision: Decision) -> float:
        if decision is Decision.BUY:
            return self.buy_amount
        if decision is Decision.SELL:
            return self.sell_amount
        raise ValueError("HOLD has no trade amount")


def build_monitor_config(config: dict[str, Any]) -> MonitorConfig:
    cooldown = config.get("cooldown_sec")
    return MonitorConfig(
        token_mint_address=str(config["token_mint_address"]).strip(),
        pool_id=str(config["pool_id"]).strip(),
        buy_amount=float(config["buy_amount"]),
        sell_amount=float(config["sell_amount"]),
        buy_threshold=float(config.get("buy_threshold") or 0),
        sell_threshold=float(config.get("sell_threshold") or 0),
        poll_interval_sec=float(config.get("poll_interval_sec", 30)),
        call_timeout_sec=float(config.get("call_timeout_sec", 20)),
        slippage_bps=int(config.get("slippage_bps", DEFAULT_SLIPPAGE_BPS)),
        compute_unit_price_micro_lamports=int(
            config.get(
                "compute_unit_price_micro_lamports",
                DEFAULT_COMPUTE_UNIT_PRICE_MICRO_LAMPORTS,
            )
        ),
        mode=str(config.get("mode") or "live"),
        cooldown_sec=float(cooldown) if cooldown not in (None, "") else None,
        usd_denominated=parse_bool(config.get("usd_denominated", False)),
        check_balances=parse_bool(config.get("check_balances", True)),
    )


class MonitorLoop:
    """Timer-driven orchestrator: pool -> price -> market cap -> decision -> trade.

    Every tick is self-contained. Errors raised while fetching, deciding or
    trading are logged and the next tick runs on schedule.
    """

    def __init__(
        self,
        config: MonitorConfig,
        calculator: MarketCapCalculator,
        executor: TradeExecutor,
        pool: PoolInfo,
        *,
        gate: PositionGate | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.calculator = calculator
        self.executor = executor
        self.pool = pool
        self.gate = gate
        self.clock = clock
        self.state = RunnerState()
        self._current: asyncio.Task[Tick] | None = None

    async def run_tick(self) -> Tick:
        tick = Tick(timestamp=self.clock())
        try:
            await self._run_phases(tick)
        except asyncio.CancelledError:
            tick.error = f"cancelled while {self.state.phase.value}"
            LOGGER.warning("Tick %s", tick.error, extra=tick.to_log_fields())
            raise
        except SubmissionFailed as exc:
            tick.error = f"{type(exc).__name__}: {exc}"
            for signature in exc.confirmed_ids:
                LOGGER.warning("Confirmed before failure: %s", signature)
            LOGGER.error("Tick failed: %s", tick.error, extra=tick.to_log_fields())
        except TickError as exc:
            tick.error = f"{type(exc).__name__}: {exc}"
            LOGGER.warning("Tick failed: %s", tick.error, extra=tick.to_log_fields())
        except Exception as exc:
            tick.error = f"{type(exc).__name__}: {exc}"
            LOGGER.exception("Unexpected tick failure", extra=tick.to_log_fields())
        else:
            LOGGER.info(
                "Tick complete: market cap %s, decision %s",
                tick.market_cap,
                tick.decision.value if tick.decision else None,
                extra=tick.to_log_fields(),
            )
        finally:
            self.state.mark_tick(tick)
            self.state.enter(MonitorPhase.IDLE)
        return tick

    async def _run_phases(self, tick: Tick) -> None:
        self.state.enter(MonitorPhase.FETCHING)
        try:
            snapshot = await asyncio.wait_for(
                self.calculator.fetch_market_cap(
                    self.config.token_mint_address, self.pool
                ),
                timeout=self.config.call_timeout_sec,
            )
        except asyncio.TimeoutError as exc:
            raise TickTimeout(
                f"Market data fetch exceeded {self.config.call_timeout_sec}s"
            ) from exc
        tick.price = snapshot.price
        tick.market_cap = snapshot.market_cap
        LOGGER.info(
            "Supply: %s, price: %s, market cap: %s",
            snapshot.mint_info.normalized_supply,
            snapshot.price,
            snapshot.market_cap,
        )

        self.state.enter(MonitorPhase.DECIDING)
        decision = decide(
            snapshot.market_cap, self.config.buy_threshold, self.config.sell_threshold
        )
        tick.decision = decision
        if decision is Decision.HOLD:
            LOGGER.info("Market cap between thresholds, no action")
            return
        if not self.config.trading_enabled:
            LOGGER.info("Monitor mode: %s signal not executed", decision.value)
            return
        if self.gate is not None and not self.gate.allows(decision, tick.timestamp):
            tick.suppressed = True
            LOGGER.info(
                "Position gate suppressed %s (state %s, cooldown %ss)",
                decision.value,
                self.gate.state.value,
                self.gate.cooldown_sec,
            )
            return

        self.state.enter(MonitorPhase.TRADING)
        result = await self.executor.execute(
            decision, self.config.amount_for(decision), self.pool
        )
        tick.result = result
        if self.gate is not None and not result.dry_run:
            self.gate.record(decision, self.clock())

    async def run_once(self) -> Tick:
        return await self.run_tick()

    async def run(self, stop_event: asyncio.Event) -> None:
        """Fire a tick every poll interval until ``stop_event`` is set."""
        self.state.enter(MonitorPhase.IDLE)
        LOGGER.info(
            "Monitor running. Press Ctrl+C to stop. pool=%s poll_interval_sec=%s mode=%s",
            self.pool.id,
            self.config.poll_interval_sec,
            self.config.mode,
        )
        try:
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(
                        stop_event.wait(), timeout=self.config.poll_interval_sec
                    )
                except asyncio.TimeoutError:
                    self._fire()
        finally:
            await self._drain()
            self.state.enter(MonitorPhase.STOPPED)
            LOGGER.info("Monitor stopped", extra=self.state.to_payload())

    def _fire(self) -> None:
        if self._current is not None and not self._current.done():
            self.state.mark_skipped()
            LOGGER.warning("Previous tick still running, skipping this tick")
            return
        self._current = asyncio.create_task(self.run_tick())

    async def _drain(self) -> None:
        task = self._current
        if task is None or task.done():
            return
        if self.state.phase is MonitorPhase.TRADING:
            LOGGER.info("Waiting for in-flight trade to finish")
            await task
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def build_monitor_loop(
    config: MonitorConfig, session: Session, pool: PoolInfo
) -> MonitorLoop:
    oracle = PriceOracle(
        session.router,
        config.token_mint_address,
        usd_denominated=config.usd_denominated,
    )
    calculator = MarketCapCalculator(session.ledger, oracle)
    executor = TradeExecutor(
        session.ledger,
        session.router,
        session.owner,
        config.token_mint_address,
        slippage_bps=config.slippage_bps,
        compute_unit_price_micro_lamports=config.compute_unit_price_micro_lamports,
        check_balances=config.check_balances,
        dry_run=config.dry_run,
    )
    gate = PositionGate(config.cooldown_sec) if config.cooldown_sec is not None else None
    return MonitorLoop(config, calculator, executor, pool, gate=gate)


def _install_signal_handlers(stop_event: asyncio.Event) -> Callable[[], None]:
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)

    def remove() -> None:
        for sig in installed:
            loop.remove_signal_handler(sig)

    return remove


async def run_monitor(
    config: dict[str, Any],
    *,
    stop_event: asyncio.Event | None = None,
    once: bool = False,
    session: Session | None = None,
) -> RunnerState:
    """Validate config, open a session, resolve the pool and run the loop.

    Configuration and pool errors are raised before the first tick. When no
    ``stop_event`` is given, SIGINT and SIGTERM request a graceful stop.
    """
    validate_config(config)
    monitor_config = build_monitor_config(config)
    if session is None:
        owner = load_keypair(DEFAULT_SERVICE_NAME, config)
        session = load_session(owner, config)
    try:
        pool = await resolve_pool(
            session.router, monitor_config.token_mint_address, monitor_config.pool_id
        )
        if thresholds_are_degenerate(
            monitor_config.buy_threshold, monitor_config.sell_threshold
        ):
            LOGGER.warning(
                "buy_threshold (%s) <= sell_threshold (%s): any market cap at or "
                "above the buy threshold buys, SELL only fires below it",
                monitor_config.buy_threshold,
                monitor_config.sell_threshold,
            )
        monitor = build_monitor_loop(monitor_config, session, pool)
        if once:
            await monitor.run_once()
            monitor.state.enter(MonitorPhase.STOPPED)
            return monitor.state

        remove_handlers: Callable[[], None] = lambda: None
        if stop_event is None:
            stop_event = asyncio.Event()
            remove_handlers = _install_signal_handlers(stop_event)
        try:
            await monitor.run(stop_event)
        finally:
            remove_handlers()
        return monitor.state
    finally:
        await session.close()
