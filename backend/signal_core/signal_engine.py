"""Signal engine: runs providers per symbol and derives consensus.

This module is pure business logic with no I/O dependencies. Market data
is read through an injected ``MarketDataSource`` and time through an
injected clock, so the live service and the tests drive the same code.

Active signal sets are tuples replaced wholesale under a per-symbol lock:
the current set is pruned of expired signals and the new cycle's signals
are appended. A provider that keeps firing on an unchanged condition
therefore stacks signals across cycles instead of replacing its earlier
ones; consensus counts every live signal.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Sequence

from signal_core.clock import Clock, utc_now
from signal_core.models import (
    CONSENSUS_SOURCE,
    Bar,
    ProviderInfo,
    Quote,
    Side,
    Signal,
)
from signal_core.providers import MarketDataSource, SignalProvider

logger = logging.getLogger(__name__)

CONSENSUS_EXPIRY = timedelta(minutes=10)


class MissingMarketDataError(LookupError):
    """Raised when a symbol has no quote or no history for this cycle."""

    def __init__(self, symbol: str, detail: str):
        self.symbol = symbol
        super().__init__(f"No market data for {symbol}: {detail}")


@dataclass
class CycleReport:
    """Outcome of one ``generate_signals`` call.

    Attributes:
        generated: New signals per symbol that completed the cycle.
        failed: Symbols skipped this cycle and the error that caused it.
    """

    generated: dict[str, list[Signal]] = field(default_factory=dict)
    failed: dict[str, Exception] = field(default_factory=dict)

    @property
    def signal_count(self) -> int:
        return sum(len(s) for s in self.generated.values())

    @property
    def ok(self) -> bool:
        return not self.failed


class SignalEngine:
    """
    Orchestrate signal providers per symbol and hold the resulting state.

    State owned by the engine:
    - registered providers in registration order, each enabled/disabled
    - per-symbol active signal sets (immutable tuples)
    - a bounded history of every generated signal

    Consensus ties (equal BUY and SELL counts) resolve to ``tie_side``,
    SELL by default.
    """

    def __init__(
        self,
        market_data: MarketDataSource,
        providers: Sequence[SignalProvider] = (),
        clock: Clock = utc_now,
        history_bars: int = 200,
        history_limit: int = 1000,
        tie_side: Side = Side.SELL,
    ):
        """
        Args:
            market_data: Source of quotes and bar history
            providers: Providers to register, in evaluation order
            clock: Returns the current tz-aware instant
            history_bars: Number of bars requested per symbol each cycle
            history_limit: Retention for the signal history
            tie_side: Consensus side when BUY and SELL counts are equal
        """
        self.market_data = market_data
        self.clock = clock
        self.history_bars = history_bars
        self.tie_side = tie_side

        self._providers: dict[str, SignalProvider] = {}
        self._enabled: dict[str, bool] = {}
        for provider in providers:
            self.register_provider(provider)

        self._active: dict[str, tuple[Signal, ...]] = {}
        self._history: deque[Signal] = deque(maxlen=history_limit)
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def register_provider(self, provider: SignalProvider, enabled: bool = True) -> None:
        """Register a provider at the end of the evaluation order.

        Raises:
            ValueError: If a provider with the same id is already registered.
        """
        if provider.id in self._providers:
            raise ValueError(f"Provider '{provider.id}' is already registered")
        self._providers[provider.id] = provider
        self._enabled[provider.id] = enabled

    def enable_provider(self, provider_id: str) -> bool:
        """Enable a provider. Unknown ids are ignored.

        Returns:
            True if the id is registered.
        """
        return self._set_enabled(provider_id, True)

    def disable_provider(self, provider_id: str) -> bool:
        """Disable a provider. Unknown ids are ignored.

        Returns:
            True if the id is registered.
        """
        return self._set_enabled(provider_id, False)

    def _set_enabled(self, provider_id: str, enabled: bool) -> bool:
        if provider_id not in self._providers:
            logger.debug("Ignoring toggle for unknown provider: %s", provider_id)
            return False
        if self._enabled[provider_id] != enabled:
            self._enabled[provider_id] = enabled
            logger.info(f"Provider {provider_id} {'enabled' if enabled else 'disabled'}")
        return True

    def get_providers(self) -> list[ProviderInfo]:
        return [
            ProviderInfo(
                id=provider.id,
                name=provider.name,
                description=provider.description,
                enabled=self._enabled[provider.id],
            )
            for provider in self._providers.values()
        ]

    def _enabled_providers(self) -> list[SignalProvider]:
        return [p for pid, p in self._providers.items() if self._enabled[pid]]

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _get_lock(self, symbol: str) -> asyncio.Lock:
        lock = self._locks.get(symbol)
        if lock is None:
            lock = self._locks[symbol] = asyncio.Lock()
        return lock

    async def generate_signals(self, symbols: Sequence[str]) -> CycleReport:
        """Run one generation cycle for every symbol concurrently.

        Symbols without market data are skipped and reported in
        ``CycleReport.failed``; they never abort the other symbols.
        """
        report = CycleReport()
        unique = list(dict.fromkeys(symbols))
        results = await asyncio.gather(
            *(self.generate_for_symbol(symbol) for symbol in unique),
            return_exceptions=True,
        )

        for symbol, result in zip(unique, results):
            if isinstance(result, MissingMarketDataError):
                logger.warning(f"Skipping {symbol}: {result}")
                report.failed[symbol] = result
            elif isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(f"Signal cycle failed for {symbol}: {result!r}")
                report.failed[symbol] = result
            else:
                report.generated[symbol] = result

        logger.info(
            "Signal cycle done: %d new signals, %d symbols skipped, %d active",
            report.signal_count,
            len(report.failed),
            len(self.get_all_active_signals()),
        )
        return report

    async def generate_for_symbol(self, symbol: str) -> list[Signal]:
        """Run every enabled provider for one symbol and commit the results.

        Returns:
            The signals generated this cycle, in provider registration order.

        Raises:
            MissingMarketDataError: No quote or no history for the symbol.
        """
        quote, history = await self._load_market_data(symbol)
        now = self.clock()

        providers = self._enabled_providers()
        results = await asyncio.gather(
            *(p.generate_signal(symbol, quote, history, now) for p in providers),
            return_exceptions=True,
        )

        new_signals: list[Signal] = []
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    "Provider %s failed for %s",
                    provider.id,
                    symbol,
                    exc_info=result,
                )
                continue
            if result is not None:
                new_signals.append(result)
                logger.info(
                    f"Generated signal: {result.side.value} {symbol} "
                    f"({result.strength:.0f}% strength) from {provider.id}"
                )

        async with self._get_lock(symbol):
            self._commit(symbol, new_signals, self.clock())

        return new_signals

    async def _load_market_data(self, symbol: str) -> tuple[Quote, list[Bar]]:
        quote = await self.market_data.get_latest_quote(symbol)
        if quote is None:
            raise MissingMarketDataError(symbol, "no quote")
        history = await self.market_data.get_history(symbol, self.history_bars)
        if not history:
            raise MissingMarketDataError(symbol, "no price history")
        return quote, list(history)

    def _commit(self, symbol: str, new_signals: list[Signal], now: datetime) -> None:
        current = self._active.get(symbol, ())
        live = [s for s in current if not s.is_expired(now)]
        self._active[symbol] = tuple(live + new_signals)
        self._history.extend(new_signals)

    async def clear_expired(self) -> int:
        """Prune expired signals from every symbol without running providers.

        Returns:
            Number of signals removed.
        """
        removed = 0
        for symbol in list(self._active):
            async with self._get_lock(symbol):
                before = len(self._active.get(symbol, ()))
                self._commit(symbol, [], self.clock())
                removed += before - len(self._active[symbol])
        if removed:
            logger.debug("Pruned %d expired signals", removed)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_signals_for_symbol(self, symbol: str) -> list[Signal]:
        """Live signals for a symbol, oldest first."""
        now = self.clock()
        return [s for s in self._active.get(symbol, ()) if not s.is_expired(now)]

    def get_all_active_signals(self) -> list[Signal]:
        now = self.clock()
        return [
            s
            for signals in self._active.values()
            for s in signals
            if not s.is_expired(now)
        ]

    def get_signal_history(self, limit: int = 100) -> list[Signal]:
        """Most recent ``limit`` generated signals, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def get_consensus_signal(self, symbol: str) -> Signal | None:
        """Derive the majority view from the symbol's live signals.

        Majority is by count; strength and confidence are the means over
        the majority side. Returns None when the symbol has no live signals.
        """
        signals = self.get_signals_for_symbol(symbol)
        if not signals:
            return None

        buys = [s for s in signals if s.side == Side.BUY]
        sells = [s for s in signals if s.side == Side.SELL]

        if len(buys) > len(sells):
            side, agreeing = Side.BUY, buys
        elif len(sells) > len(buys):
            side, agreeing = Side.SELL, sells
        else:
            side = self.tie_side
            agreeing = buys if side == Side.BUY else sells

        count = len(agreeing)
        now = self.clock()
        return Signal(
            symbol=symbol,
            side=side,
            strength=sum(s.strength for s in agreeing) / count,
            confidence=sum(s.confidence for s in agreeing) / count,
            source=CONSENSUS_SOURCE,
            indicators={
                "agreement_count": float(count),
                "total_signals": float(len(signals)),
            },
            reasoning=f"{count} providers agree on {side.value} signal",
            created_at=now,
            expires_at=now + CONSENSUS_EXPIRY,
        )
