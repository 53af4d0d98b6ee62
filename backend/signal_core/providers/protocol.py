"""Protocols for signal providers and their injected collaborators.

This module provides:
- SignalProvider: Runtime-checkable Protocol every provider satisfies
- MarketDataSource: where the engine gets quotes and bar history
- SentimentSource: external sentiment/positioning scores
"""

from datetime import datetime
from typing import Protocol, Sequence, runtime_checkable

from signal_core.models import Bar, Quote, Signal


@runtime_checkable
class SignalProvider(Protocol):
    """Protocol that all signal providers must implement.

    Providers are pure: given the same symbol, quote, history and instant
    (plus their injected randomness or prediction source) they return the
    same result and touch no shared state.
    """

    @property
    def id(self) -> str:
        """Unique provider identifier (e.g., 'technical-analysis')."""
        ...

    @property
    def name(self) -> str:
        """Human-readable name."""
        ...

    @property
    def description(self) -> str:
        ...

    async def generate_signal(
        self,
        symbol: str,
        quote: Quote,
        history: Sequence[Bar],
        now: datetime,
    ) -> Signal | None:
        """Evaluate the provider's rules for one symbol.

        Args:
            symbol: Symbol being evaluated.
            quote: Latest quote for the symbol.
            history: Bars ordered oldest to newest.
            now: Creation instant for any signal produced.

        Returns:
            A Signal, or None when the rules do not fire.
        """
        ...


@runtime_checkable
class MarketDataSource(Protocol):
    """Injected market data access. Carries its own timeout/retry policy."""

    async def get_latest_quote(self, symbol: str) -> Quote | None:
        ...

    async def get_history(self, symbol: str, count: int) -> list[Bar]:
        """Return up to ``count`` most recent bars, oldest first."""
        ...


@runtime_checkable
class SentimentSource(Protocol):
    """External sentiment and positioning scores per symbol."""

    def get_sentiment(self, symbol: str) -> float | None:
        """Sentiment in [-1, 1], or None when unknown."""
        ...

    def get_positioning(self, symbol: str) -> float:
        ...
