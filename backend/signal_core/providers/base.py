"""Shared plumbing for the built-in providers."""

from datetime import datetime, timedelta

from signal_core.models import Side, Signal
from signal_core.providers.fallback import FallbackPolicy


class BaseSignalProvider:
    """Common attributes and signal construction.

    Subclasses set ``id``, ``name``, ``description`` and ``expiry`` and
    implement ``generate_signal``.
    """

    id: str = ""
    name: str = ""
    description: str = ""
    expiry: timedelta = timedelta(minutes=15)

    def __init__(self, fallback: FallbackPolicy | None = None):
        self.fallback = fallback or FallbackPolicy.disabled()

    def _build_signal(
        self,
        symbol: str,
        side: Side,
        strength: float,
        confidence: float,
        indicators: dict[str, float],
        reasoning: str,
        now: datetime,
    ) -> Signal:
        return Signal(
            symbol=symbol,
            side=side,
            strength=min(strength, 100.0),
            confidence=confidence,
            source=self.id,
            indicators=indicators,
            reasoning=reasoning,
            created_at=now,
            expires_at=now + self.expiry,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, fallback={self.fallback.enabled})"
