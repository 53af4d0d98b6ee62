"""Market data models (bars and quotes)."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from signal_core.clock import ensure_utc


class Bar(BaseModel):
    """OHLCV bar. Histories are ordered ascending by timestamp."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = Decimal("0")

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) bar."""
        return self.close > self.open

    @property
    def range_size(self) -> Decimal:
        """Get the full range (high - low) of the bar."""
        return self.high - self.low


class Quote(BaseModel):
    """Latest tick snapshot for a symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: Decimal
    bid: Decimal
    ask: Decimal
    timestamp: datetime
    volume: Decimal = Decimal("0")

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def spread(self) -> Decimal:
        """Get the bid/ask spread."""
        return self.ask - self.bid


def closes(history: list[Bar]) -> list[float]:
    """Extract close prices as floats for indicator math."""
    return [float(bar.close) for bar in history]
