"""Trading signal models."""

import hashlib
import math
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CONSENSUS_SOURCE = "consensus"


class Side(str, Enum):
    """Trade side."""

    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def from_sign(cls, value: float) -> "Side":
        """BUY for a positive value, SELL otherwise."""
        return cls.BUY if value > 0 else cls.SELL


def _generate_signal_id(
    source: str,
    symbol: str,
    created_at: datetime,
    side: str,
) -> str:
    """Generate deterministic signal ID based on signal attributes.

    The same provider firing for the same symbol at the same instant
    always produces the same ID, so replays with a fixed clock are
    reproducible.
    """
    ts_str = created_at.strftime("%Y%m%d%H%M%S%f")
    key = f"{source}:{symbol}:{ts_str}:{side}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


def _clamp_score(value: float) -> float:
    if math.isnan(value):
        raise ValueError("score must be a number")
    return min(max(value, 0.0), 100.0)


class Signal(BaseModel):
    """A directional trading signal produced by one provider.

    Signals are immutable: the engine prunes and replaces them, it never
    edits one in place. Strength and confidence are clamped into [0, 100].
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""  # Will be set in model_post_init
    symbol: str
    side: Side
    strength: float
    confidence: float
    source: str  # provider id, or "consensus"
    indicators: dict[str, float] = Field(default_factory=dict)
    reasoning: str = ""
    created_at: datetime
    expires_at: datetime

    @field_validator("strength", "confidence")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return _clamp_score(value)

    @model_validator(mode="after")
    def _check_expiry(self):
        if self.expires_at <= self.created_at:
            raise ValueError(
                f"expires_at ({self.expires_at}) must be after created_at ({self.created_at})"
            )
        return self

    def model_post_init(self, __context) -> None:
        """Generate deterministic ID after model initialization."""
        if not self.id:
            object.__setattr__(
                self,
                "id",
                _generate_signal_id(
                    self.source, self.symbol, self.created_at, self.side.value
                ),
            )

    def is_expired(self, now: datetime) -> bool:
        """A signal is live while ``expires_at > now``."""
        return self.expires_at <= now


class ProviderInfo(BaseModel):
    """Public description of a registered signal provider."""

    id: str
    name: str
    description: str = ""
    enabled: bool = True
