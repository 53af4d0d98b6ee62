"""ML price prediction provider.

The prediction itself is pluggable. ``trend_extrapolation`` is a naive
stand-in that damps the recent trend; swap in a trained model by passing
any ``predictor(history) -> price`` callable.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Sequence

from pydantic import BaseModel

from signal_core.models import Bar, Quote, Side, Signal, closes
from signal_core.providers.base import BaseSignalProvider
from signal_core.providers.fallback import FallbackPolicy
from signal_core.providers.registry import register_provider

logger = logging.getLogger(__name__)

ML_PROVIDER_ID = "ml-prediction"

Predictor = Callable[[Sequence[Bar]], float]


def trend_extrapolation(
    history: Sequence[Bar],
    lookback: int = 10,
    damping: float = 0.1,
) -> float:
    """Predict the next price as last close * (1 + damping * recent trend)."""
    recent = closes(list(history[-lookback:]))
    if not recent or recent[0] == 0:
        raise ValueError("trend extrapolation needs a non-empty, non-zero history")
    trend = (recent[-1] - recent[0]) / recent[0]
    return recent[-1] * (1 + trend * damping)


class MLPredictionConfig(BaseModel):
    min_bars: int = 50
    min_change: float = 0.002
    strength_scale: float = 2000.0
    min_strength: float = 25.0
    confidence: float = 75.0
    fallback_probability: float = 0.4
    fallback_max_change: float = 0.01
    fallback_confidence: float = 70.0


@register_provider(ML_PROVIDER_ID)
class MLPredictionProvider(BaseSignalProvider):
    """Machine learning based price prediction."""

    id = ML_PROVIDER_ID
    name = "ML Price Prediction"
    description = "Machine learning based price prediction"
    expiry = timedelta(minutes=30)

    def __init__(
        self,
        predictor: Predictor | None = None,
        config: MLPredictionConfig | None = None,
        fallback: FallbackPolicy | None = None,
    ):
        super().__init__(fallback)
        self.predictor = predictor or trend_extrapolation
        self.config = config or MLPredictionConfig()

    async def generate_signal(
        self,
        symbol: str,
        quote: Quote,
        history: Sequence[Bar],
        now: datetime,
    ) -> Signal | None:
        cfg = self.config
        if len(history) < cfg.min_bars:
            return None

        current_price = float(quote.price)
        if current_price <= 0:
            return None

        prediction = float(self.predictor(history))
        if not math.isfinite(prediction):
            logger.warning("Ignoring non-finite prediction for %s: %r", symbol, prediction)
            return None
        change = (prediction - current_price) / current_price

        if abs(change) < cfg.min_change:
            return self._fallback_signal(symbol, current_price, now)

        return self._build_signal(
            symbol=symbol,
            side=Side.from_sign(change),
            strength=max(min(abs(change) * cfg.strength_scale, 100.0), cfg.min_strength),
            confidence=cfg.confidence,
            indicators={
                "prediction": prediction,
                "current_price": current_price,
                "change": change,
            },
            reasoning=f"ML model predicts {change * 100:.2f}% price movement",
            now=now,
        )

    def _fallback_signal(self, symbol: str, current_price: float, now: datetime) -> Signal | None:
        cfg = self.config
        if not self.fallback.fires(cfg.fallback_probability):
            return None

        change = self.fallback.uniform(-cfg.fallback_max_change, cfg.fallback_max_change)
        return self._build_signal(
            symbol=symbol,
            side=Side.from_sign(change),
            strength=max(min(abs(change) * 5000, 80.0), cfg.min_strength),
            confidence=cfg.fallback_confidence,
            indicators={
                "prediction": current_price * (1 + change),
                "current_price": current_price,
                "change": change,
            },
            reasoning=f"ML model detects {change * 100:.2f}% potential price movement based on pattern analysis",
            now=now,
        )
