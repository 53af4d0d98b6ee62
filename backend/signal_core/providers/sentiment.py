"""Market sentiment provider.

Turns an externally supplied sentiment score in [-1, 1] into a signal:
side follows the sign, strength is |score| * 100, confidence is fixed.
Scores inside the neutral band produce nothing unless the demo fallback
policy fires.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Sequence

from pydantic import BaseModel

from signal_core.models import Bar, Quote, Side, Signal
from signal_core.providers.base import BaseSignalProvider
from signal_core.providers.fallback import FallbackPolicy
from signal_core.providers.protocol import SentimentSource
from signal_core.providers.registry import register_provider

logger = logging.getLogger(__name__)

SENTIMENT_PROVIDER_ID = "sentiment-analysis"


class SentimentConfig(BaseModel):
    neutral_band: float = 0.2
    confidence: float = 65.0
    fallback_probability: float = 0.3
    fallback_confidence: float = 50.0


class StaticSentimentSource:
    """Sentiment scores set explicitly per symbol (e.g. by a news feed job)."""

    def __init__(
        self,
        sentiment: dict[str, float] | None = None,
        positioning: dict[str, float] | None = None,
    ):
        self._sentiment = dict(sentiment or {})
        self._positioning = dict(positioning or {})

    def set_sentiment(self, symbol: str, score: float, positioning: float | None = None) -> None:
        self._sentiment[symbol] = score
        if positioning is not None:
            self._positioning[symbol] = positioning

    def get_sentiment(self, symbol: str) -> float | None:
        return self._sentiment.get(symbol)

    def get_positioning(self, symbol: str) -> float:
        return self._positioning.get(symbol, 0.5)


@register_provider(SENTIMENT_PROVIDER_ID)
class SentimentAnalysisProvider(BaseSignalProvider):
    """News sentiment and market positioning analysis."""

    id = SENTIMENT_PROVIDER_ID
    name = "Market Sentiment"
    description = "News sentiment and market positioning analysis"
    expiry = timedelta(minutes=60)

    def __init__(
        self,
        source: SentimentSource | None = None,
        config: SentimentConfig | None = None,
        fallback: FallbackPolicy | None = None,
    ):
        super().__init__(fallback)
        self.source = source or StaticSentimentSource()
        self.config = config or SentimentConfig()

    async def generate_signal(
        self,
        symbol: str,
        quote: Quote,
        history: Sequence[Bar],
        now: datetime,
    ) -> Signal | None:
        sentiment = self.source.get_sentiment(symbol)
        if sentiment is None:
            return None
        if not math.isfinite(sentiment):
            logger.warning("Ignoring non-finite sentiment for %s: %r", symbol, sentiment)
            return None

        sentiment = max(-1.0, min(1.0, sentiment))
        positioning = self.source.get_positioning(symbol)
        indicators = {"sentiment": sentiment, "positioning": positioning}

        if abs(sentiment) < self.config.neutral_band:
            if not self.fallback.fires(self.config.fallback_probability):
                return None
            side = self.fallback.pick_side()
            bias = "bullish" if side == Side.BUY else "bearish"
            return self._build_signal(
                symbol=symbol,
                side=side,
                strength=float(self.fallback.randint(35, 64)),
                confidence=self.config.fallback_confidence,
                indicators=indicators,
                reasoning=f"Neutral market sentiment with slight {bias} bias detected",
                now=now,
            )

        side = Side.from_sign(sentiment)
        mood = "bullish" if side == Side.BUY else "bearish"
        return self._build_signal(
            symbol=symbol,
            side=side,
            strength=abs(sentiment) * 100,
            confidence=self.config.confidence,
            indicators=indicators,
            reasoning=f"Market sentiment is {mood} with {abs(sentiment) * 100:.0f}% confidence",
            now=now,
        )
