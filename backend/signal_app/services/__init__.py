"""Business services."""

from signal_app.services.market_data import (
    BASE_PRICES,
    BarBuffer,
    InMemoryMarketDataSource,
    SimulatedMarketDataSource,
)
from signal_app.services.scheduler import SignalScheduler
from signal_app.services.sentiment import RandomSentimentSource

__all__ = [
    "BASE_PRICES",
    "BarBuffer",
    "InMemoryMarketDataSource",
    "SimulatedMarketDataSource",
    "SignalScheduler",
    "RandomSentimentSource",
]
