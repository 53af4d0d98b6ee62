"""Data models."""

from signal_core.models.market import Bar, Quote, closes
from signal_core.models.signal import (
    CONSENSUS_SOURCE,
    ProviderInfo,
    Side,
    Signal,
)
from signal_core.models.session import (
    DEFAULT_SESSIONS,
    NEWS_BLACKOUT_REASON,
    OUTSIDE_SESSION_REASON,
    Impact,
    NewsEvent,
    Tradeability,
    TradingSession,
)

__all__ = [
    "Bar",
    "Quote",
    "closes",
    "CONSENSUS_SOURCE",
    "ProviderInfo",
    "Side",
    "Signal",
    "DEFAULT_SESSIONS",
    "NEWS_BLACKOUT_REASON",
    "OUTSIDE_SESSION_REASON",
    "Impact",
    "NewsEvent",
    "Tradeability",
    "TradingSession",
]
