"""Signal provider plugin system.

Public API:
- SignalProvider: Protocol that all providers must implement
- MarketDataSource / SentimentSource: injected collaborators
- register_provider / create_provider / list_providers / get_provider_class
- FallbackPolicy: explicit switch for demo signal synthesis

Importing this package auto-registers the built-in providers.
"""

from signal_core.providers.protocol import (
    MarketDataSource,
    SentimentSource,
    SignalProvider,
)
from signal_core.providers.registry import (
    create_provider,
    get_provider_class,
    list_providers,
    register_provider,
)
from signal_core.providers.fallback import FallbackPolicy
from signal_core.providers.base import BaseSignalProvider
from signal_core.providers.technical import (
    TECHNICAL_PROVIDER_ID,
    TechnicalAnalysisProvider,
    TechnicalConfig,
)
from signal_core.providers.sentiment import (
    SENTIMENT_PROVIDER_ID,
    SentimentAnalysisProvider,
    SentimentConfig,
    StaticSentimentSource,
)
from signal_core.providers.ml_prediction import (
    ML_PROVIDER_ID,
    MLPredictionConfig,
    MLPredictionProvider,
    Predictor,
    trend_extrapolation,
)

DEFAULT_PROVIDER_IDS = [TECHNICAL_PROVIDER_ID, SENTIMENT_PROVIDER_ID, ML_PROVIDER_ID]

__all__ = [
    "MarketDataSource",
    "SentimentSource",
    "SignalProvider",
    "create_provider",
    "get_provider_class",
    "list_providers",
    "register_provider",
    "FallbackPolicy",
    "BaseSignalProvider",
    "TECHNICAL_PROVIDER_ID",
    "TechnicalAnalysisProvider",
    "TechnicalConfig",
    "SENTIMENT_PROVIDER_ID",
    "SentimentAnalysisProvider",
    "SentimentConfig",
    "StaticSentimentSource",
    "ML_PROVIDER_ID",
    "MLPredictionConfig",
    "MLPredictionProvider",
    "Predictor",
    "trend_extrapolation",
    "DEFAULT_PROVIDER_IDS",
]
