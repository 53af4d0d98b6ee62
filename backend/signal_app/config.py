"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Symbols evaluated every cycle
    symbols: list[str] = ["EURUSD", "GBPUSD", "USDJPY", "AUDUSD"]

    # Signal cycle
    signal_interval_seconds: float = 30.0
    history_bars: int = 200
    signal_history_limit: int = 1000  # Retention for the in-memory signal history
    enabled_providers: list[str] = [
        "technical-analysis",
        "sentiment-analysis",
        "ml-prediction",
    ]
    consensus_tie_side: Literal["BUY", "SELL"] = "SELL"

    # Demo behavior (never enable in production)
    demo_fallback_enabled: bool = False
    random_seed: int | None = None

    # "memory": fed by an external price feed, "simulated": random walk demo
    market_data: Literal["memory", "simulated"] = "memory"

    # Sessions and news schedule
    sessions_path: str = "sessions.yaml"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
