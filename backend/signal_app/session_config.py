"""Trading sessions and news schedule loaded from sessions.yaml.

Supports:
- Overriding the built-in London / New York / Asian sessions
- Pre-scheduling news events with their blackout buffers
- No YAML file = default sessions, empty news schedule

Example:
    sessions:
      - name: London Session
        start_time: "08:00"
        end_time: "17:00"
        timezone: Europe/London
        allowed_symbols: [EURUSD, GBPUSD]
    news_events:
      - time: "2026-10-20T12:30:00Z"
        currency: USD
        impact: HIGH
        title: Non-Farm Payrolls
        buffer_minutes: 30
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, model_validator

from signal_core.models import DEFAULT_SESSIONS, NewsEvent, TradingSession

logger = logging.getLogger(__name__)


class SessionConfig(BaseModel):
    """Top-level sessions.yaml configuration."""

    sessions: list[TradingSession] = [s.model_copy(deep=True) for s in DEFAULT_SESSIONS]
    news_events: list[NewsEvent] = []

    @model_validator(mode="after")
    def _validate(self):
        names = [s.name for s in self.sessions]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate session names: {', '.join(duplicates)}")
        return self


_DEFAULT_PATH = Path(__file__).parent.parent / "sessions.yaml"


def load_session_config(path: Path | str | None = None) -> SessionConfig:
    """Load sessions and news events from YAML.

    Falls back to the default sessions if the file doesn't exist.
    """
    config_path = Path(path) if path else _DEFAULT_PATH

    if not config_path.exists():
        logger.info(
            "No sessions file found at %s, using default sessions",
            config_path,
        )
        return SessionConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = SessionConfig(**raw)
    logger.info(
        "Loaded session config: %d sessions, %d news events",
        len(config.sessions),
        len(config.news_events),
    )
    return config
