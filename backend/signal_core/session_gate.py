"""Trading session and news blackout gate.

Answers "may this symbol be traded right now?" for callers such as an
order-placement layer. Each session is evaluated in its own timezone. The
news blackout is not a stored flag: every query checks whether any
scheduled event's blackout interval covers the current instant, so
overlapping events can never clear each other and nothing needs a timer.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Iterable

from signal_core.clock import Clock, utc_now
from signal_core.models import (
    NEWS_BLACKOUT_REASON,
    OUTSIDE_SESSION_REASON,
    NewsEvent,
    Tradeability,
    TradingSession,
)

logger = logging.getLogger(__name__)


class SessionWindowGate:
    """Session windows plus news-event blackouts behind one lock."""

    def __init__(
        self,
        sessions: Iterable[TradingSession] = (),
        news_events: Iterable[NewsEvent] = (),
        clock: Clock = utc_now,
    ):
        self.clock = clock
        self._lock = threading.RLock()
        self._sessions: list[TradingSession] = [s.model_copy(deep=True) for s in sessions]
        self._news_events: list[NewsEvent] = []
        for event in news_events:
            self.add_news_event(event)

    # ------------------------------------------------------------------
    # Tradeability
    # ------------------------------------------------------------------

    def is_symbol_tradeable(self, symbol: str) -> Tradeability:
        """Check blackout first, then the session windows.

        A news blackout blocks every symbol regardless of sessions.
        """
        with self._lock:
            now = self.clock()
            if self._blackout_at(now):
                return Tradeability(allowed=False, reason=NEWS_BLACKOUT_REASON)

            for session in self._sessions:
                if session.is_active and session.allows(symbol) and session.contains(now):
                    return Tradeability(allowed=True)

            return Tradeability(allowed=False, reason=OUTSIDE_SESSION_REASON)

    def active_sessions(self) -> list[TradingSession]:
        """Active sessions whose window contains the current instant."""
        with self._lock:
            now = self.clock()
            return [
                s.model_copy(deep=True)
                for s in self._sessions
                if s.is_active and s.contains(now)
            ]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def get_sessions(self) -> list[TradingSession]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._sessions]

    def update_session(self, name: str, updates: dict[str, Any]) -> TradingSession | None:
        """Apply a partial update to the named session.

        The merged session is re-validated, so a bad timezone or time raises
        ``pydantic.ValidationError`` and leaves the session unchanged.

        Returns:
            The updated session, or None if no session has that name.

        Raises:
            ValueError: If the update renames the session to a name another
                session already uses.
        """
        with self._lock:
            for i, session in enumerate(self._sessions):
                if session.name != name:
                    continue
                merged = TradingSession.model_validate(
                    {**session.model_dump(), **updates}
                )
                if merged.name != name and any(
                    s.name == merged.name for j, s in enumerate(self._sessions) if j != i
                ):
                    raise ValueError(f"duplicate session name: {merged.name}")
                self._sessions[i] = merged
                logger.info(f"Trading session updated: {name} {updates}")
                return merged.model_copy(deep=True)

        logger.debug("Ignoring update for unknown session: %s", name)
        return None

    # ------------------------------------------------------------------
    # News events
    # ------------------------------------------------------------------

    def add_news_event(self, event: NewsEvent) -> None:
        """Schedule a news event.

        Events whose blackout already ended are dropped from the schedule
        at the same time, keeping it bounded.
        """
        with self._lock:
            now = self.clock()
            was_blackout = self._blackout_at(now)

            self._news_events = [
                e for e in self._news_events if e.blackout_end >= now
            ]
            self._news_events.append(event)
            self._news_events.sort(key=lambda e: e.time)

            logger.info(f"News event added: {event.title} ({event.currency}, {event.impact.value})")
            if not was_blackout and event.covers(now):
                logger.warning(
                    "News blackout started: %s (until %s)",
                    event.title,
                    event.blackout_end.isoformat(),
                )

    def remove_news_event(self, title: str) -> int:
        """Remove every scheduled event with the given title.

        Returns:
            Number of events removed.
        """
        with self._lock:
            before = len(self._news_events)
            self._news_events = [e for e in self._news_events if e.title != title]
            removed = before - len(self._news_events)
        if removed:
            logger.info(f"News event removed: {title}")
        return removed

    def get_news_events(self) -> list[NewsEvent]:
        with self._lock:
            return list(self._news_events)

    def is_news_blackout_active(self) -> bool:
        with self._lock:
            return self._blackout_at(self.clock())

    def get_upcoming_news_events(self, hours: float = 24) -> list[NewsEvent]:
        """Events scheduled after now and within the next ``hours``."""
        with self._lock:
            now = self.clock()
            cutoff = now + timedelta(hours=hours)
            return [e for e in self._news_events if now < e.time <= cutoff]

    def _blackout_at(self, instant: datetime) -> bool:
        return any(e.covers(instant) for e in self._news_events)
