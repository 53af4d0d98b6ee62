"""Tests for sessions.yaml loading."""

from datetime import datetime, time, timezone

import pytest
from pydantic import ValidationError

from signal_app.session_config import SessionConfig, load_session_config
from signal_core.models import DEFAULT_SESSIONS, Impact


class TestLoadSessionConfig:

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_session_config(tmp_path / "missing.yaml")
        assert [s.name for s in config.sessions] == [s.name for s in DEFAULT_SESSIONS]
        assert config.news_events == []

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "sessions.yaml"
        path.write_text("")
        assert len(load_session_config(path).sessions) == len(DEFAULT_SESSIONS)

    def test_loads_sessions_and_events(self, tmp_path):
        path = tmp_path / "sessions.yaml"
        path.write_text(
            """
sessions:
  - name: Frankfurt
    start_time: "07:00"
    end_time: "15:30"
    timezone: Europe/Berlin
    allowed_symbols: [EURUSD, EURGBP]
news_events:
  - time: "2026-10-20T12:30:00Z"
    currency: USD
    impact: HIGH
    title: Non-Farm Payrolls
    buffer_minutes: 45
"""
        )

        config = load_session_config(path)

        assert len(config.sessions) == 1
        session = config.sessions[0]
        assert session.name == "Frankfurt"
        assert session.end_time == time(15, 30)
        assert session.allowed_symbols == ["EURUSD", "EURGBP"]

        event = config.news_events[0]
        assert event.time == datetime(2026, 10, 20, 12, 30, tzinfo=timezone.utc)
        assert event.impact == Impact.HIGH
        assert event.buffer_minutes == 45

    def test_invalid_timezone_rejected(self, tmp_path):
        path = tmp_path / "sessions.yaml"
        path.write_text(
            """
sessions:
  - name: Bad
    start_time: "07:00"
    end_time: "15:00"
    timezone: Nowhere/Special
"""
        )
        with pytest.raises(ValidationError):
            load_session_config(path)

    def test_unquoted_time_rejected(self, tmp_path):
        # YAML 1.1 reads an unquoted 13:00 as the integer 780
        path = tmp_path / "sessions.yaml"
        path.write_text(
            """
sessions:
  - name: Unquoted
    start_time: 13:00
    end_time: "22:00"
"""
        )
        with pytest.raises(ValidationError):
            load_session_config(path)


class TestSessionConfig:

    def test_defaults_are_independent_copies(self):
        a = SessionConfig()
        b = SessionConfig()
        a.sessions[0].allowed_symbols.append("XAUUSD")
        assert "XAUUSD" not in b.sessions[0].allowed_symbols
        assert "XAUUSD" not in DEFAULT_SESSIONS[0].allowed_symbols

    def test_duplicate_session_names_rejected(self):
        session = DEFAULT_SESSIONS[0].model_dump()
        with pytest.raises(ValidationError):
            SessionConfig(sessions=[session, session])
