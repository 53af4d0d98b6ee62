"""Trading session and news event models."""

from datetime import datetime, time, timedelta
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from signal_core.clock import ensure_utc


class TradingSession(BaseModel):
    """A named time-of-day window in its own timezone.

    The window is inclusive at both ends. When ``end_time`` is earlier than
    ``start_time`` the window wraps past local midnight.
    """

    name: str
    start_time: time
    end_time: time
    timezone: str = "UTC"
    allowed_symbols: list[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_wall_time(cls, value):
        """Accept only naive "HH:MM[:SS]" strings or naive ``time`` values.

        Times are wall-clock times in ``timezone``. Unquoted YAML such as
        ``13:00`` arrives as an int (sexagesimal 780) and is rejected.
        """
        if isinstance(value, str):
            try:
                value = time.fromisoformat(value.strip())
            except ValueError as e:
                raise ValueError(f"expected HH:MM[:SS], got '{value}'") from e
        if not isinstance(value, time):
            raise ValueError(f"expected an HH:MM[:SS] string, got {value!r}")
        if value.tzinfo is not None:
            raise ValueError(
                "session times are local to the session timezone and must not carry a UTC offset"
            )
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone '{value}'") from e
        return value

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def local_time(self, instant: datetime) -> time:
        """Wall-clock time of ``instant`` in this session's timezone."""
        return ensure_utc(instant).astimezone(self.zone).time()

    def contains(self, instant: datetime) -> bool:
        """Check whether ``instant`` falls inside the session window."""
        now = self.local_time(instant).replace(tzinfo=None)
        if self.start_time <= self.end_time:
            return self.start_time <= now <= self.end_time
        return now >= self.start_time or now <= self.end_time

    def allows(self, symbol: str) -> bool:
        return symbol in self.allowed_symbols


class Impact(str, Enum):
    """Expected market impact of a news event."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class NewsEvent(BaseModel):
    """A scheduled news release with a symmetric blackout buffer."""

    model_config = ConfigDict(frozen=True)

    time: datetime
    currency: str
    impact: Impact = Impact.HIGH
    title: str
    buffer_minutes: int = Field(default=30, ge=0)

    @field_validator("time")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def blackout_start(self) -> datetime:
        return self.time - timedelta(minutes=self.buffer_minutes)

    @property
    def blackout_end(self) -> datetime:
        return self.time + timedelta(minutes=self.buffer_minutes)

    def covers(self, instant: datetime) -> bool:
        """Check whether ``instant`` is inside the blackout interval."""
        return self.blackout_start <= ensure_utc(instant) <= self.blackout_end


class Tradeability(BaseModel):
    """Answer to a tradeability query."""

    allowed: bool
    reason: str | None = None


NEWS_BLACKOUT_REASON = "news blackout"
OUTSIDE_SESSION_REASON = "outside active session"


# =============================================================================
# Default FX sessions
# =============================================================================
DEFAULT_SESSIONS: list[TradingSession] = [
    TradingSession(
        name="London Session",
        start_time=time(8, 0), end_time=time(17, 0),
        timezone="Europe/London",
        allowed_symbols=["EURUSD", "GBPUSD", "EURGBP"],
    ),
    TradingSession(
        name="New York Session",
        start_time=time(13, 0), end_time=time(22, 0),
        timezone="America/New_York",
        allowed_symbols=["EURUSD", "GBPUSD", "USDJPY", "USDCAD"],
    ),
    TradingSession(
        name="Asian Session",
        start_time=time(0, 0), end_time=time(9, 0),
        timezone="Asia/Tokyo",
        allowed_symbols=["USDJPY", "AUDUSD", "NZDUSD"],
    ),
]
