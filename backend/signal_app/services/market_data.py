"""Market data sources for the signal engine.

- InMemoryMarketDataSource: holds whatever an external feed pushes in
  (latest quote per symbol plus a bounded bar buffer). Stale quotes are
  reported as missing so the engine skips the symbol instead of trading on
  old prices.
- SimulatedMarketDataSource: seeded random walk around fixed base prices.
  Only for demos; select it explicitly with ``market_data=simulated``.
"""

import logging
import random
from datetime import datetime, timedelta
from decimal import Decimal

from signal_core.clock import Clock, utc_now
from signal_core.models import Bar, Quote

logger = logging.getLogger(__name__)

# Maximum bars kept per symbol (prevents unbounded growth)
MAX_BARS = 500

BASE_PRICES: dict[str, float] = {
    "EURUSD": 1.0845,
    "GBPUSD": 1.2650,
    "USDJPY": 148.50,
    "AUDUSD": 0.6745,
    "USDCAD": 1.3420,
    "NZDUSD": 0.6123,
    "GBPJPY": 187.85,
    "EURGBP": 0.8575,
}


class BarBuffer:
    """Bounded, timestamp-ordered bar buffer for one symbol."""

    def __init__(self, max_size: int = MAX_BARS):
        self.max_size = max_size
        self.bars: list[Bar] = []

    def add(self, bar: Bar) -> None:
        """Append a bar, replacing the last one if the timestamp matches.

        Bars older than the newest one are ignored.
        """
        if self.bars and bar.timestamp <= self.bars[-1].timestamp:
            if bar.timestamp == self.bars[-1].timestamp:
                self.bars[-1] = bar
            return

        self.bars.append(bar)
        if len(self.bars) > self.max_size:
            self.bars = self.bars[-self.max_size:]

    def latest(self, count: int) -> list[Bar]:
        if count <= 0:
            return []
        return list(self.bars[-count:])

    def __len__(self) -> int:
        return len(self.bars)


class InMemoryMarketDataSource:
    """Market data pushed in by an external feed."""

    def __init__(
        self,
        max_bars: int = MAX_BARS,
        max_quote_age: timedelta | None = None,
        clock: Clock = utc_now,
    ):
        """
        Args:
            max_bars: Bars kept per symbol
            max_quote_age: Quotes older than this are treated as missing
            clock: Returns the current tz-aware instant
        """
        self.max_bars = max_bars
        self.max_quote_age = max_quote_age
        self.clock = clock
        self._quotes: dict[str, Quote] = {}
        self._bars: dict[str, BarBuffer] = {}

    def update_quote(self, quote: Quote) -> None:
        self._quotes[quote.symbol] = quote

    def add_bar(self, symbol: str, bar: Bar) -> None:
        buffer = self._bars.get(symbol)
        if buffer is None:
            buffer = self._bars[symbol] = BarBuffer(self.max_bars)
        buffer.add(bar)

    def set_history(self, symbol: str, bars: list[Bar]) -> None:
        """Replace a symbol's bars (e.g. after a backfill)."""
        buffer = BarBuffer(self.max_bars)
        for bar in sorted(bars, key=lambda b: b.timestamp):
            buffer.add(bar)
        self._bars[symbol] = buffer

    @property
    def symbols(self) -> list[str]:
        return sorted(set(self._quotes) | set(self._bars))

    async def get_latest_quote(self, symbol: str) -> Quote | None:
        quote = self._quotes.get(symbol)
        if quote is None:
            return None
        if self.max_quote_age is not None and self.clock() - quote.timestamp > self.max_quote_age:
            logger.debug("Quote for %s is stale (%s)", symbol, quote.timestamp.isoformat())
            return None
        return quote

    async def get_history(self, symbol: str, count: int) -> list[Bar]:
        buffer = self._bars.get(symbol)
        if buffer is None:
            return []
        return buffer.latest(count)


def _dec(value: float) -> Decimal:
    return Decimal(str(round(value, 6)))


class SimulatedMarketDataSource(InMemoryMarketDataSource):
    """Seeded random-walk prices for demos.

    Each symbol starts from its base price with ``initial_bars`` hourly bars
    of history; every ``tick()`` moves the price and closes a new bar.
    """

    def __init__(
        self,
        symbols: list[str],
        seed: int | None = None,
        initial_bars: int = 200,
        bar_interval: timedelta = timedelta(hours=1),
        clock: Clock = utc_now,
    ):
        super().__init__(max_bars=max(initial_bars, MAX_BARS), clock=clock)
        self.rng = random.Random(seed)
        self.bar_interval = bar_interval

        start = clock() - bar_interval * initial_bars
        for symbol in symbols:
            price = BASE_PRICES.get(symbol, 1.0)
            for i in range(initial_bars):
                price += (self.rng.random() - 0.5) * price * 0.001
                self.add_bar(symbol, self._make_bar(price, start + bar_interval * i))
            self.update_quote(self._make_quote(symbol, price))

        logger.info(
            "Simulated market data for %d symbols (%d bars each, seed=%s)",
            len(symbols),
            initial_bars,
            seed,
        )

    def _make_bar(self, price: float, timestamp: datetime) -> Bar:
        return Bar(
            timestamp=timestamp,
            open=_dec(price),
            high=_dec(price * (1 + self.rng.random() * 0.002)),
            low=_dec(price * (1 - self.rng.random() * 0.002)),
            close=_dec(price),
            volume=Decimal(self.rng.randint(100_000, 1_100_000)),
        )

    def _make_quote(self, symbol: str, price: float) -> Quote:
        spread = price * 0.00015  # 1.5 pips
        return Quote(
            symbol=symbol,
            price=_dec(price),
            bid=_dec(price - spread / 2),
            ask=_dec(price + spread / 2),
            timestamp=self.clock(),
            volume=Decimal(self.rng.randint(100_000, 1_100_000)),
        )

    def tick(self) -> None:
        """Advance every symbol by one random-walk step and close a bar."""
        now = self.clock()
        for symbol, quote in list(self._quotes.items()):
            price = float(quote.price)
            change = (self.rng.random() - 0.5) * price * 0.0001 * 2
            price += change * (1 - 0.001)  # slight mean reversion
            self.update_quote(self._make_quote(symbol, price))

            buffer = self._bars[symbol]
            last = buffer.bars[-1].timestamp if buffer.bars else now - self.bar_interval
            self.add_bar(symbol, self._make_bar(price, max(now, last + self.bar_interval)))
