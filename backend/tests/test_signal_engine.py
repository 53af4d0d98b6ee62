"""Tests for SignalEngine: cycles, active sets, history and consensus."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from signal_core.models import CONSENSUS_SOURCE, Bar, Quote, Side, Signal
from signal_core.providers import (
    SentimentAnalysisProvider,
    StaticSentimentSource,
    TechnicalAnalysisProvider,
)
from signal_core.signal_engine import CONSENSUS_EXPIRY, MissingMarketDataError, SignalEngine

START = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)


class _Clock:
    """Mutable clock for driving expiry."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class _FakeMarketData:
    """Quotes and history keyed by symbol; missing symbols have no data."""

    def __init__(self, symbols=("EURUSD",), bars: int = 60, price: float = 1.0):
        self.quotes: dict[str, Quote] = {}
        self.history: dict[str, list[Bar]] = {}
        for symbol in symbols:
            self.set(symbol, price, bars)

    def set(self, symbol: str, price: float, bars: int) -> None:
        p = Decimal(str(price))
        self.quotes[symbol] = Quote(symbol=symbol, price=p, bid=p, ask=p, timestamp=START)
        self.history[symbol] = [
            Bar(timestamp=START - timedelta(hours=bars - i), open=p, high=p, low=p, close=p)
            for i in range(bars)
        ]

    async def get_latest_quote(self, symbol: str):
        return self.quotes.get(symbol)

    async def get_history(self, symbol: str, count: int):
        return self.history.get(symbol, [])[-count:]


class _StubProvider:
    """Provider that returns a fixed side/strength on every call."""

    def __init__(
        self,
        provider_id: str,
        side: Side = Side.BUY,
        strength: float = 50.0,
        confidence: float = 60.0,
        ttl: timedelta = timedelta(minutes=15),
    ):
        self.id = provider_id
        self.name = provider_id.title()
        self.description = f"Stub provider {provider_id}"
        self.side = side
        self.strength = strength
        self.confidence = confidence
        self.ttl = ttl
        self.calls = 0

    async def generate_signal(self, symbol, quote, history, now):
        self.calls += 1
        return Signal(
            symbol=symbol,
            side=self.side,
            strength=self.strength,
            confidence=self.confidence,
            source=self.id,
            created_at=now,
            expires_at=now + self.ttl,
        )


class _SilentProvider(_StubProvider):
    async def generate_signal(self, symbol, quote, history, now):
        self.calls += 1
        return None


class _FailingProvider(_StubProvider):
    async def generate_signal(self, symbol, quote, history, now):
        self.calls += 1
        raise RuntimeError("provider exploded")


class _BlockingProvider(_StubProvider):
    """Never finishes until cancelled."""

    def __init__(self, provider_id: str):
        super().__init__(provider_id)
        self.started = asyncio.Event()

    async def generate_signal(self, symbol, quote, history, now):
        self.started.set()
        await asyncio.Event().wait()


def _make_engine(providers, clock=None, **kwargs) -> SignalEngine:
    return SignalEngine(
        kwargs.pop("market_data", None) or _FakeMarketData(),
        providers,
        clock=clock or _Clock(),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Generation cycles
# ---------------------------------------------------------------------------

class TestGenerateSignals:

    @pytest.mark.asyncio
    async def test_collects_signals_in_registration_order(self):
        providers = [_StubProvider("a"), _SilentProvider("b"), _StubProvider("c", Side.SELL)]
        engine = _make_engine(providers)

        report = await engine.generate_signals(["EURUSD"])

        assert report.ok
        assert [s.source for s in report.generated["EURUSD"]] == ["a", "c"]
        assert [s.source for s in engine.get_signals_for_symbol("EURUSD")] == ["a", "c"]
        assert all(p.calls == 1 for p in providers)

    @pytest.mark.asyncio
    async def test_provider_receives_market_data(self):
        provider = _StubProvider("a")
        provider.generate_signal = AsyncMock(return_value=None)
        market_data = _FakeMarketData(bars=300)
        engine = _make_engine([provider], market_data=market_data, history_bars=200)

        await engine.generate_for_symbol("EURUSD")

        symbol, quote, history, now = provider.generate_signal.call_args.args
        assert symbol == "EURUSD"
        assert quote == market_data.quotes["EURUSD"]
        assert len(history) == 200
        assert now == START

    @pytest.mark.asyncio
    async def test_missing_quote_skips_symbol(self):
        provider = _StubProvider("a")
        engine = _make_engine([provider])

        report = await engine.generate_signals(["EURUSD", "GBPUSD"])

        assert isinstance(report.failed["GBPUSD"], MissingMarketDataError)
        assert len(report.generated["EURUSD"]) == 1
        assert engine.get_signals_for_symbol("GBPUSD") == []
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_missing_history_raises(self):
        market_data = _FakeMarketData()
        market_data.history["EURUSD"] = []
        engine = _make_engine([_StubProvider("a")], market_data=market_data)

        with pytest.raises(MissingMarketDataError):
            await engine.generate_for_symbol("EURUSD")

    @pytest.mark.asyncio
    async def test_failing_provider_is_isolated(self):
        engine = _make_engine([_FailingProvider("bad"), _StubProvider("good")])

        report = await engine.generate_signals(["EURUSD"])

        assert report.ok
        assert [s.source for s in report.generated["EURUSD"]] == ["good"]

    @pytest.mark.asyncio
    async def test_duplicate_symbols_run_once(self):
        provider = _StubProvider("a")
        engine = _make_engine([provider])

        report = await engine.generate_signals(["EURUSD", "EURUSD"])

        assert provider.calls == 1
        assert report.signal_count == 1

    @pytest.mark.asyncio
    async def test_signals_stack_across_cycles(self):
        engine = _make_engine([_StubProvider("a"), _StubProvider("b")])

        await engine.generate_signals(["EURUSD"])
        await engine.generate_signals(["EURUSD"])

        assert len(engine.get_signals_for_symbol("EURUSD")) == 4

    @pytest.mark.asyncio
    async def test_expired_signals_pruned_on_next_cycle(self):
        clock = _Clock()
        short = _StubProvider("short", ttl=timedelta(minutes=5))
        long = _StubProvider("long", ttl=timedelta(minutes=60))
        engine = _make_engine([short, long], clock=clock)

        await engine.generate_signals(["EURUSD"])
        clock.advance(minutes=10)
        await engine.generate_signals(["EURUSD"])

        sources = [s.source for s in engine.get_signals_for_symbol("EURUSD")]
        assert sources == ["long", "short", "long"]

    @pytest.mark.asyncio
    async def test_symbols_are_independent(self):
        market_data = _FakeMarketData(symbols=("EURUSD", "GBPUSD"))
        engine = _make_engine([_StubProvider("a")], market_data=market_data)

        await engine.generate_signals(["EURUSD", "GBPUSD"])
        await engine.generate_signals(["EURUSD"])

        assert len(engine.get_signals_for_symbol("EURUSD")) == 2
        assert len(engine.get_signals_for_symbol("GBPUSD")) == 1
        assert len(engine.get_all_active_signals()) == 3

    @pytest.mark.asyncio
    async def test_cancelled_cycle_leaves_state_unchanged(self):
        blocking = _BlockingProvider("slow")
        engine = _make_engine([_StubProvider("a")])
        await engine.generate_signals(["EURUSD"])
        before = engine.get_signals_for_symbol("EURUSD")

        engine.register_provider(blocking)
        task = asyncio.create_task(engine.generate_signals(["EURUSD"]))
        await asyncio.wait_for(blocking.started.wait(), timeout=1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert engine.get_signals_for_symbol("EURUSD") == before
        assert len(engine.get_signal_history()) == 1

    @pytest.mark.asyncio
    async def test_real_providers_produce_valid_signals(self):
        source = StaticSentimentSource({"EURUSD": 0.8})
        market_data = _FakeMarketData(bars=200)
        engine = _make_engine(
            [TechnicalAnalysisProvider(), SentimentAnalysisProvider(source)],
            market_data=market_data,
        )

        report = await engine.generate_signals(["EURUSD"])

        for signal in report.generated["EURUSD"]:
            assert 0 <= signal.strength <= 100
            assert 0 <= signal.confidence <= 100
            assert signal.expires_at > signal.created_at
            assert signal.symbol == "EURUSD"
        assert [s.source for s in report.generated["EURUSD"]] == ["sentiment-analysis"]


# ---------------------------------------------------------------------------
# Expiry and queries
# ---------------------------------------------------------------------------

class TestQueries:

    @pytest.mark.asyncio
    async def test_queries_hide_expired_signals(self):
        clock = _Clock()
        engine = _make_engine([_StubProvider("a", ttl=timedelta(minutes=5))], clock=clock)
        await engine.generate_signals(["EURUSD"])

        clock.advance(minutes=5)

        assert engine.get_signals_for_symbol("EURUSD") == []
        assert engine.get_all_active_signals() == []
        assert engine.get_consensus_signal("EURUSD") is None

    @pytest.mark.asyncio
    async def test_clear_expired(self):
        clock = _Clock()
        engine = _make_engine(
            [_StubProvider("a", ttl=timedelta(minutes=5)), _StubProvider("b", ttl=timedelta(hours=1))],
            clock=clock,
        )
        await engine.generate_signals(["EURUSD"])

        clock.advance(minutes=6)

        assert await engine.clear_expired() == 1
        assert await engine.clear_expired() == 0
        assert [s.source for s in engine.get_signals_for_symbol("EURUSD")] == ["b"]

    @pytest.mark.asyncio
    async def test_history_keeps_expired_signals(self):
        clock = _Clock()
        engine = _make_engine([_StubProvider("a", ttl=timedelta(minutes=5))], clock=clock)
        await engine.generate_signals(["EURUSD"])
        clock.advance(hours=1)
        await engine.clear_expired()

        assert len(engine.get_signal_history()) == 1

    @pytest.mark.asyncio
    async def test_history_is_bounded_and_ordered(self):
        clock = _Clock()
        engine = _make_engine([_StubProvider("a")], clock=clock, history_limit=3)

        for _ in range(5):
            await engine.generate_signals(["EURUSD"])
            clock.advance(seconds=1)

        history = engine.get_signal_history()
        assert len(history) == 3
        assert [s.created_at for s in history] == [
            START + timedelta(seconds=2),
            START + timedelta(seconds=3),
            START + timedelta(seconds=4),
        ]
        assert engine.get_signal_history(limit=1) == history[-1:]
        assert engine.get_signal_history(limit=0) == []

    def test_unknown_symbol_has_no_signals(self):
        engine = _make_engine([])
        assert engine.get_signals_for_symbol("XAUUSD") == []
        assert engine.get_consensus_signal("XAUUSD") is None


# ---------------------------------------------------------------------------
# Consensus
# ---------------------------------------------------------------------------

class TestConsensus:

    async def _engine_with(self, providers, **kwargs) -> SignalEngine:
        engine = _make_engine(providers, **kwargs)
        await engine.generate_signals(["EURUSD"])
        return engine

    @pytest.mark.asyncio
    async def test_majority_side_wins(self):
        engine = await self._engine_with([
            _StubProvider("a", Side.BUY, strength=60, confidence=50),
            _StubProvider("b", Side.BUY, strength=70, confidence=60),
            _StubProvider("c", Side.BUY, strength=80, confidence=70),
            _StubProvider("d", Side.SELL, strength=90, confidence=90),
        ])

        consensus = engine.get_consensus_signal("EURUSD")

        assert consensus.side == Side.BUY
        assert consensus.strength == pytest.approx(70.0)
        assert consensus.confidence == pytest.approx(60.0)
        assert consensus.source == CONSENSUS_SOURCE
        assert consensus.reasoning == "3 providers agree on BUY signal"
        assert consensus.indicators == {"agreement_count": 3.0, "total_signals": 4.0}
        assert consensus.expires_at - consensus.created_at == CONSENSUS_EXPIRY

    @pytest.mark.asyncio
    async def test_tie_resolves_to_sell_by_default(self):
        engine = await self._engine_with([
            _StubProvider("a", Side.BUY, strength=90),
            _StubProvider("b", Side.SELL, strength=30),
        ])

        consensus = engine.get_consensus_signal("EURUSD")

        assert consensus.side == Side.SELL
        assert consensus.strength == pytest.approx(30.0)
        assert consensus.reasoning == "1 providers agree on SELL signal"

    @pytest.mark.asyncio
    async def test_tie_side_is_configurable(self):
        engine = await self._engine_with(
            [_StubProvider("a", Side.BUY), _StubProvider("b", Side.SELL)],
            tie_side=Side.BUY,
        )
        assert engine.get_consensus_signal("EURUSD").side == Side.BUY

    @pytest.mark.asyncio
    async def test_stacked_signals_count_in_consensus(self):
        engine = _make_engine([_StubProvider("a", Side.BUY), _StubProvider("b", Side.SELL)])
        await engine.generate_signals(["EURUSD"])
        engine.disable_provider("b")
        await engine.generate_signals(["EURUSD"])

        consensus = engine.get_consensus_signal("EURUSD")

        assert consensus.side == Side.BUY
        assert consensus.indicators["agreement_count"] == 2.0
        assert consensus.indicators["total_signals"] == 3.0

    @pytest.mark.asyncio
    async def test_consensus_is_not_stored(self):
        engine = await self._engine_with([_StubProvider("a")])
        engine.get_consensus_signal("EURUSD")
        assert [s.source for s in engine.get_all_active_signals()] == ["a"]


# ---------------------------------------------------------------------------
# Provider management
# ---------------------------------------------------------------------------

class TestProviderManagement:

    def test_get_providers(self):
        engine = _make_engine([_StubProvider("a"), _StubProvider("b")])
        infos = engine.get_providers()
        assert [(p.id, p.enabled) for p in infos] == [("a", True), ("b", True)]
        assert infos[0].description == "Stub provider a"

    def test_duplicate_registration_rejected(self):
        engine = _make_engine([_StubProvider("a")])
        with pytest.raises(ValueError):
            engine.register_provider(_StubProvider("a"))

    def test_toggle_is_idempotent(self):
        engine = _make_engine([_StubProvider("a")])
        assert engine.disable_provider("a")
        assert engine.disable_provider("a")
        assert engine.get_providers()[0].enabled is False
        assert engine.enable_provider("a")
        assert engine.enable_provider("a")
        assert engine.get_providers()[0].enabled is True

    def test_unknown_provider_is_noop(self):
        engine = _make_engine([_StubProvider("a")])
        assert engine.enable_provider("nope") is False
        assert engine.disable_provider("nope") is False
        assert [p.id for p in engine.get_providers()] == ["a"]

    @pytest.mark.asyncio
    async def test_disabled_provider_not_invoked(self):
        provider = _StubProvider("a")
        engine = _make_engine([provider, _StubProvider("b")])
        engine.disable_provider("a")

        report = await engine.generate_signals(["EURUSD"])

        assert provider.calls == 0
        assert [s.source for s in report.generated["EURUSD"]] == ["b"]

    @pytest.mark.asyncio
    async def test_disabling_keeps_existing_signals(self):
        engine = _make_engine([_StubProvider("a")])
        await engine.generate_signals(["EURUSD"])
        engine.disable_provider("a")
        assert len(engine.get_signals_for_symbol("EURUSD")) == 1
