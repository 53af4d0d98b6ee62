"""Main application entry point."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from signal_app.api import router
from signal_app.config import Settings, get_settings
from signal_app.services import (
    InMemoryMarketDataSource,
    RandomSentimentSource,
    SignalScheduler,
    SimulatedMarketDataSource,
)
from signal_app.session_config import load_session_config
from signal_core.clock import Clock, utc_now
from signal_core.models import Side
from signal_core.providers import (
    SENTIMENT_PROVIDER_ID,
    FallbackPolicy,
    StaticSentimentSource,
    create_provider,
)
from signal_core.session_gate import SessionWindowGate
from signal_core.signal_engine import SignalEngine

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the API and the scheduler share."""

    market_data: InMemoryMarketDataSource
    engine: SignalEngine
    gate: SessionWindowGate
    scheduler: SignalScheduler


def _tick_hook(source: SimulatedMarketDataSource):
    async def tick() -> None:
        source.tick()

    return tick


def create_services(settings: Settings, clock: Clock = utc_now) -> Services:
    """Wire market data, providers, engine, gate and scheduler from settings."""
    if settings.market_data == "simulated":
        market_data = SimulatedMarketDataSource(
            settings.symbols,
            seed=settings.random_seed,
            initial_bars=settings.history_bars,
            clock=clock,
        )
        sentiment_source = RandomSentimentSource(settings.random_seed)
    else:
        market_data = InMemoryMarketDataSource(clock=clock)
        sentiment_source = StaticSentimentSource()

    if settings.demo_fallback_enabled:
        logger.warning("Demo fallback signals are ENABLED - do not use in production")

    providers = []
    for i, provider_id in enumerate(settings.enabled_providers):
        seed = None if settings.random_seed is None else settings.random_seed + i
        kwargs = {
            "fallback": FallbackPolicy.seeded(seed, enabled=settings.demo_fallback_enabled),
        }
        if provider_id == SENTIMENT_PROVIDER_ID:
            kwargs["source"] = sentiment_source
        providers.append(create_provider(provider_id, **kwargs))

    engine = SignalEngine(
        market_data,
        providers,
        clock=clock,
        history_bars=settings.history_bars,
        history_limit=settings.signal_history_limit,
        tie_side=Side(settings.consensus_tie_side),
    )

    session_config = load_session_config(settings.sessions_path)
    gate = SessionWindowGate(
        session_config.sessions,
        session_config.news_events,
        clock=clock,
    )

    before_cycle = None
    if isinstance(market_data, SimulatedMarketDataSource):
        before_cycle = _tick_hook(market_data)

    scheduler = SignalScheduler(
        engine,
        settings.symbols,
        interval=settings.signal_interval_seconds,
        before_cycle=before_cycle,
    )

    return Services(market_data=market_data, engine=engine, gate=gate, scheduler=scheduler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info("Starting signal engine...")
    services = create_services(settings)
    app.state.engine = services.engine
    app.state.gate = services.gate
    app.state.market_data = services.market_data

    services.scheduler.start()
    logger.info(
        "Signal engine started: %d providers, %d symbols, market data=%s",
        len(services.engine.get_providers()),
        len(settings.symbols),
        settings.market_data,
    )

    yield

    # Shutdown
    logger.info("Shutting down...")
    await services.scheduler.stop()
    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="FX Signal Engine",
    description="Multi-provider trading signals with session and news gating",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "FX Signal Engine",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "signal_app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
