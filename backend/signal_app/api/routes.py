"""REST API routes.

Thin layer over the SignalEngine and SessionWindowGate held on
``app.state``; all behavior lives in signal_core.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from signal_core.models import NewsEvent, ProviderInfo, Signal, Tradeability, TradingSession
from signal_core.session_gate import SessionWindowGate
from signal_core.signal_engine import SignalEngine

logger = logging.getLogger(__name__)

router = APIRouter()


# Response / request models
class SymbolSignalsResponse(BaseModel):
    """Signals for one symbol plus their consensus."""

    signals: list[Signal]
    consensus: Optional[Signal] = None


class ProviderToggleRequest(BaseModel):
    enabled: bool


class ProviderToggleResponse(BaseModel):
    success: bool
    provider_id: str
    known: bool


class BlackoutStatus(BaseModel):
    active: bool


# Dependencies
def get_engine(request: Request) -> SignalEngine:
    return request.app.state.engine


def get_gate(request: Request) -> SessionWindowGate:
    return request.app.state.gate


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------

@router.get("/signals", response_model=list[Signal])
async def get_signals(engine: SignalEngine = Depends(get_engine)):
    """Get all active signals."""
    return engine.get_all_active_signals()


@router.get("/signals/providers", response_model=list[ProviderInfo])
async def get_providers(engine: SignalEngine = Depends(get_engine)):
    """List signal providers and whether they are enabled."""
    return engine.get_providers()


@router.post("/signals/providers/{provider_id}/toggle", response_model=ProviderToggleResponse)
async def toggle_provider(
    provider_id: str,
    body: ProviderToggleRequest,
    engine: SignalEngine = Depends(get_engine),
):
    """Enable or disable a provider. Unknown ids are accepted as no-ops."""
    if body.enabled:
        known = engine.enable_provider(provider_id)
    else:
        known = engine.disable_provider(provider_id)
    return ProviderToggleResponse(success=True, provider_id=provider_id, known=known)


@router.get("/signals/history", response_model=list[Signal])
async def get_signal_history(
    limit: int = Query(100, ge=1, le=1000, description="Maximum signals to return"),
    engine: SignalEngine = Depends(get_engine),
):
    """Get recently generated signals, oldest first."""
    return engine.get_signal_history(limit)


@router.get("/signals/{symbol}", response_model=SymbolSignalsResponse)
async def get_symbol_signals(symbol: str, engine: SignalEngine = Depends(get_engine)):
    """Get active signals for a symbol and their consensus."""
    symbol = symbol.upper()
    return SymbolSignalsResponse(
        signals=engine.get_signals_for_symbol(symbol),
        consensus=engine.get_consensus_signal(symbol),
    )


# ---------------------------------------------------------------------------
# Sessions and news
# ---------------------------------------------------------------------------

@router.get("/sessions", response_model=list[TradingSession])
async def get_sessions(gate: SessionWindowGate = Depends(get_gate)):
    return gate.get_sessions()


@router.patch("/sessions/{name}", response_model=TradingSession)
async def update_session(
    name: str,
    updates: dict[str, Any],
    gate: SessionWindowGate = Depends(get_gate),
):
    """Partially update a trading session."""
    try:
        session = gate.update_session(name, updates)
    except ValueError as e:  # includes pydantic.ValidationError
        raise HTTPException(status_code=422, detail=str(e)) from e
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session '{name}'")
    return session


@router.get("/news-events", response_model=list[NewsEvent])
async def get_upcoming_news_events(
    hours: float = Query(24, gt=0, le=24 * 14, description="Look-ahead window in hours"),
    gate: SessionWindowGate = Depends(get_gate),
):
    return gate.get_upcoming_news_events(hours)


@router.post("/news-events", response_model=NewsEvent, status_code=201)
async def add_news_event(event: NewsEvent, gate: SessionWindowGate = Depends(get_gate)):
    gate.add_news_event(event)
    return event


@router.get("/blackout", response_model=BlackoutStatus)
async def get_blackout(gate: SessionWindowGate = Depends(get_gate)):
    return BlackoutStatus(active=gate.is_news_blackout_active())


@router.get("/tradeable/{symbol}", response_model=Tradeability)
async def is_tradeable(symbol: str, gate: SessionWindowGate = Depends(get_gate)):
    return gate.is_symbol_tradeable(symbol.upper())
