"""API endpoints."""

from signal_app.api.routes import router

__all__ = ["router"]
