"""Service layer: settings, market data adapters, scheduler and HTTP API."""
