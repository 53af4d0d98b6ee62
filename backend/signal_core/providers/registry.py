"""Provider registry for discovering and instantiating signal providers.

Usage:
    @register_provider("my-provider")
    class MyProvider(BaseSignalProvider):
        ...

    provider = create_provider("my-provider", fallback=policy)
    ids = list_providers()
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Global registry: provider_id -> provider class
_REGISTRY: dict[str, type] = {}


def register_provider(provider_id: str):
    """Decorator to register a provider class under a given id.

    Raises:
        ValueError: If a provider with the same id is already registered.
    """

    def decorator(cls):
        if provider_id in _REGISTRY:
            raise ValueError(
                f"Provider '{provider_id}' is already registered by {_REGISTRY[provider_id].__name__}"
            )
        _REGISTRY[provider_id] = cls
        logger.debug("Registered provider: %s -> %s", provider_id, cls.__name__)
        return cls

    return decorator


def get_provider_class(provider_id: str) -> type:
    """Get the provider class by id (without instantiating).

    Raises:
        KeyError: If no provider is registered under the given id.
    """
    cls = _REGISTRY.get(provider_id)
    if cls is None:
        available = ", ".join(sorted(_REGISTRY.keys())) or "(none)"
        raise KeyError(
            f"Unknown provider '{provider_id}'. Available: {available}"
        )
    return cls


def create_provider(provider_id: str, **kwargs: Any):
    """Create a provider instance by id.

    Args:
        provider_id: Registered provider id.
        **kwargs: Arguments passed to the provider constructor.

    Raises:
        KeyError: If no provider is registered under the given id.
    """
    return get_provider_class(provider_id)(**kwargs)


def list_providers() -> list[str]:
    """Return a sorted list of registered provider ids."""
    return sorted(_REGISTRY.keys())
