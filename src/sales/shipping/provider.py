"""Shipping configuration provider.

Wraps a loader function with an injected cache so callers that only need an
estimate (cart totals) can reuse a configuration, while order placement
always reads the authoritative one. The owner of the provider decides its
lifetime: the API keeps one on the application state and invalidates it
whenever an admin saves new settings.
"""

from collections.abc import Callable, MutableMapping

import structlog

from sales.pricing.shipping import ShippingConfig

logger = structlog.get_logger(__name__)

_CACHE_KEY = "shipping_config"


class ShippingConfigProvider:
    def __init__(
        self,
        loader: Callable[[], ShippingConfig],
        cache: MutableMapping | None = None,
    ):
        self._loader = loader
        self._cache = cache if cache is not None else {}

    def get(self) -> ShippingConfig:
        """Cached configuration, loading it on first use."""
        config = self._cache.get(_CACHE_KEY)
        if config is None:
            config = self.refresh()
        return config

    def refresh(self) -> ShippingConfig:
        """Reload from the loader and replace the cached configuration."""
        config = self._loader()
        self._cache[_CACHE_KEY] = config
        logger.debug("shipping_config_loaded", rate_count=len(config.rates))
        return config

    def invalidate(self) -> None:
        """Drop the cached configuration; the next ``get`` reloads it."""
        self._cache.pop(_CACHE_KEY, None)
