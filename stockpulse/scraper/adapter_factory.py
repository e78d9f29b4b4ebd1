"""Adapter factory: picks the source adapter for a category descriptor.

Maps `descriptor.source` names to concrete adapter classes so a new origin
only needs an adapter class and a config entry. Instances are cached per
kind since adapters hold no per-category state.
"""

import logging
from typing import Dict, Optional
from stockpulse.api.schemas import CategoryDescriptor
from stockpulse.scraper.base_adapter import BaseSourceAdapter
from stockpulse.scraper.json_api_adapter import JsonApiAdapter
from stockpulse.scraper.listing_page_adapter import ListingPageAdapter

logger = logging.getLogger(__name__)

ADAPTER_MAP = {
    "json_api": JsonApiAdapter,
    "listing_page": ListingPageAdapter,
}


def create_adapter(kind: str, config: Optional[dict] = None) -> BaseSourceAdapter:
    """Create and return an adapter instance for the given source kind."""
    adapter_class = ADAPTER_MAP.get(kind)
    if not adapter_class:
        raise ValueError(f"Unknown source adapter: '{kind}'. Available: {list(ADAPTER_MAP.keys())}")

    logger.info("Created %s for source '%s'", adapter_class.__name__, kind)
    return adapter_class(config)


class AdapterRegistry:
    """Resolves descriptors to adapters, creating each kind once."""

    def __init__(self, overrides: Optional[Dict[str, BaseSourceAdapter]] = None):
        self._adapters: Dict[str, BaseSourceAdapter] = dict(overrides or {})

    def for_descriptor(self, descriptor: CategoryDescriptor) -> BaseSourceAdapter:
        if descriptor.source not in self._adapters:
            self._adapters[descriptor.source] = create_adapter(descriptor.source)
        return self._adapters[descriptor.source]
