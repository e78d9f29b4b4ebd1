"""JSON API source adapter.

Fetches a listing endpoint with httpx and extracts the category count and
item identifiers using dotted paths from the descriptor params:

    url          endpoint to GET
    query        optional query params
    headers      optional request headers
    count_field  dotted path to the total count (defaults to len(items))
    items_field  dotted path to the item list
    id_field     field of each item holding its identifier (items may
                 also be plain strings)
"""

import httpx
import logging
from typing import Any, List, Optional
from stockpulse.scraper.base_adapter import BaseSourceAdapter, AcquisitionError
from stockpulse.api.schemas import CategoryDescriptor, CategorySnapshot

logger = logging.getLogger(__name__)


def extract_path(data: Any, path: str, default: Any = None) -> Any:
    """Walk a dotted path through dicts and list indexes."""
    node = data
    for part in path.split("."):
        if isinstance(node, dict):
            node = node.get(part, default)
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return default
    return node


class JsonApiAdapter(BaseSourceAdapter):
    """Concrete adapter for categories exposed by a JSON endpoint."""

    def __init__(self, config: Optional[dict] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        self._transport = transport

    async def acquire(self, descriptor: CategoryDescriptor) -> CategorySnapshot:
        url = self.get_param(descriptor, "url")
        if not url:
            raise AcquisitionError(f"{descriptor.key}: no url configured")

        try:
            async with httpx.AsyncClient(timeout=self.get_timeout(descriptor), transport=self._transport) as client:
                logger.info("Fetching %s from %s", descriptor.key, url)
                response = await client.get(
                    url,
                    params=self.get_param(descriptor, "query"),
                    headers=self.get_param(descriptor, "headers", {}),
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AcquisitionError(f"{descriptor.key}: request failed: {e}") from e

        items = self._parse_items(descriptor, data)

        count_field = self.get_param(descriptor, "count_field")
        if count_field:
            raw = extract_path(data, count_field)
            try:
                total = int(raw)
            except (TypeError, ValueError):
                raise AcquisitionError(f"{descriptor.key}: no count at '{count_field}'")
        else:
            total = len(items)

        logger.info("%s: count=%d, %d item ids", descriptor.key, total, len(items))
        return self.build_snapshot(descriptor, total, items)

    def _parse_items(self, descriptor: CategoryDescriptor, data: Any) -> List[str]:
        items_field = self.get_param(descriptor, "items_field")
        raw_items = extract_path(data, items_field) if items_field else data
        if not isinstance(raw_items, list):
            raise AcquisitionError(f"{descriptor.key}: no item list at '{items_field}'")

        id_field = self.get_param(descriptor, "id_field", "id")
        items = []
        for item in raw_items:
            if isinstance(item, dict):
                value = extract_path(item, id_field)
                if value in (None, ""):
                    continue
                items.append(str(value))
            elif isinstance(item, (str, int)):
                items.append(str(item))
        return items
