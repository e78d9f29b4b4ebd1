"""Pincode deliverability enrichment.

Optional extra for the summary: checks which listed products can be
delivered to a pincode through the store's delivery-details API. Every
failure here is treated as "not deliverable"; it never fails a cycle.
"""

import asyncio
import httpx
import logging
import re
from typing import Awaitable, Callable, List, Optional

from stockpulse.config import EnrichmentConfig

logger = logging.getLogger(__name__)

_PRODUCT_CODE = re.compile(r"(\d{8,})")


def extract_product_code(url: Optional[str]) -> Optional[str]:
    """Return the long numeric product id embedded in a product URL."""
    if not url:
        return None
    match = _PRODUCT_CODE.search(url)
    return match.group(1) if match else None


def is_deliverable(data: Optional[dict]) -> bool:
    if not data:
        return False
    if isinstance(data.get("servicability"), bool):
        return data["servicability"]
    details = data.get("productDetails")
    if isinstance(details, list) and details and isinstance(details[0], dict):
        return details[0].get("servicability") is True
    return False


class DeliverabilityChecker:
    def __init__(
        self,
        config: EnrichmentConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self._transport = transport
        self._sleep = sleep

    async def check(self, links: List[str]) -> List[str]:
        """Return the subset of `links` deliverable to the configured pincode."""
        deliverable = []
        candidates = [(link, extract_product_code(link)) for link in links]
        candidates = [(link, code) for link, code in candidates if code][: self.config.max_checks]

        async with httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self._transport) as client:
            for i, (link, code) in enumerate(candidates):
                if i:
                    await self._sleep(self.config.delay_seconds)
                if is_deliverable(await self._lookup(client, code)):
                    deliverable.append(link)

        logger.info(
            "Deliverability: %d/%d products deliverable to %s",
            len(deliverable), len(candidates), self.config.pincode,
        )
        return deliverable

    async def _lookup(self, client: httpx.AsyncClient, product_code: str) -> Optional[dict]:
        try:
            response = await client.get(
                self.config.endpoint,
                params={
                    "productCode": product_code,
                    "postalCode": self.config.pincode,
                    "quantity": 1,
                    "IsExchange": "false",
                },
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Pincode lookup failed for %s: %s", product_code, e)
            return None
        return data if isinstance(data, dict) else None
