"""Rendered listing page adapter.

Opens the category URL in headless Chromium via Playwright, waits for the
product grid and reads the total count element and product links. Heavy
resources (images, fonts, media, stylesheets) are blocked to keep each
visit cheap.
"""

import asyncio
import logging
import re
from typing import Optional
from playwright.async_api import async_playwright, Error as PlaywrightError
from stockpulse.scraper.base_adapter import BaseSourceAdapter, AcquisitionError
from stockpulse.api.schemas import CategoryDescriptor, CategorySnapshot

logger = logging.getLogger(__name__)

BLOCKED_RESOURCES = {"image", "font", "media", "stylesheet"}

_EXTRACT_JS = """
([countSelector, linkSelector]) => {
    const countEl = document.querySelector(countSelector);
    const links = Array.from(document.querySelectorAll(linkSelector)).map((a) => a.href);
    return { countText: countEl ? countEl.innerText : "", links };
}
"""


def parse_count(text: Optional[str]) -> Optional[int]:
    """Pull the first integer out of a count label like '1,234 Items'.

    Returns None when there is no label or it holds no digits.
    """
    if not text:
        return None
    match = re.search(r"\d[\d,]*", text)
    return int(match.group(0).replace(",", "")) if match else None


async def _block_heavy(route):
    if route.request.resource_type in BLOCKED_RESOURCES:
        await route.abort()
    else:
        await route.continue_()


class ListingPageAdapter(BaseSourceAdapter):
    """Concrete adapter for JavaScript-rendered product listing pages."""

    async def acquire(self, descriptor: CategoryDescriptor) -> CategorySnapshot:
        url = self.get_param(descriptor, "url")
        if not url:
            raise AcquisitionError(f"{descriptor.key}: no url configured")

        item_selector = self.get_param(descriptor, "item_selector", ".item")
        link_selector = self.get_param(descriptor, "link_selector", f"{item_selector} a")
        count_selector = self.get_param(descriptor, "count_selector", ".length strong")
        timeout_ms = self.get_timeout(descriptor) * 1000
        settle = float(self.get_param(descriptor, "settle_seconds", 3.0))

        try:
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(
                    headless=True,
                    args=["--no-sandbox", "--disable-setuid-sandbox"],
                )
                try:
                    page = await browser.new_page(viewport={"width": 1280, "height": 800})
                    await page.route("**/*", _block_heavy)

                    logger.info("Opening %s", descriptor.label)
                    await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                    await page.wait_for_selector(item_selector, timeout=20000)
                    await asyncio.sleep(settle)

                    data = await page.evaluate(_EXTRACT_JS, [count_selector, link_selector])
                finally:
                    await browser.close()
        except PlaywrightError as e:
            raise AcquisitionError(f"{descriptor.key}: page load failed: {e}") from e

        total = parse_count(data.get("countText"))
        if total is None:
            raise AcquisitionError(f"{descriptor.key}: no count found at '{count_selector}'")
        links = [link for link in data.get("links", []) if link]
        logger.info("%s: count=%d, %d links", descriptor.key, total, len(links))
        return self.build_snapshot(descriptor, total, links)
