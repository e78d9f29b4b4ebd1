"""Notification transports.

TelegramTransport posts plain text through the Bot API sendMessage call.
LogTransport only logs, and is used for dry runs when no bot token is
configured.
"""

import httpx
import logging
from typing import Optional

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


class TransportError(Exception):
    """Raised when a message could not be delivered."""


class TelegramTransport:
    def __init__(
        self,
        bot_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token
        self.timeout = timeout
        self._transport = transport

    async def send_text(self, recipient: str, text: str) -> None:
        url = f"{TELEGRAM_API}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": recipient,
            "text": text,
            "disable_web_page_preview": True,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"Telegram send failed: {e}") from e

        if not body.get("ok", False):
            raise TransportError(f"Telegram rejected message: {body.get('description', 'unknown error')}")
        logger.info("Telegram sent (%d chars)", len(text))


class LogTransport:
    """Writes messages to the log instead of sending them."""

    async def send_text(self, recipient: str, text: str) -> None:
        logger.info("[dry-run] message for %s:\n%s", recipient or "-", text)
