"""Chunked, paced delivery of outbound messages.

Messages longer than the transport limit are cut into fixed-size chunks
(boundaries may fall mid-word) and sent strictly in order, pausing between
sends to stay under the transport rate limit. The first failed chunk aborts
the rest of the message and the TransportError reaches the caller.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Protocol

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def send_text(self, recipient: str, text: str) -> None: ...


def split_message(text: str, limit: int) -> List[str]:
    if limit <= 0:
        raise ValueError(f"chunk limit must be positive, got {limit}")
    return [text[i:i + limit] for i in range(0, len(text), limit)]


class NotificationDispatcher:
    def __init__(
        self,
        transport: Transport,
        recipient: str,
        chunk_limit: int = 3800,
        pacing_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.transport = transport
        self.recipient = recipient
        self.chunk_limit = chunk_limit
        self.pacing_delay = pacing_delay
        self._sleep = sleep

    async def send(self, message: str) -> int:
        """Send `message`, returning the number of chunks delivered."""
        chunks = split_message(message, self.chunk_limit)
        for i, chunk in enumerate(chunks):
            if i:
                await self._sleep(self.pacing_delay)
            try:
                await self.transport.send_text(self.recipient, chunk)
            except Exception:
                logger.error("Chunk %d/%d failed, dropping the rest of the message", i + 1, len(chunks))
                raise
        if len(chunks) > 1:
            logger.info("Sent message in %d chunks", len(chunks))
        return len(chunks)
