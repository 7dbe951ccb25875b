import asyncio
import logging
from typing import Awaitable, Callable

import settings
from relay import Relay


logger = logging.getLogger(__name__)


class ShutdownCoordinator:
    """Notify every client, give the notice time to flush, then close."""

    def __init__(self, relay: Relay, grace: float = settings.SHUTDOWN_GRACE) -> None:
        self.relay = relay
        self.grace = grace
        self.started = False

    async def drain(self, close: Callable[[], Awaitable[None]]) -> bool:
        if self.started:
            return False
        self.started = True
        notified = self.relay.announce_shutdown()
        logger.info("Shutting down gracefully, notified %d connection(s)", notified)
        await asyncio.sleep(self.grace)
        await close()
        logger.info("Relay server closed")
        return True
