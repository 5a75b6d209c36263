from __future__ import annotations

import asyncio
import logging
from typing import Literal

import httpx

from core.config import settings

logger = logging.getLogger(__name__)

RebuildStatus = Literal["triggered", "skipped", "not configured", "failed"]

# Strong references to in-flight notifications; the event loop only keeps weak ones.
_pending: set[asyncio.Task] = set()


class RebuildHook:
    """Fire-and-forget POST to an external static-site rebuild webhook."""

    def __init__(
        self,
        url: str | None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def trigger(self) -> RebuildStatus:
        """Dispatch the webhook without waiting for it to complete."""
        if not self.url:
            logger.warning("Rebuild hook URL not set, skipping rebuild trigger")
            return "not configured"
        try:
            task = asyncio.get_running_loop().create_task(self._post(self.url))
        except Exception as e:
            logger.error("Failed to trigger rebuild hook: %s", e)
            return "failed"
        _pending.add(task)
        task.add_done_callback(_pending.discard)
        logger.info("Rebuild hook triggered")
        return "triggered"

    async def _post(self, url: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url)
            if response.is_error:
                logger.error("Rebuild hook responded with status %s", response.status_code)
        except Exception as e:
            logger.error("Rebuild hook request failed: %s", e)


def get_rebuild_hook() -> RebuildHook:
    cfg = settings.publish
    assert cfg is not None
    return RebuildHook(cfg.rebuild_hook_url)


async def drain_pending() -> None:
    """Wait for in-flight notifications; used on shutdown."""
    if _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)
