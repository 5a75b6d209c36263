from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import Any

import httpx

from core.config import settings

logger = logging.getLogger(__name__)


class TelemetrySink:
    """Posts JSON events to an external collector; never raises."""

    def __init__(
        self,
        server_url: str | None,
        *,
        enabled: bool = True,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.server_url = server_url
        self.enabled = enabled
        self.timeout = timeout
        self._transport = transport

    async def send(self, event_type: str, payload: dict[str, Any]) -> None:
        if not self.enabled:
            return

        event = {
            "eventType": event_type,
            "timestamp": datetime.now(UTC).isoformat(),
            **payload,
        }
        if not self.server_url:
            logger.debug("Telemetry URL not configured, event not sent: %s", event)
            return

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.server_url, json=event)
            if response.is_error:
                logger.error(
                    "Telemetry server responded with status %s: %s",
                    response.status_code,
                    response.text[:500],
                )
        except Exception as e:
            logger.error("Error sending telemetry event %s: %s", event_type, e)


def get_telemetry_sink() -> TelemetrySink:
    cfg = settings.telemetry
    assert cfg is not None
    return TelemetrySink(cfg.server_url, enabled=cfg.enabled, timeout=cfg.timeout)


async def send_telemetry_event(event_type: str, payload: dict[str, Any]) -> None:
    await get_telemetry_sink().send(event_type, payload)
