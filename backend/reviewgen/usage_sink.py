from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from zoneinfo import ZoneInfo

import httpx

from .errors import SinkError
from .logging_config import get_logger
from .models import UsageRecord
from .settings import settings

logger = get_logger(__name__)


class UsageSink(Protocol):
    async def record(self, record: UsageRecord) -> None: ...


def usage_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 timestamp in the configured accounting timezone."""
    zone = ZoneInfo(settings.USAGE_TIMEZONE)
    moment = now.astimezone(zone) if now is not None else datetime.now(zone)
    return moment.isoformat(timespec="seconds")


def usage_payload(record: UsageRecord) -> dict[str, Any]:
    return {
        "timestamp": record.timestamp,
        "storeName": record.subject,
        "language": record.language,
        "cost": str(record.cost),
        "tokens": record.token_count,
    }


class WebhookUsageSink:
    """POST usage records as JSON to a webhook (e.g. a sheet-appending script)."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout if timeout is not None else settings.USAGE_SINK_TIMEOUT_SECONDS
        self._transport = transport

    async def record(self, record: UsageRecord) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport, follow_redirects=True
            ) as client:
                response = await client.post(self.url, json=usage_payload(record))
        except httpx.HTTPError as exc:
            raise SinkError(f"Usage webhook request failed: {exc}") from exc
        if response.status_code >= 400:
            raise SinkError(f"Usage webhook returned {response.status_code}")


class NullUsageSink:
    """Used when no webhook is configured; records are only logged."""

    async def record(self, record: UsageRecord) -> None:
        logger.info(
            "usage_record_skipped",
            subject=record.subject,
            language=record.language,
            tokens=record.token_count,
            cost=str(record.cost),
        )


def default_usage_sink() -> UsageSink:
    if settings.USAGE_WEBHOOK_URL:
        return WebhookUsageSink(settings.USAGE_WEBHOOK_URL)
    return NullUsageSink()
