"""Health check module with dependency verification."""

from __future__ import annotations

import time
from typing import Any

from .catalog import SpreadsheetCatalog
from .settings import settings


def _is_configured(value: str | None) -> bool:
    """Return True when a config string is non-empty after trimming."""
    if value is None:
        return False
    return bool(value.strip())


class HealthChecker:
    """Report whether the review pipeline's collaborators are usable."""

    async def check_all(self, store_catalog: SpreadsheetCatalog) -> dict[str, Any]:
        checks = {
            "completion_provider": self._check_provider(),
            "catalog": await self._check_catalog(store_catalog),
            "usage_sink": self._check_usage_sink(),
            "sentry": self._check_sentry(),
        }
        # the provider is the only hard dependency; the rest degrade quietly
        healthy = checks["completion_provider"]["status"] == "ok" and checks["catalog"][
            "status"
        ] in {"ok", "disabled"}
        return {
            "status": "healthy" if healthy else "degraded",
            "timestamp": time.time(),
            "checks": checks,
        }

    def _check_provider(self) -> dict[str, Any]:
        if not _is_configured(settings.OPENAI_API_KEY):
            return {"status": "error", "error": "OPENAI_API_KEY not configured"}
        return {"status": "ok", "model": settings.REVIEW_GPT_MODEL}

    async def _check_catalog(self, store_catalog: SpreadsheetCatalog) -> dict[str, Any]:
        if not store_catalog.is_configured:
            return {"status": "disabled", "reason": "spreadsheet not configured"}
        stores = await store_catalog.list_stores()
        if store_catalog.last_error:
            return {"status": "error", "error": store_catalog.last_error}
        return {"status": "ok", "store_count": len(stores)}

    def _check_usage_sink(self) -> dict[str, Any]:
        if not _is_configured(settings.USAGE_WEBHOOK_URL):
            return {"status": "disabled", "reason": "USAGE_WEBHOOK_URL not configured"}
        return {"status": "ok"}

    def _check_sentry(self) -> dict[str, Any]:
        if not _is_configured(settings.SENTRY_DSN):
            return {"status": "disabled", "reason": "SENTRY_DSN not configured"}
        dsn = settings.SENTRY_DSN or ""
        if "@" in dsn and "//" in dsn:
            return {
                "status": "ok",
                "environment": settings.SENTRY_ENVIRONMENT,
                "release": settings.SENTRY_RELEASE or "unset",
            }
        return {"status": "error", "error": "Invalid SENTRY_DSN format"}


# Global health checker instance
health_checker = HealthChecker()


__all__ = ["health_checker", "HealthChecker"]
