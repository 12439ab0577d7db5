from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .api.deps import get_catalog
from .api.routes import reviews as reviews_routes
from .api.routes import stores as stores_routes
from .catalog import SpreadsheetCatalog
from .errors import ReviewServiceError
from .health import health_checker
from .logging_config import SERVICE_NAME, SERVICE_VERSION, configure_structlog, get_logger
from .metrics import PrometheusMiddleware, get_metrics
from .openai_async import close_async_client
from .settings import settings
from .utils import add_cors, add_request_id_tracing, add_security_headers

# Configure structured logging (must be done before any logging calls)
configure_structlog(json_logs=not settings.DEBUG)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=settings.SENTRY_RELEASE or f"{SERVICE_NAME}@dev",
        integrations=[FastApiIntegration()],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    await close_async_client()


app = FastAPI(
    title="Tag Review API",
    version=SERVICE_VERSION,
    description="Generates store reviews from good / neutral / bad tag selections",
    lifespan=lifespan,
)
add_cors(app)
add_security_headers(app)
add_request_id_tracing(app)
app.add_middleware(PrometheusMiddleware)

API_PREFIX = "/v1"

app.include_router(reviews_routes.router, prefix=API_PREFIX)
app.include_router(stores_routes.router, prefix=API_PREFIX)
# Legacy path the web form posts to
app.add_api_route(
    "/api/generate",
    reviews_routes.generate_review,
    methods=["POST"],
    response_model=reviews_routes.GenerateResponse,
    include_in_schema=False,
)


@app.exception_handler(ReviewServiceError)
async def review_error_handler(request: Request, exc: ReviewServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "review_request_failed",
            path=request.url.path,
            reason=exc.reason,
            detail=str(exc),
        )
    else:
        logger.info("review_request_rejected", path=request.url.path, reason=exc.reason)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in err.get("loc", ())[1:]) for err in exc.errors()})
    logger.info("review_request_invalid", path=request.url.path, fields=fields)
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "fields": [field for field in fields if field]},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
async def health(store_catalog: SpreadsheetCatalog = Depends(get_catalog)):
    """Return service health including collaborator configuration checks."""
    health_status = await health_checker.check_all(store_catalog)
    status_code = 200 if health_status["status"] == "healthy" else 503
    body = {
        "status": health_status["status"],
        "timestamp": health_status["timestamp"],
        "checks": health_status["checks"] if settings.DEBUG else _scrub(health_status["checks"]),
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }
    return JSONResponse(content=body, status_code=status_code)


@app.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    try:
        return get_metrics()
    except Exception:  # pragma: no cover
        logger.exception("metrics_export_failed")
        raise HTTPException(status_code=503, detail="metrics unavailable")


if settings.DEBUG:

    @app.get("/debug/catalog")
    async def debug_catalog(store_catalog: SpreadsheetCatalog = Depends(get_catalog)):
        """Configuration presence and what the spreadsheet currently yields."""
        stores = await store_catalog.list_stores()
        tags = await store_catalog.tag_catalog()
        return {
            "config": {
                "stores_csv_url": "SET" if store_catalog.stores_url else "NOT SET",
                "tags_csv_url": "SET" if store_catalog.tags_url else "NOT SET",
                "openai_api_key": "SET" if settings.OPENAI_API_KEY else "NOT SET",
                "usage_webhook_url": "SET" if settings.USAGE_WEBHOOK_URL else "NOT SET",
            },
            "store_count": len(stores),
            "store_ids": [store.id for store in stores],
            "tag_categories": {name: len(items) for name, items in tags.by_category.items()},
            "last_error": store_catalog.last_error,
        }


def _scrub(payload: Any) -> Any:
    """Drop error detail from health checks outside DEBUG."""
    if isinstance(payload, dict):
        return {key: _scrub(value) for key, value in payload.items() if key != "error"}
    if isinstance(payload, list):
        return [_scrub(item) for item in payload]
    return payload
