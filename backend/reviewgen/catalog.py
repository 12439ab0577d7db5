"""Store and tag catalog backed by spreadsheet CSV exports.

Two sheets are read: the stores sheet (one row per store) and the category
tags sheet (one row per selectable tag). Tags are attached to stores by
category. Both are cached for ``CATALOG_CACHE_TTL_SECONDS``.
"""

from __future__ import annotations

import asyncio
import io
import time
from collections.abc import Callable

import httpx
import pandas as pd

from .languages import SUPPORTED_LANGUAGES
from .logging_config import get_logger
from .metrics import catalog_fetch_total
from .models import StoreRecord, TagCatalog, TagRecord
from .settings import settings

logger = get_logger(__name__)

# Accepted header names per field, English first then the Japanese sheet headers.
STORE_COLUMNS: dict[str, tuple[str, ...]] = {
    "id": ("id", "店舗ID"),
    "name": ("name", "店名・会社名", "店名"),
    "category": ("category", "業態", "カテゴリ"),
    "description": ("description", "説明"),
    "google_maps_url": ("googleMapsUrl", "GoogleマップURL", "口コミURL"),
}

TAG_COLUMNS: dict[str, tuple[str, ...]] = {
    "category": ("Category", "カテゴリ", "業態"),
    "name": ("TagName", "タグ名"),
    "context": ("Context", "コンテキスト", "説明"),
}

FETCH_TIMEOUT_SECONDS = 10.0
# a failed fetch is retried after this long instead of on every request
FAILURE_RETRY_SECONDS = 30.0


class CatalogFetchError(RuntimeError):
    pass


def parse_csv(text: str) -> pd.DataFrame:
    """Parse CSV text into a string-only frame with trimmed headers."""
    if not text or not text.strip():
        return pd.DataFrame()
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except pd.errors.ParserError as exc:
        raise CatalogFetchError(f"Malformed CSV: {exc}") from exc
    frame.columns = [str(column).strip() for column in frame.columns]
    return frame


def _column(frame: pd.DataFrame, candidates: tuple[str, ...]) -> str | None:
    lowered = {column.lower(): column for column in frame.columns}
    for candidate in candidates:
        match = lowered.get(candidate.lower())
        if match is not None:
            return match
    return None


def _cell(row: pd.Series, column: str | None) -> str:
    if column is None:
        return ""
    value = row.get(column, "")
    return str(value).strip() if value is not None else ""


def parse_tags(frame: pd.DataFrame) -> list[TagRecord]:
    if frame.empty:
        return []
    category_col = _column(frame, TAG_COLUMNS["category"])
    name_col = _column(frame, TAG_COLUMNS["name"])
    context_col = _column(frame, TAG_COLUMNS["context"])
    localized_cols = {
        lang: _column(frame, (f"TagName_{lang}", f"TagName-{lang}"))
        for lang in SUPPORTED_LANGUAGES
    }
    records: list[TagRecord] = []
    for _, row in frame.iterrows():
        category = _cell(row, category_col)
        name = _cell(row, name_col)
        if not category or not name:
            continue
        localized = {
            lang: value
            for lang, column in localized_cols.items()
            if column is not None and (value := _cell(row, column))
        }
        records.append(
            TagRecord(
                category=category,
                name=name,
                context=_cell(row, context_col),
                localized_names=localized,
            )
        )
    return records


def parse_stores(frame: pd.DataFrame, tags: TagCatalog) -> list[StoreRecord]:
    if frame.empty:
        return []
    columns = {field: _column(frame, names) for field, names in STORE_COLUMNS.items()}
    stores: list[StoreRecord] = []
    for _, row in frame.iterrows():
        store_id = _cell(row, columns["id"])
        name = _cell(row, columns["name"])
        if not store_id or not name:
            continue
        category = _cell(row, columns["category"])
        stores.append(
            StoreRecord(
                id=store_id,
                name=name,
                category=category,
                description=_cell(row, columns["description"]),
                google_maps_url=_cell(row, columns["google_maps_url"]),
                tags=tags.tags_for(category),
            )
        )
    return stores


class SpreadsheetCatalog:
    """Read-only store catalog refreshed from published CSV exports.

    The stores sheet is required; when it cannot be read the catalog is
    empty until the next attempt. The tags sheet is optional: if it fails,
    stores still load, just without selectable tags.
    """

    def __init__(
        self,
        stores_url: str | None = None,
        tags_url: str | None = None,
        *,
        ttl_seconds: float | None = None,
        retry_seconds: float = FAILURE_RETRY_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stores_url = stores_url if stores_url is not None else settings.stores_csv_url
        self.tags_url = tags_url if tags_url is not None else settings.tags_csv_url
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.CATALOG_CACHE_TTL_SECONDS
        )
        self.retry_seconds = min(retry_seconds, self.ttl_seconds)
        self._transport = transport
        self._clock = clock
        self._lock = asyncio.Lock()
        self._stores: list[StoreRecord] = []
        self._tags = TagCatalog()
        self._fresh_until: float | None = None
        self.last_error: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.stores_url)

    def clear_cache(self) -> None:
        self._fresh_until = None

    def _is_fresh(self) -> bool:
        return self._fresh_until is not None and self._clock() < self._fresh_until

    async def _fetch_text(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            raise CatalogFetchError(f"Fetching {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise CatalogFetchError(f"Fetching {url} returned {response.status_code}")
        return response.text

    async def _fetch_tags(self, client: httpx.AsyncClient) -> tuple[TagCatalog, str | None]:
        if not self.tags_url:
            logger.warning("catalog_tags_sheet_not_configured")
            return TagCatalog(), None
        try:
            text = await self._fetch_text(client, self.tags_url)
            return TagCatalog.from_records(parse_tags(parse_csv(text))), None
        except CatalogFetchError as exc:
            catalog_fetch_total.labels(result="tags_error").inc()
            logger.error("catalog_tags_fetch_failed", detail=str(exc))
            return TagCatalog(), str(exc)

    async def refresh(self) -> None:
        if not self.is_configured:
            logger.warning("catalog_not_configured")
            self._stores, self._tags = [], TagCatalog()
            self._fresh_until = self._clock() + self.ttl_seconds
            return

        async with httpx.AsyncClient(
            timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True, transport=self._transport
        ) as client:
            stores_result, tags_result = await asyncio.gather(
                self._fetch_text(client, self.stores_url),
                self._fetch_tags(client),
                return_exceptions=True,
            )
        for outcome in (stores_result, tags_result):
            if isinstance(outcome, BaseException):
                raise outcome
        stores_text = stores_result
        tags, tags_error = tags_result

        self._stores = parse_stores(parse_csv(stores_text), tags)
        self._tags = tags
        self.last_error = tags_error
        # a missing tags sheet is retried sooner than a healthy catalog expires
        self._fresh_until = self._clock() + (
            self.retry_seconds if tags_error else self.ttl_seconds
        )
        logger.info("catalog_refreshed", stores=len(self._stores), tags=len(tags))

    async def _ensure_loaded(self) -> None:
        if self._is_fresh():
            return
        async with self._lock:
            if self._is_fresh():
                return
            try:
                await self.refresh()
            except CatalogFetchError as exc:
                catalog_fetch_total.labels(result="error").inc()
                self.last_error = str(exc)
                logger.error("catalog_fetch_failed", detail=str(exc))
                self._stores, self._tags = [], TagCatalog()
                self._fresh_until = self._clock() + self.retry_seconds
            else:
                catalog_fetch_total.labels(result="ok").inc()

    async def list_stores(self) -> list[StoreRecord]:
        await self._ensure_loaded()
        return list(self._stores)

    async def get_store(self, store_id: str) -> StoreRecord | None:
        wanted = (store_id or "").strip()
        if not wanted:
            return None
        for store in await self.list_stores():
            if store.id == wanted:
                return store
        return None

    async def tag_catalog(self) -> TagCatalog:
        await self._ensure_loaded()
        return self._tags


catalog = SpreadsheetCatalog()

__all__ = [
    "CatalogFetchError",
    "SpreadsheetCatalog",
    "catalog",
    "parse_csv",
    "parse_stores",
    "parse_tags",
]
