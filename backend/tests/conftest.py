import os
import random
import sys
from pathlib import Path

import httpx
import pytest
import sentry_sdk
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Disable outbound Sentry calls during tests
sentry_sdk.init = lambda *args, **kwargs: None  # type: ignore[assignment]
os.environ["SENTRY_DSN"] = ""
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("USAGE_WEBHOOK_URL", None)

from backend.reviewgen.api.deps import get_catalog, get_review_generator  # noqa: E402
from backend.reviewgen.catalog import SpreadsheetCatalog  # noqa: E402
from backend.reviewgen.generator import ReviewGenerator  # noqa: E402
from backend.reviewgen.main import app  # noqa: E402
from backend.reviewgen.providers import Completion, CompletionRequest  # noqa: E402
from backend.reviewgen.settings import settings  # noqa: E402

STORES_URL = "https://sheets.test/stores.csv"
TAGS_URL = "https://sheets.test/tags.csv"

STORES_CSV = """店舗ID,店名,業態,説明,GoogleマップURL
store-001,麺屋テスト,ラーメン,駅前のラーメン店,https://maps.example/1
store-002,喫茶テスト,カフェ,,https://maps.example/2
,名前だけの行,カフェ,,
"""

TAGS_CSV = """Category,TagName,Context,TagName_en
ラーメン,スープ,豚骨ベースで濃厚,Broth
ラーメン,接客,,Service
カフェ,コーヒー,自家焙煎,Coffee
"""


class FakeProvider:
    """Completion provider double recording every request."""

    def __init__(self, text="スープが濃くておいしかった。", total_tokens=42, exc=None, configured=True):
        self.text = text
        self.total_tokens = total_tokens
        self.exc = exc
        self.configured = configured
        self.calls: list[CompletionRequest] = []

    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, request: CompletionRequest) -> Completion:
        self.calls.append(request)
        if self.exc is not None:
            raise self.exc
        return Completion(text=self.text, total_tokens=self.total_tokens)


class RecordingSink:
    def __init__(self, exc=None):
        self.exc = exc
        self.records = []

    async def record(self, record) -> None:
        if self.exc is not None:
            raise self.exc
        self.records.append(record)


def sheet_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/stores.csv"):
        return httpx.Response(200, text=STORES_CSV)
    if request.url.path.endswith("/tags.csv"):
        return httpx.Response(200, text=TAGS_CSV)
    return httpx.Response(404)


def make_catalog(handler=sheet_handler, **kwargs) -> SpreadsheetCatalog:
    return SpreadsheetCatalog(
        STORES_URL, TAGS_URL, transport=httpx.MockTransport(handler), **kwargs
    )


@pytest.fixture(autouse=True)
def reset_settings():
    settings.OPENAI_API_KEY = None
    settings.USAGE_WEBHOOK_URL = None
    settings.SENTRY_DSN = None
    os.environ.pop("OPENAI_API_KEY", None)
    get_review_generator.cache_clear()
    yield
    app.dependency_overrides.clear()
    get_review_generator.cache_clear()


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def make_sink():
    return RecordingSink


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def store_catalog() -> SpreadsheetCatalog:
    return make_catalog()


@pytest.fixture
def generator(provider, sink) -> ReviewGenerator:
    return ReviewGenerator(provider=provider, sink=sink, rng=random.Random(7))


@pytest.fixture
def client(generator, store_catalog) -> TestClient:
    app.dependency_overrides[get_review_generator] = lambda: generator
    app.dependency_overrides[get_catalog] = lambda: store_catalog
    return TestClient(app, base_url="http://api.testserver")
