"""HTTP contract tests for the review and store endpoints."""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest
from backend.reviewgen.api.deps import get_catalog
from backend.reviewgen.catalog import SpreadsheetCatalog
from backend.reviewgen.errors import ConfigurationError, UpstreamTimeout
from backend.reviewgen.main import app
from backend.reviewgen.settings import settings

GOOD_ONLY = {
    "storeId": "store-001",
    "goodTags": ["スープ"],
    "neutralIsNone": True,
    "badIsNone": True,
}

STORES_SHEET = "id,name,category\nstore-001,麺屋テスト,ラーメン\n"


def _catalog(handler) -> SpreadsheetCatalog:
    return SpreadsheetCatalog(
        "https://sheets.test/stores.csv",
        "https://sheets.test/tags.csv",
        transport=httpx.MockTransport(handler),
    )


class TestGenerate:
    def test_good_tag_only(self, client, provider, sink):
        response = client.post("/v1/reviews/generate", json={**GOOD_ONLY, "language": "en"})
        assert response.status_code == 200
        body = response.json()
        assert body["review"] == "スープが濃くておいしかった。"
        assert body["meta"]["tone"] in {"short", "casual", "detailed"}
        assert body["meta"]["language"] == "en"
        assert body["meta"]["tokenCount"] == 42
        assert Decimal(str(body["meta"]["cost"])) == Decimal("0.000025")

        [request] = provider.calls
        assert "Broth (豚骨ベースで濃厚)" in request.user_content
        assert "ラーメン" in request.system_instructions
        [record] = sink.records
        assert record.subject == "麺屋テスト"
        assert record.language == "en"

    def test_all_none_is_400_without_provider_call(self, client, provider, sink):
        payload = {
            "storeId": "store-001",
            "goodIsNone": True,
            "neutralIsNone": True,
            "badIsNone": True,
        }
        response = client.post("/v1/reviews/generate", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": "Select at least one tag"}
        assert provider.calls == []
        assert sink.records == []

    def test_provider_failure_is_502_without_usage(self, client, provider, sink):
        provider.exc = RuntimeError("connection reset")
        response = client.post("/v1/reviews/generate", json=GOOD_ONLY)
        assert response.status_code == 502
        assert response.json() == {"error": "Review generation failed"}
        assert "connection reset" not in response.text
        assert sink.records == []

    def test_provider_timeout_is_504(self, client, provider):
        provider.exc = UpstreamTimeout("read timeout")
        response = client.post("/v1/reviews/generate", json=GOOD_ONLY)
        assert response.status_code == 504
        assert response.json() == {"error": "Review generation timed out"}

    def test_missing_credentials_is_500(self, client, provider):
        provider.configured = False
        response = client.post("/v1/reviews/generate", json=GOOD_ONLY)
        assert response.status_code == 500
        assert response.json() == {"error": "Review generation is not configured"}
        assert provider.calls == []

    def test_provider_configuration_error_keeps_its_status(self, client, provider, sink):
        provider.exc = ConfigurationError("key revoked")
        response = client.post("/v1/reviews/generate", json=GOOD_ONLY)
        assert response.status_code == 500
        assert response.json() == {"error": "Review generation is not configured"}
        assert sink.records == []

    def test_sink_failure_still_returns_review(self, client, sink):
        sink.exc = RuntimeError("sheet unavailable")
        response = client.post("/v1/reviews/generate", json=GOOD_ONLY)
        assert response.status_code == 200
        assert response.json()["review"]

    def test_unsupported_language_reports_base(self, client):
        response = client.post("/v1/reviews/generate", json={**GOOD_ONLY, "language": "fr"})
        assert response.status_code == 200
        assert response.json()["meta"]["language"] == "ja"

    def test_store_outside_catalog_uses_request_fields(self, client, provider, sink):
        payload = {
            "storeName": "Corner Cafe",
            "storeCategory": "cafe",
            "normalTags": ["price"],
            "language": "en",
        }
        response = client.post("/v1/reviews/generate", json=payload)
        assert response.status_code == 200
        assert "cafe" in provider.calls[0].system_instructions
        assert "- Neutral: price" in provider.calls[0].user_content
        assert sink.records[0].subject == "Corner Cafe"

    def test_store_required(self, client, provider):
        response = client.post("/v1/reviews/generate", json={"goodTags": ["スープ"]})
        assert response.status_code == 400
        assert response.json() == {"error": "Store is required"}
        assert provider.calls == []

    def test_persona_form_labels(self, client, provider):
        payload = {**GOOD_ONLY, "userGender": "女性", "userAge": "30代", "visitFrequency": "常連"}
        response = client.post("/v1/reviews/generate", json=payload)
        assert response.status_code == 200
        assert "女性" in provider.calls[0].system_instructions

    def test_invalid_persona_is_422(self, client, provider):
        response = client.post("/v1/reviews/generate", json={**GOOD_ONLY, "gender": "robot"})
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "Invalid request"
        assert "gender" in body["fields"]
        assert provider.calls == []

    def test_legacy_path(self, client):
        response = client.post("/api/generate", json=GOOD_ONLY)
        assert response.status_code == 200
        assert "tokenCount" in response.json()["meta"]


class TestStores:
    def test_get_store(self, client):
        response = client.get("/v1/stores/store-001")
        assert response.status_code == 200
        store = response.json()["store"]
        assert store["name"] == "麺屋テスト"
        assert store["googleMapsUrl"] == "https://maps.example/1"
        assert [tag["tagName"] for tag in store["selectableTags"]] == ["スープ", "接客"]

    def test_get_store_tags(self, client):
        response = client.get("/v1/stores/store-002/tags")
        assert response.status_code == 200
        [tag] = response.json()
        assert tag["tagName"] == "コーヒー"
        assert tag["localizedNames"] == {"en": "Coffee"}

    def test_store_served_when_tags_sheet_fails(self, client):
        def handler(request):
            if request.url.path.endswith("/tags.csv"):
                return httpx.Response(500)
            return httpx.Response(200, text=STORES_SHEET)

        app.dependency_overrides[get_catalog] = lambda: _catalog(handler)
        response = client.get("/v1/stores/store-001")
        assert response.status_code == 200
        assert response.json()["store"]["selectableTags"] == []

    def test_malformed_stores_sheet_is_404_not_500(self, client):
        def handler(request):
            return httpx.Response(200, text="id,name\ns1,A\ns2,B,C,D,E\n")

        app.dependency_overrides[get_catalog] = lambda: _catalog(handler)
        response = client.get("/v1/stores/s1")
        assert response.status_code == 404
        assert response.json() == {"error": "Store not found"}

    @pytest.mark.parametrize("path", ["/v1/stores/missing", "/v1/stores/missing/tags"])
    def test_unknown_store_is_404(self, client, path):
        response = client.get(path)
        assert response.status_code == 404
        assert response.json() == {"error": "Store not found"}


def test_languages(client):
    body = client.get("/v1/languages").json()
    assert body["base"] == "ja"
    assert list(body["languages"]) == ["ja", "en", "zh", "ko", "es"]


class TestOperational:
    def test_health_degraded_without_key(self, client):
        response = client.get("/health")
        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"]["completion_provider"]["status"] == "error"
        assert "error" not in body["checks"]["completion_provider"]

    def test_health_ok_with_key_and_catalog(self, client, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["catalog"] == {"status": "ok", "store_count": 2}
        assert body["checks"]["usage_sink"]["status"] == "disabled"

    def test_metrics_exposed(self, client):
        client.post("/v1/reviews/generate", json=GOOD_ONLY)
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "tag_review_info" in response.text
        assert "reviews_generated_total" in response.text
        assert 'endpoint="/v1/reviews/generate"' in response.text

    def test_request_id_echoed(self, client):
        response = client.get("/v1/languages", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_debug_catalog_hidden_outside_debug(self, client):
        assert client.get("/debug/catalog").status_code == 404
