"""Integration tests for the HTTP API."""

import asyncio
import json
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from recallbin.api import create_app
from recallbin.core.auth import StaticTokenVerifier
from recallbin.core.enrichment import (
    AIProviderError,
    EnrichmentError,
    EnrichmentResult,
    EnrichmentService,
)
from recallbin.models.config import AppConfig
from recallbin.models.item import AIOutput
from recallbin.services import build_services

ALICE = {"Authorization": "Bearer token-alice"}
BOB = {"Authorization": "Bearer token-bob"}


def _enrichment_mock():
    enrichment = MagicMock()
    enrichment.summarize = AsyncMock(
        return_value=EnrichmentResult(
            AIOutput(
                title="React Guide",
                content_type="documentation",
                category="programming",
                summary="Official introduction to React.",
                tags=["react", "javascript"],
                confidence_level="high",
            ),
            False,
            [],
        )
    )
    enrichment.rank_items = AsyncMock(side_effect=EnrichmentError("no providers"))
    enrichment.get_provider_status.return_value = [
        {"provider_id": "gemini", "enabled": True, "model": "m", "has_endpoint": True, "key_count": 0}
    ]
    return enrichment


def _make_client(data_dir: Path, enrichment=None, **config_overrides) -> TestClient:
    config = AppConfig(daily_quota_limit=3, **config_overrides)
    verifier = StaticTokenVerifier({"token-alice": "alice", "token-bob": "bob"})
    services = asyncio.run(
        build_services(
            config, data_dir, verifier=verifier, enrichment=enrichment or _enrichment_mock()
        )
    )
    return TestClient(create_app(services=services))


@pytest.fixture
def client():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield _make_client(Path(temp_dir) / "data")


def _save(client, headers=ALICE, **body):
    body.setdefault("url", "https://react.dev/learn")
    return client.post("/api/save", json=body, headers=headers)


class TestAuth:
    def test_health_needs_no_token(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store_accessible"] is True
        assert data["providers"][0]["provider_id"] == "gemini"

    def test_missing_token(self, client):
        response = client.get("/api/quota")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_wrong_token(self, client):
        response = client.get("/api/quota", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/api/health"

    def test_unknown_route_has_error_tag(self, client):
        response = client.get("/api/nowhere", headers=ALICE)

        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "message": "Not Found"}

    def test_wrong_method_has_error_tag(self, client):
        response = client.patch("/api/quota", headers=ALICE)

        assert response.status_code == 405
        assert response.json()["error"] == "method_not_allowed"
        assert "GET" in response.headers["allow"]


class TestSave:
    def test_save_created(self, client):
        response = _save(client, title="Quick Start", platform="chrome-extension")

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == data["data"]["id"]
        assert data["data"]["ai_output"]["title"] == "React Guide"
        assert data["data"]["raw_input"]["title"] == "Quick Start"
        assert data["data"]["last_viewed_at"] is None
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "2"
        assert "X-RateLimit-Reset" in response.headers

    def test_save_requires_url_or_content(self, client):
        response = client.post("/api/save", json={"title": "nothing"}, headers=ALICE)

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"

    def test_malformed_body_is_invalid_input(self, client):
        response = client.post(
            "/api/save",
            content="{not json",
            headers={**ALICE, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"

    def test_duplicate(self, client):
        first = _save(client).json()

        response = _save(client)

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "duplicate"
        assert body["existing_item"]["id"] == first["id"]

    def test_quota_exceeded_then_quota_endpoint(self, client):
        for n in range(3):
            assert _save(client, url=f"https://example.com/{n}").status_code == 201

        response = _save(client, url="https://example.com/extra")
        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "quota_exceeded"
        assert body["quota"]["remaining"] == 0

        quota = client.get("/api/quota", headers=ALICE).json()
        assert quota["used"] == 3
        assert quota["limit"] == 3
        assert quota["remaining"] == 0
        assert quota["reset_date"]

    def test_users_do_not_see_each_other(self, client):
        _save(client)

        assert client.get("/api/search", headers=BOB).json()["total"] == 0
        assert _save(client, headers=BOB).status_code == 201


class TestItems:
    def test_search_filters(self, client):
        _save(client)
        response = client.get(
            "/api/search", params={"q": "REACT", "category": "programming"}, headers=ALICE
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["filters"]["text_query"] == "REACT"

    def test_search_invalid_date(self, client):
        response = client.get("/api/search", params={"dateFrom": "soon"}, headers=ALICE)
        assert response.status_code == 400

    def test_get_update_delete(self, client):
        item_id = _save(client).json()["id"]

        assert client.get(f"/api/items/{item_id}", headers=ALICE).status_code == 200
        assert client.get(f"/api/items/{item_id}", headers=BOB).status_code == 404

        updated = client.put(
            f"/api/update/{item_id}", json={"tags": ["new"], "title": "Renamed"}, headers=ALICE
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["ai_output"]["tags"] == ["new"]

        assert client.delete(f"/api/delete/{item_id}", headers=ALICE).status_code == 200
        assert client.delete(f"/api/delete/{item_id}", headers=ALICE).status_code == 404


class TestCollections:
    def test_collection_lifecycle(self, client):
        created = client.post("/api/collections", json={"name": "Reading"}, headers=ALICE)
        assert created.status_code == 201
        collection = created.json()
        assert collection["color"] == "#8B5CF6"
        assert collection["item_count"] == 0

        item_id = _save(client, collectionId=collection["id"]).json()["id"]
        listed = client.get("/api/collections", headers=ALICE).json()
        assert listed[0]["item_count"] == 1

        filtered = client.get(
            "/api/search", params={"collectionId": collection["id"]}, headers=ALICE
        ).json()
        assert [i["id"] for i in filtered["items"]] == [item_id]

        removed = client.delete(
            f"/api/collections/{collection['id']}/items/{item_id}", headers=ALICE
        )
        assert removed.status_code == 200
        assert client.get("/api/collections", headers=ALICE).json()[0]["item_count"] == 0

        added = client.post(
            f"/api/collections/{collection['id']}/items", json={"itemId": item_id}, headers=ALICE
        )
        assert added.status_code == 200

        renamed = client.put(
            f"/api/collections/{collection['id']}", json={"name": "Later"}, headers=ALICE
        )
        assert renamed.json()["name"] == "Later"
        assert renamed.json()["item_count"] == 1

        assert client.delete(f"/api/collections/{collection['id']}", headers=ALICE).status_code == 200
        assert client.get(f"/api/items/{item_id}", headers=ALICE).json()["collection_id"] == collection["id"]

    def test_missing_name(self, client):
        response = client.post("/api/collections", json={}, headers=ALICE)
        assert response.status_code == 400

    def test_overlong_name_leaves_listing_intact(self, client):
        created = client.post("/api/collections", json={"name": "x" * 201}, headers=ALICE)
        assert created.status_code == 400
        assert created.json()["error"] == "invalid_input"

        collection = client.post("/api/collections", json={"name": "Reading"}, headers=ALICE).json()
        renamed = client.put(
            f"/api/collections/{collection['id']}", json={"name": "y" * 201}, headers=ALICE
        )
        assert renamed.status_code == 400

        listed = client.get("/api/collections", headers=ALICE)
        assert listed.status_code == 200
        assert [c["name"] for c in listed.json()] == ["Reading"]

    def test_add_requires_item_id(self, client):
        collection = client.post("/api/collections", json={"name": "R"}, headers=ALICE).json()
        response = client.post(f"/api/collections/{collection['id']}/items", json={}, headers=ALICE)
        assert response.status_code == 400

    def test_update_missing_collection(self, client):
        response = client.put("/api/collections/ghost", json={"name": "x"}, headers=ALICE)
        assert response.status_code == 404


class TestExportRemindersChat:
    def test_export_formats(self, client):
        _save(client)

        json_response = client.get("/api/export/json", headers=ALICE)
        assert json_response.status_code == 200
        assert json.loads(json_response.text)["total_items"] == 1
        disposition = json_response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="recallbin-export-')
        assert disposition.endswith('.json"')

        csv_response = client.get("/api/export/csv", headers=ALICE)
        assert csv_response.headers["content-type"].startswith("text/csv")
        assert csv_response.text.startswith('"ID","URL"')

        md_response = client.get("/api/export/markdown", headers=ALICE)
        assert "## React Guide" in md_response.text

        pdf_response = client.get("/api/export/pdf", headers=ALICE)
        assert pdf_response.headers["content-type"] == "application/pdf"
        assert pdf_response.content.startswith(b"%PDF")

    def test_export_empty_library(self, client):
        for fmt in ("json", "csv", "markdown", "pdf"):
            response = client.get(f"/api/export/{fmt}", headers=ALICE)
            assert response.status_code == 200, fmt
            assert "attachment" in response.headers["content-disposition"]

        assert client.get("/api/export/json", headers=ALICE).json()["items"] == []
        csv_lines = client.get("/api/export/csv", headers=ALICE).text.strip().splitlines()
        assert len(csv_lines) == 1
        assert csv_lines[0].startswith('"ID","URL"')
        assert "Total items: 0" in client.get("/api/export/markdown", headers=ALICE).text
        assert client.get("/api/export/pdf", headers=ALICE).content.startswith(b"%PDF")

    def test_reminders(self, client):
        item_id = _save(client).json()["id"]

        due = client.get("/api/reminders", headers=ALICE).json()
        assert due == {"items": [], "count": 0}

        assert client.post(f"/api/reminders/mark-read/{item_id}", headers=ALICE).status_code == 200
        assert client.post("/api/reminders/mark-read/ghost", headers=ALICE).status_code == 404

        stats = client.get("/api/reminders/stats", headers=ALICE).json()
        assert stats == {"unread_count": 0, "message": "All caught up!"}

    def test_chat_empty_query(self, client):
        response = client.post("/api/chat", json={"query": ""}, headers=ALICE)
        assert response.status_code == 400

    def test_chat_falls_back_without_ai(self, client):
        _save(client)

        response = client.post("/api/chat", json={"query": "react"}, headers=ALICE)

        assert response.status_code == 200
        data = response.json()
        assert data["response"] == 'I found 1 items matching "react".'
        assert len(data["items"]) == 1


class TestErrorDetail:
    def test_production_hides_internal_detail(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            client = _make_client(Path(temp_dir) / "data", environment="production")
            client.app.state.services.items.list_recent = AsyncMock(
                side_effect=RuntimeError("disk on fire")
            )

            response = client.get("/api/export/json", headers=ALICE)

            assert response.status_code == 500
            assert response.json() == {
                "error": "internal_error",
                "message": "An unexpected error occurred",
            }

    def test_development_keeps_internal_detail(self, client):
        client.app.state.services.items.list_recent = AsyncMock(
            side_effect=RuntimeError("disk on fire")
        )

        response = client.get("/api/export/json", headers=ALICE)

        assert response.status_code == 500
        assert "disk on fire" in response.json()["message"]


def _failing_enrichment(generate_text):
    fetcher = MagicMock()
    fetcher.extract_text = AsyncMock(return_value=None)
    service = EnrichmentService(
        AppConfig(
            gemini_api_keys=["gemini-key"],
            ai_providers=["gemini"],
            ai_timeout_seconds=1,
        ),
        content_fetcher=fetcher,
    )
    service._generate_text = generate_text
    return service


class TestSaveWithEnrichmentFailure:
    def test_timeout_still_saves_with_low_confidence(self):
        async def hang(provider_id, prompt):
            await asyncio.sleep(5)

        with tempfile.TemporaryDirectory() as temp_dir:
            client = _make_client(Path(temp_dir) / "data", enrichment=_failing_enrichment(hang))

            response = _save(client)

            assert response.status_code == 201
            ai_output = response.json()["data"]["ai_output"]
            assert ai_output["confidence_level"] == "low"
            assert "timed out" in ai_output["summary"]
            assert response.headers["X-RateLimit-Remaining"] == "2"

    def test_rejected_credential_still_saves_with_low_confidence(self):
        async def reject(provider_id, prompt):
            raise AIProviderError(provider_id, "authentication", "invalid API key")

        with tempfile.TemporaryDirectory() as temp_dir:
            client = _make_client(Path(temp_dir) / "data", enrichment=_failing_enrichment(reject))

            response = _save(client)

            assert response.status_code == 201
            ai_output = response.json()["data"]["ai_output"]
            assert ai_output["confidence_level"] == "low"
            assert ai_output["tags"] == ["error", "setup-required"]
