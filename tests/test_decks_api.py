"""Integration tests for deck API endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from prodeck.api.v1.dependencies import get_image_service, get_planner, get_registry
from prodeck.core.config import settings
from prodeck.main import app
from prodeck.services.ai.base import AIProviderError, ImageModel
from prodeck.services.ai.image_service import ImageService
from prodeck.services.deck.orchestrator import DeckOrchestrator
from prodeck.services.deck.registry import DeckSessionRegistry
from prodeck.services.export.pptx_reader import read_package
from prodeck.services.export.pptx_writer import write_package
from tests.fixtures.deck import FakeImageGenerator, FakePlanner, png_bytes, slide_image, specs

API = settings.API_V1_PREFIX


def sse_payloads(body: str):
    """(event, data) pairs from a text/event-stream body."""
    events = []
    for block in body.strip().split("\n\n"):
        event, data = None, None
        for line in block.splitlines():
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data = json.loads(line[len("data: "):])
        events.append((event, data))
    return events


class TestDecksAPI:
    """Integration tests for the deck endpoints."""

    @pytest.fixture
    def planner(self):
        return FakePlanner(specs(3))

    @pytest.fixture
    def generator(self):
        return FakeImageGenerator()

    @pytest.fixture
    def registry(self):
        return DeckSessionRegistry()

    @pytest.fixture
    def client(self, planner, generator, registry):
        service = ImageService({ImageModel.GEMINI: generator})
        app.dependency_overrides[get_planner] = lambda: planner
        app.dependency_overrides[get_image_service] = lambda: service
        app.dependency_overrides[get_registry] = lambda: registry
        yield TestClient(app)
        app.dependency_overrides.clear()

    def create_deck(self, client, **data):
        form = {"brief": "Quarterly review", "target_count": "3", **data}
        return client.post(
            f"{API}/decks",
            data=form,
            files=[("style_images", ("style.png", png_bytes(), "image/png"))],
        )

    def test_create_deck(self, client, planner):
        response = self.create_deck(client)

        assert response.status_code == 201
        body = response.json()
        assert body["session_id"]
        assert [s["state"] for s in body["slides"]] == ["pending"] * 3
        assert body["summary"]["pending"] == 3
        assert planner.calls[0]["brief"] == "Quarterly review"
        assert planner.calls[0]["style_assets"][0].mime_type == "image/png"

    def test_create_deck_requires_style_images(self, client):
        response = client.post(f"{API}/decks", data={"brief": "Quarterly review"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VAL_001"
        assert error["field"] == "style_assets"

    def test_create_deck_with_unconfigured_backend(self, client):
        response = self.create_deck(client, image_model="openai")

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "image_model"

    def test_create_deck_planner_failure(self, client, planner):
        planner.result = AIProviderError("planner down")

        response = self.create_deck(client)

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "GEN_001"

    def test_upload_too_large(self, client, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)

        response = self.create_deck(client)

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "VAL_002"

    def test_unknown_session(self, client):
        response = client.get(f"{API}/decks/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "DECK_001"

    def test_generate_streams_snapshots(self, client):
        session_id = self.create_deck(client).json()["session_id"]

        response = client.post(f"{API}/decks/{session_id}/generate")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = sse_payloads(response.text)
        snapshots = [data for event, data in events if event is None]
        assert len(snapshots) == 6
        assert [s["state"] for s in snapshots[0]["slides"]] == ["generating", "pending", "pending"]
        assert events[-1][0] == "complete"
        assert events[-1][1]["succeeded"] == [1, 2, 3]

        deck = client.get(f"{API}/decks/{session_id}").json()
        assert deck["summary"]["done"] == 3
        assert deck["slides"][0]["image_url"].startswith("data:image/png;base64,")

    def test_generate_isolates_failures_and_retry(self, client, generator):
        generator.outcomes = {"prompt 2": AIProviderError("quota exhausted")}
        session_id = self.create_deck(client).json()["session_id"]

        events = sse_payloads(client.post(f"{API}/decks/{session_id}/generate").text)
        assert events[-1][1]["failed"] == [2]

        deck = client.get(f"{API}/decks/{session_id}").json()
        assert [s["state"] for s in deck["slides"]] == ["done", "failed", "done"]
        assert deck["slides"][1]["error"] == "quota exhausted"

        generator.outcomes = {}
        retried = client.post(f"{API}/decks/{session_id}/slides/2/retry")
        assert retried.status_code == 200
        assert retried.json()["slides"][1]["state"] == "done"

    def test_edit_slide(self, client, generator):
        session_id = self.create_deck(client).json()["session_id"]
        client.post(f"{API}/decks/{session_id}/generate")

        response = client.post(
            f"{API}/decks/{session_id}/slides/1/edit",
            json={"instruction": "Make the background blue"},
        )

        assert response.status_code == 200
        assert response.json()["slides"][0]["state"] == "done"
        assert generator.edit_calls == ["Make the background blue"]

    def test_edit_on_selected_backend(self, client, generator, registry):
        other = FakeImageGenerator(edit_outcome=slide_image(7))
        session_id = self.create_deck(client).json()["session_id"]
        client.post(f"{API}/decks/{session_id}/generate")
        app.dependency_overrides[get_image_service] = lambda: ImageService(
            {ImageModel.GEMINI: generator, ImageModel.OPENAI: other}
        )

        response = client.post(
            f"{API}/decks/{session_id}/slides/1/edit",
            json={"instruction": "Make it blue", "image_model": "openai"},
        )
        client.post(f"{API}/decks/{session_id}/slides/2/edit", json={"instruction": "Add a logo"})

        assert response.status_code == 200
        assert other.edit_calls == ["Make it blue", "Add a logo"]
        assert generator.edit_calls == []
        assert registry.get(session_id).image_model == ImageModel.OPENAI

    def test_edit_with_unknown_backend(self, client):
        session_id = self.create_deck(client).json()["session_id"]

        response = client.post(
            f"{API}/decks/{session_id}/slides/1/edit",
            json={"instruction": "Make it blue", "image_model": "dalle"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "image_model"

    def test_retry_on_selected_backend(self, client, generator):
        other = FakeImageGenerator()
        generator.outcomes = {"prompt 2": AIProviderError("quota exhausted")}
        session_id = self.create_deck(client).json()["session_id"]
        client.post(f"{API}/decks/{session_id}/generate")
        app.dependency_overrides[get_image_service] = lambda: ImageService(
            {ImageModel.GEMINI: generator, ImageModel.OPENAI: other}
        )

        response = client.post(
            f"{API}/decks/{session_id}/slides/2/retry",
            params={"image_model": "openai"},
        )

        assert response.status_code == 200
        assert response.json()["slides"][1]["state"] == "done"
        assert other.generate_calls == ["prompt 2"]
        assert generator.generate_calls == ["prompt 1", "prompt 2", "prompt 3"]

    def test_retry_with_unconfigured_backend(self, client, generator):
        generator.outcomes = {"prompt 2": AIProviderError("quota exhausted")}
        session_id = self.create_deck(client).json()["session_id"]
        client.post(f"{API}/decks/{session_id}/generate")

        response = client.post(
            f"{API}/decks/{session_id}/slides/2/retry",
            params={"image_model": "openai"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "image_model"

    def test_generate_while_busy_conflicts(self, client, generator, monkeypatch):
        session_id = self.create_deck(client).json()["session_id"]
        monkeypatch.setattr(DeckOrchestrator, "busy_operation", property(lambda self: "generate"))

        response = client.post(f"{API}/decks/{session_id}/generate")

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "DECK_005"
        assert error["details"]["operation"] == "generate"
        assert generator.generate_calls == []

    def test_edit_pending_slide_conflicts(self, client):
        session_id = self.create_deck(client).json()["session_id"]

        response = client.post(
            f"{API}/decks/{session_id}/slides/1/edit",
            json={"instruction": "Make it blue"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DECK_004"

    def test_edit_empty_instruction(self, client):
        session_id = self.create_deck(client).json()["session_id"]

        response = client.post(f"{API}/decks/{session_id}/slides/1/edit", json={"instruction": ""})

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "instruction"

    def test_edit_unknown_slide(self, client):
        session_id = self.create_deck(client).json()["session_id"]

        response = client.post(
            f"{API}/decks/{session_id}/slides/9/edit",
            json={"instruction": "Make it blue"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "DECK_002"

    def test_export(self, client):
        session_id = self.create_deck(client).json()["session_id"]
        client.post(f"{API}/decks/{session_id}/generate")

        response = client.get(f"{API}/decks/{session_id}/export")

        assert response.status_code == 200
        assert "presentationml" in response.headers["content-type"]
        assert "filename=ProDeck_" in response.headers["content-disposition"]
        assert len(read_package(response.content)) == 3

    def test_import_creates_session(self, client):
        package = write_package([png_bytes(color=(1, 0, 0)), png_bytes(color=(0, 1, 0))])

        response = client.post(
            f"{API}/decks/import",
            files={"file": ("deck.pptx", package, "application/octet-stream")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["imported"] == 2
        assert [s["title"] for s in body["slides"]] == ["Imported Slide 1", "Imported Slide 2"]
        assert client.get(f"{API}/decks/{body['session_id']}").status_code == 200

    def test_import_invalid_package(self, client):
        response = client.post(
            f"{API}/decks/import",
            files={"file": ("deck.pptx", b"not a zip", "application/octet-stream")},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PKG_001"

    def test_empty_import_into_session_keeps_deck(self, client):
        session_id = self.create_deck(client).json()["session_id"]
        empty = write_package([])

        response = client.post(
            f"{API}/decks/import",
            data={"session_id": session_id},
            files={"file": ("deck.pptx", empty, "application/octet-stream")},
        )

        assert response.status_code == 200
        assert response.json()["imported"] == 0
        assert len(response.json()["slides"]) == 3

    def test_delete_deck(self, client):
        session_id = self.create_deck(client).json()["session_id"]

        assert client.delete(f"{API}/decks/{session_id}").status_code == 204
        assert client.get(f"{API}/decks/{session_id}").status_code == 404

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"
        ready = client.get(f"{API}/health/ready").json()
        assert ready["available_image_models"] == ["gemini"]
