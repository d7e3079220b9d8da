"""
Route tests for the HTTP surface with the model and network replaced.
"""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from cardforge.core.config import settings
from cardforge.main import app, get_generator, get_http_client
from cardforge.studio.generator import StudyGenerator

from conftest import FakeModelClient

MITO = "The mitochondria is the powerhouse of the cell."
LONG_TEXT = (
    "Photosynthesis is the process by which green plants use sunlight, water and carbon "
    "dioxide to produce glucose and oxygen. It takes place in the chloroplasts."
)
QUIZ_REPLY = json.dumps(
    [
        {"question": f"Q{i}", "options": ["A", "B", "C", "D"], "correctAnswerIndices": [i % 4]}
        for i in range(6)
    ]
)


@pytest.fixture
def model():
    return FakeModelClient(text=json.dumps([{"front": "Was ist ATP?", "back": "Energieträger"}] * 30))


@pytest.fixture
def client(model):
    app.dependency_overrides[get_generator] = lambda: StudyGenerator(model)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestFlashcardRoute:
    """POST /api/generate"""

    def test_inline_text(self, client, model):
        r = client.post("/api/generate", data={"inputType": "text", "textData": MITO, "maxCards": "3"})
        assert r.status_code == 200
        body = r.json()
        assert len(body["flashcards"]) == 3
        assert body["flashcards"][0] == {"front": "Was ist ATP?", "back": "Energieträger"}
        assert "maximal 3" in model.last_prompt

    def test_default_count(self, client):
        r = client.post("/api/generate", data={"inputType": "text", "textData": MITO})
        assert len(r.json()["flashcards"]) == 15

    def test_missing_text_is_client_error(self, client, model):
        r = client.post("/api/generate", data={"inputType": "text", "textData": "   "})
        assert r.status_code == 400
        assert r.json()["kind"] == "invalid_input"
        assert r.json()["error"]
        assert model.calls == []

    def test_unknown_input_type(self, client):
        r = client.post("/api/generate", data={"inputType": "video"})
        assert r.status_code == 400
        assert r.json()["kind"] == "invalid_input"

    def test_text_file_upload(self, client, model):
        files = {"inputFile": ("notes.txt", "Ribosomes build proteins in every cell.".encode(), "text/plain")}
        r = client.post("/api/generate", data={"inputType": "file"}, files=files)
        assert r.status_code == 200
        assert "Ribosomes build proteins in every cell." in model.last_prompt

    def test_disallowed_upload_type(self, client, model):
        files = {"inputFile": ("data.json", b'{"a": 1}', "application/json")}
        r = client.post("/api/generate", data={"inputType": "file"}, files=files)
        assert r.status_code == 400
        assert r.json()["kind"] == "unsupported_type"
        assert "application/json" in r.json()["error"]
        assert model.calls == []

    def test_oversized_upload(self, client, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_bytes", 16)
        files = {"inputFile": ("big.txt", b"x" * 17, "text/plain")}
        r = client.post("/api/generate", data={"inputType": "file"}, files=files)
        assert r.status_code == 400
        assert r.json()["kind"] == "file_too_large"

    def test_file_type_without_file(self, client):
        r = client.post("/api/generate", data={"inputType": "file"})
        assert r.status_code == 400

    def test_binary_url_reaches_model_as_placeholder(self, client, model):
        r = client.post("/api/generate", data={"inputType": "url", "urlData": "http://example.com/movie.mp4"})
        assert r.status_code == 200
        assert "movie.mp4" in model.last_prompt

    def test_url_fetch_error(self, client, model):
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text="gone"))
        http = httpx.AsyncClient(transport=transport)
        app.dependency_overrides[get_http_client] = lambda: http
        r = client.post("/api/generate", data={"inputType": "url", "urlData": "https://example.com/gone"})
        assert r.status_code == 500
        assert r.json() == {"error": "URL-Fehler: Status 404", "kind": "fetch_failed"}
        assert model.calls == []

    def test_invalid_url(self, client):
        r = client.post("/api/generate", data={"inputType": "url", "urlData": "ftp://example.com"})
        assert r.status_code == 400
        assert r.json()["kind"] == "invalid_url"

    def test_unparseable_url_is_client_error(self, client, model):
        r = client.post("/api/generate", data={"inputType": "url", "urlData": "http://[::1/page"})
        assert r.status_code == 400
        assert r.json()["kind"] == "invalid_url"
        assert model.calls == []

    def test_model_not_configured(self, client):
        app.dependency_overrides[get_generator] = lambda: StudyGenerator(None)
        r = client.post("/api/generate", data={"inputType": "text", "textData": MITO})
        assert r.status_code == 500
        assert r.json()["kind"] == "service_unavailable"


class TestQuizRoute:
    """POST /api/generate-quiz"""

    def test_quiz(self, client):
        app.dependency_overrides[get_generator] = lambda: StudyGenerator(FakeModelClient(text=QUIZ_REPLY))
        r = client.post("/api/generate-quiz", data={"inputType": "text", "textData": LONG_TEXT, "numQuestions": "4"})
        assert r.status_code == 200
        quiz = r.json()["quiz"]
        assert len(quiz) == 4
        assert quiz[1] == {"question": "Q1", "options": ["A", "B", "C", "D"], "correctAnswerIndices": [1]}

    def test_short_text_gives_empty_quiz(self, client, model):
        r = client.post("/api/generate-quiz", data={"inputType": "text", "textData": MITO})
        assert r.status_code == 200
        assert r.json() == {"quiz": []}
        assert model.calls == []

    def test_malformed_reply(self, client):
        app.dependency_overrides[get_generator] = lambda: StudyGenerator(FakeModelClient(text="Sorry, no quiz today."))
        r = client.post("/api/generate-quiz", data={"inputType": "text", "textData": LONG_TEXT})
        assert r.status_code == 500
        body = r.json()
        assert body["kind"] == "malformed_response"
        assert "Sorry" not in body["error"]


def test_unexpected_error_keeps_json_shape():
    def broken_generator():
        raise RuntimeError("boom")

    app.dependency_overrides[get_generator] = broken_generator
    try:
        with TestClient(app, raise_server_exceptions=False) as tc:
            r = tc.post("/api/generate", data={"inputType": "text", "textData": MITO})
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 500
    assert r.json() == {"error": "Serverfehler.", "kind": "internal"}


def test_startup_builds_model_client(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", "")
    with TestClient(app) as tc:
        r = tc.get("/info")
    assert r.json()["model_configured"] is False


def test_info(client):
    r = client.get("/info")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["model"] == settings.gemini_model
