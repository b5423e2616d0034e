"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from conftest import JS_SOURCE
from tactile_code.api import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestScanEndpoints:
    """Tests for scan, index and search."""

    def test_scan(self, client: TestClient) -> None:
        response = client.post("/api/scan", json={"text": "function add(a, b) {"})
        data = response.json()
        assert data["count"] == 1
        assert data["elements"][0]["name"] == "add"
        assert data["elements"][0]["kind"] == "function"
        assert data["elements"][0]["params"] == ["a", "b"]

    def test_scan_empty_text(self, client: TestClient) -> None:
        assert client.post("/api/scan", json={}).json() == {"count": 0, "elements": []}

    def test_index_filters_kinds(self, client: TestClient) -> None:
        response = client.post(
            "/api/index",
            json={"text": JS_SOURCE, "settings": {"filterKinds": ["function"], "sortBy": "name"}},
        )
        names = [e["name"] for e in response.json()["elements"]]
        assert names == ["add", "constructor", "multiply", "parse"]

    def test_index_malformed_settings_fall_back(self, client: TestClient) -> None:
        response = client.post("/api/index", json={"text": JS_SOURCE, "settings": {"sortBy": "bogus"}})
        lines = [e["span"]["start_line"] for e in response.json()["elements"]]
        assert lines == sorted(lines)

    def test_search(self, client: TestClient) -> None:
        response = client.post("/api/search", json={"text": JS_SOURCE, "query": "add"})
        results = response.json()["results"]
        assert results[0]["element"]["name"] == "add"
        assert results[0]["score"] > 0

    def test_search_blank_query(self, client: TestClient) -> None:
        assert client.post("/api/search", json={"text": JS_SOURCE, "query": "  "}).json()["results"] == []


class TestBrailleEndpoint:
    def test_braille_without_line_numbers(self, client: TestClient) -> None:
        response = client.post(
            "/api/braille",
            json={"text": "function add(a, b) {", "settings": {"showLineNumbers": False}},
        )
        data = response.json()
        assert data["braille"].startswith("⠋⠝")
        assert data["stats"]["total_characters"] == 20
        assert "display" not in data

    def test_display_cells(self, client: TestClient) -> None:
        response = client.post("/api/braille", json={"text": "let x = 1;", "display": True})
        display = response.json()["display"]
        assert display
        assert all(cell["description"].startswith("Dots") or cell["description"] == "Blank cell" for cell in display)
        assert all(len(cell["glyphs"]) == 1 for cell in display)


class TestDiagnosticsEndpoint:
    def test_unclosed_brace(self, client: TestClient) -> None:
        response = client.post("/api/diagnostics", json={"text": "function f() {"})
        data = response.json()
        assert data["count"] == 1
        assert data["diagnostics"][0]["message"] == "Unclosed '{'"

    def test_loose_equality_needs_language(self, client: TestClient) -> None:
        body = {"text": "if (a == b) {}"}
        assert client.post("/api/diagnostics", json=body).json()["count"] == 0
        body["language"] = "typescript"
        assert client.post("/api/diagnostics", json=body).json()["diagnostics"][0]["severity"] == "warning"


class TestCueEndpoints:
    def test_all_cues(self, client: TestClient) -> None:
        cues = client.get("/api/cues").json()
        assert {"function", "import", "keyword", "operator"} <= set(cues)
        assert cues["import"] == cues["keyword"]

    def test_function_cue(self, client: TestClient) -> None:
        descriptor = client.get("/api/cues/function").json()["descriptor"]
        assert descriptor["frequency"] == 440
        assert descriptor["waveform"] == "sine"

    def test_unknown_kind_gets_default(self, client: TestClient) -> None:
        assert client.get("/api/cues/whatever").json()["descriptor"]["frequency"] == 770
