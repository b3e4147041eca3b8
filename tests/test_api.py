"""Tests for the GarbageScan HTTP surface (JSON API and HTML page)."""

from __future__ import annotations

import asyncio
import io
import os
from typing import TYPE_CHECKING
from unittest.mock import patch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import httpx
import pytest
from fastapi import FastAPI, status
from PIL import Image

from garbagescan.config import get_settings
from garbagescan.main import close_app_state, create_app, init_app_state
from garbagescan.widget.controller import ClassifyWidget


class _Upstream:
    """Stand-in for the remote classification endpoint."""

    def __init__(self, status_code: int = 200, text: str = "shoes", json: object = None) -> None:
        self.status_code = status_code
        self.text = text
        self.json = json
        self.requests: list[httpx.Request] = []
        self.gate: asyncio.Event | None = None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.json is not None:
            return httpx.Response(self.status_code, json=self.json)
        return httpx.Response(self.status_code, text=self.text)


def _png() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), "blue").save(buffer, format="PNG")
    return buffer.getvalue()


def _init_app_state(app: FastAPI, upstream: _Upstream, **env_overrides: str) -> None:
    """Manually initialize app state (ASGITransport does not trigger lifespan)."""
    with patch.dict(os.environ, env_overrides):
        settings = get_settings()
    init_app_state(app, settings, httpx.MockTransport(upstream))


async def _make_client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
    await close_app_state(app)


def _widget(app: FastAPI) -> ClassifyWidget:
    widget: ClassifyWidget = app.state.widget
    return widget


@pytest.fixture()
def upstream() -> _Upstream:
    return _Upstream()


@pytest.fixture()
def app(upstream: _Upstream) -> FastAPI:
    """Create a fresh app instance with default settings."""
    application = create_app()
    _init_app_state(application, upstream)
    return application


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client for testing the app."""
    async for ac in _make_client(app):
        yield ac


def _image_file(name: str = "bottle.png", data: bytes | None = None) -> dict[str, tuple[str, bytes, str]]:
    return {"file": (name, data if data is not None else _png(), "image/png")}


class TestHealthEndpoint:
    async def test_health_returns_ok(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/health")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["endpoint"] == "http://localhost:8080/predict"
        assert data["response_contract"] == "text"
        assert data["in_flight"] is False


class TestStateEndpoint:
    async def test_initial_state(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/state")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "selection": None,
            "outcome": {"status": "idle", "label": None, "description": None, "message": None},
            "upload_enabled": True,
        }


class TestSelectionEndpoint:
    async def test_plain_text_result(self, client: httpx.AsyncClient, upstream: _Upstream) -> None:
        response = await client.post("/api/v1/selection", files=_image_file())

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["outcome"]["status"] == "success"
        assert data["outcome"]["label"] == "shoes"
        assert data["selection"]["filename"] == "bottle.png"
        assert data["selection"]["media_type"] == "image/png"
        assert data["upload_enabled"] is False
        assert len(upstream.requests) == 1

    async def test_upstream_500(self, client: httpx.AsyncClient, upstream: _Upstream) -> None:
        upstream.status_code = 500
        upstream.text = "server error"

        response = await client.post("/api/v1/selection", files=_image_file())

        outcome = response.json()["outcome"]
        assert outcome["status"] == "failure"
        assert outcome["message"] == "server error"

    async def test_json_contract(self) -> None:
        upstream = _Upstream(json={"label": "Plastic", "confidence": 0.92})
        app = create_app()
        _init_app_state(app, upstream, GARBAGESCAN_RESPONSE_CONTRACT="json")
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/selection", files=_image_file())
            outcome = response.json()["outcome"]
            assert outcome["label"] == "Plastic"
            assert outcome["description"] == "Confiança: 92.0%"

    async def test_oversize_is_rejected_before_request(self) -> None:
        upstream = _Upstream()
        app = create_app()
        _init_app_state(app, upstream, GARBAGESCAN_MAX_FILE_SIZE="16")
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/selection", files=_image_file())
            assert response.json()["outcome"]["status"] == "failure"
            assert upstream.requests == []

    async def test_oversize_non_image_reports_size(self) -> None:
        upstream = _Upstream()
        app = create_app()
        _init_app_state(app, upstream, GARBAGESCAN_MAX_FILE_SIZE="64")
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/selection", files=_image_file(data=b"x" * 10_000))
            outcome = response.json()["outcome"]
            assert outcome["status"] == "failure"
            assert outcome["message"].startswith("A imagem excede o limite")
            assert upstream.requests == []

    async def test_malformed_endpoint_url_fails_instead_of_loading(self) -> None:
        upstream = _Upstream()
        app = create_app()
        _init_app_state(app, upstream, GARBAGESCAN_API_BASE_URL="http://local\thost:8080")
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/selection", files=_image_file())
            outcome = response.json()["outcome"]
            assert outcome["status"] == "failure"
            assert outcome["message"].startswith("Falha na ligação")

    async def test_corrupt_file_is_an_uploader_error(self, client: httpx.AsyncClient, upstream: _Upstream) -> None:
        response = await client.post("/api/v1/selection", files=_image_file(data=b"garbage"))

        outcome = response.json()["outcome"]
        assert outcome["status"] == "failure"
        assert outcome["message"] == "A imagem está corrompida ou não pode ser lida."
        assert upstream.requests == []

    async def test_no_file_clears_selection(self, client: httpx.AsyncClient) -> None:
        await client.post("/api/v1/selection", files=_image_file())

        response = await client.post("/api/v1/selection")

        data = response.json()
        assert data["selection"] is None
        assert data["outcome"]["status"] == "idle"
        assert data["upload_enabled"] is True

    async def test_no_wait_reports_loading_and_reset_abandons(
        self, app: FastAPI, client: httpx.AsyncClient, upstream: _Upstream
    ) -> None:
        upstream.gate = asyncio.Event()

        response = await client.post("/api/v1/selection", params={"wait": "false"}, files=_image_file())
        assert response.json()["outcome"]["status"] == "loading"
        await asyncio.sleep(0.01)
        assert (await client.get("/api/v1/health")).json()["in_flight"] is True

        response = await client.post("/api/v1/reset")
        data = response.json()
        assert data["outcome"]["status"] == "idle"
        assert data["selection"] is None
        assert data["upload_enabled"] is True

        upstream.gate.set()
        await _widget(app).wait_settled()
        assert (await client.get("/api/v1/state")).json()["outcome"]["status"] == "idle"


class TestAuthentication:
    async def test_no_auth_required_by_default(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/state")
        assert response.status_code == status.HTTP_200_OK

    async def test_auth_required_when_api_key_set(self) -> None:
        app = create_app()
        _init_app_state(app, _Upstream(), GARBAGESCAN_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get("/api/v1/state")
            assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_auth_passes_with_correct_key(self) -> None:
        app = create_app()
        _init_app_state(app, _Upstream(), GARBAGESCAN_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/api/v1/state",
                headers={"Authorization": "Bearer test-secret-key"},
            )
            assert response.status_code == status.HTTP_200_OK

    async def test_auth_fails_with_wrong_key(self) -> None:
        app = create_app()
        _init_app_state(app, _Upstream(), GARBAGESCAN_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/api/v1/state",
                headers={"Authorization": "Bearer wrong-key"},
            )
            assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_page_is_open_when_api_key_set(self) -> None:
        app = create_app()
        _init_app_state(app, _Upstream(), GARBAGESCAN_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get("/")
            assert response.status_code == status.HTTP_200_OK


class TestPage:
    async def test_index_offers_upload(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/")
        assert response.status_code == status.HTTP_200_OK
        assert "Garbage Classification" in response.text
        assert 'action="/upload"' in response.text
        assert 'accept=".jpg,.jpeg,.png,.webp"' in response.text
        assert 'action="/reset"' not in response.text

    async def test_upload_redirects_and_shows_result(self, app: FastAPI, client: httpx.AsyncClient) -> None:
        response = await client.post("/upload", files={"image": ("bottle.png", _png(), "image/png")})
        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/"

        await _widget(app).wait_settled()
        page = (await client.get("/")).text
        assert "<h2>shoes</h2>" in page
        assert "data:image/png;base64," in page
        assert 'action="/upload"' not in page
        assert 'action="/reset"' in page

    async def test_loading_page_refreshes(self, client: httpx.AsyncClient, upstream: _Upstream) -> None:
        upstream.gate = asyncio.Event()
        await client.post("/upload", files={"image": ("bottle.png", _png(), "image/png")})

        page = (await client.get("/")).text
        assert "A processar" in page
        assert 'http-equiv="refresh"' in page
        upstream.gate.set()

    async def test_failure_is_escaped(self, app: FastAPI, client: httpx.AsyncClient, upstream: _Upstream) -> None:
        upstream.status_code = 500
        upstream.text = "<b>boom</b>"
        await client.post("/upload", files={"image": ("bottle.png", _png(), "image/png")})

        await _widget(app).wait_settled()
        page = (await client.get("/")).text
        assert "Erro" in page
        assert "&lt;b&gt;boom&lt;/b&gt;" in page

    async def test_reset_form(self, app: FastAPI, client: httpx.AsyncClient) -> None:
        await client.post("/upload", files={"image": ("bottle.png", _png(), "image/png")})

        response = await client.post("/reset")

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert _widget(app).selection is None
        assert 'action="/upload"' in (await client.get("/")).text

    async def test_injected_content_type_gets_no_preview(self, app: FastAPI, client: httpx.AsyncClient) -> None:
        content_type = 'image/png" onerror="alert(1)'
        await client.post("/upload", files={"image": ("bottle.png", _png(), content_type)})

        await _widget(app).wait_settled()
        page = (await client.get("/")).text
        assert 'onerror="alert(1)' not in page
        assert '<div class="preview">' not in page
