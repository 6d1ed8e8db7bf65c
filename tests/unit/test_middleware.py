"""Tests for RequestContextMiddleware."""

import logging

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from src.middleware import RequestContextMiddleware


def _app(access_log: bool = True) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware, access_log=access_log)

    @app.get("/echo")
    async def echo(request: Request) -> dict:
        return {"request_id": request.state.request_id}

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy"}

    return app


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://testserver") as ac:
        yield ac


class TestRequestId:
    async def test_generated_id_matches_state(self, client):
        response = await client.get("/echo")
        assert response.headers["X-Request-ID"] == response.json()["request_id"]

    async def test_incoming_id_preserved(self, client):
        response = await client.get("/echo", headers={"X-Request-ID": "abc-123"})
        assert response.json()["request_id"] == "abc-123"
        assert response.headers["X-Request-ID"] == "abc-123"

    async def test_ids_are_unique(self, client):
        first = await client.get("/echo")
        second = await client.get("/echo")
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]


class TestAccessLog:
    async def test_logs_request_line(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="src.middleware"):
            await client.get("/echo", headers={"X-Request-ID": "log-1"})
        assert "GET /echo -> 200" in caplog.text
        assert "request_id=log-1" in caplog.text

    async def test_health_not_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="src.middleware"):
            await client.get("/health")
        assert "GET /health ->" not in caplog.text

    async def test_disabled(self, caplog):
        async with AsyncClient(transport=ASGITransport(app=_app(access_log=False)), base_url="http://testserver") as ac:
            with caplog.at_level(logging.INFO, logger="src.middleware"):
                await ac.get("/echo")
        assert "GET /echo ->" not in caplog.text
