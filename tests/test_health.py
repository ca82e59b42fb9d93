"""Unit tests for the /healthz endpoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from userhub.infra.fastapi._health import router


def _engine(*, error: Exception | None = None) -> MagicMock:
    conn = AsyncMock()
    if error is not None:
        conn.execute.side_effect = error

    @asynccontextmanager
    async def _connect() -> Any:
        yield conn

    engine = MagicMock()
    engine.connect = _connect
    return engine


def _client(*, engine: Any = None, notifier: Any = None) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    if engine is not None:
        app.state.db_engine = engine
    if notifier is not None:
        app.state.user_notifier = notifier
    return TestClient(app)


class TestHealthz:
    @pytest.mark.unit
    def test_all_healthy(self) -> None:
        client = _client(engine=_engine(), notifier=SimpleNamespace(is_connected=True))

        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "checks": {"database": {"status": "ok"}, "broker": {"status": "ok"}},
        }

    @pytest.mark.unit
    def test_database_down(self) -> None:
        client = _client(
            engine=_engine(error=ConnectionRefusedError("refused")),
            notifier=SimpleNamespace(is_connected=True),
        )

        response = client.get("/healthz")

        body = response.json()
        assert response.status_code == 503
        assert body["status"] == "degraded"
        assert body["checks"]["database"] == {
            "status": "error",
            "detail": "ConnectionRefusedError",
        }

    @pytest.mark.unit
    def test_broker_disconnected(self) -> None:
        client = _client(engine=_engine(), notifier=SimpleNamespace(is_connected=False))

        response = client.get("/healthz")

        assert response.status_code == 503
        assert response.json()["checks"]["broker"]["detail"] == "disconnected"

    @pytest.mark.unit
    def test_not_initialized(self) -> None:
        response = _client().get("/healthz")

        checks = response.json()["checks"]
        assert response.status_code == 503
        assert checks["database"]["detail"] == "not initialized"
        assert checks["broker"]["detail"] == "not initialized"
