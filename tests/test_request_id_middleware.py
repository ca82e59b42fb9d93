"""Unit tests for userhub.infra.fastapi.middleware.request_id."""

from __future__ import annotations

import uuid

import pytest
import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from userhub.foundation.domain.exceptions import TransientStoreError
from userhub.infra.fastapi.error_handlers import register_exception_handlers
from userhub.infra.fastapi.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIdMiddleware,
    get_request_id,
)


def _make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/echo")
    async def _echo() -> dict[str, object]:
        return {
            "request_id": get_request_id(),
            "log_context": structlog.contextvars.get_contextvars(),
        }

    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(_make_app())


class TestRequestIdMiddleware:
    @pytest.mark.unit
    def test_propagates_valid_header(self, client: TestClient) -> None:
        request_id = str(uuid.uuid4())

        response = client.get("/echo", headers={REQUEST_ID_HEADER: request_id})

        assert response.headers[REQUEST_ID_HEADER] == request_id
        assert response.json()["request_id"] == request_id

    @pytest.mark.unit
    def test_generates_id_when_missing(self, client: TestClient) -> None:
        response = client.get("/echo")

        generated = response.headers[REQUEST_ID_HEADER]
        assert uuid.UUID(generated).version == 4
        assert response.json()["request_id"] == generated

    @pytest.mark.unit
    def test_replaces_malformed_header(self, client: TestClient) -> None:
        response = client.get("/echo", headers={REQUEST_ID_HEADER: "not-a-uuid"})

        assert response.headers[REQUEST_ID_HEADER] != "not-a-uuid"
        uuid.UUID(response.headers[REQUEST_ID_HEADER])

    @pytest.mark.unit
    def test_binds_structlog_context(self, client: TestClient) -> None:
        response = client.get("/echo")

        body = response.json()
        assert body["log_context"]["request_id"] == body["request_id"]

    @pytest.mark.unit
    def test_context_cleared_after_request(self, client: TestClient) -> None:
        client.get("/echo")

        assert get_request_id() == ""
        assert "request_id" not in structlog.contextvars.get_contextvars()

    @pytest.mark.unit
    def test_header_name_is_case_insensitive(self, client: TestClient) -> None:
        request_id = str(uuid.uuid4())

        response = client.get("/echo", headers={"x-request-id": request_id})

        assert response.json()["request_id"] == request_id

    @pytest.mark.unit
    def test_problem_documents_carry_request_id(self) -> None:
        app = FastAPI()
        app.add_middleware(RequestIdMiddleware)
        register_exception_handlers(app)

        @app.get("/down")
        async def _down() -> None:
            raise TransientStoreError("get_by_id", "connection refused")

        request_id = str(uuid.uuid4())
        response = TestClient(app).get("/down", headers={REQUEST_ID_HEADER: request_id})

        assert response.status_code == 503
        assert response.json()["correlation_id"] == request_id
        assert response.headers[REQUEST_ID_HEADER] == request_id
