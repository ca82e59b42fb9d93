"""Request ID middleware for log and error correlation.

Every HTTP request handled by userhub carries one request id. It is
taken from the client's ``X-Request-ID`` header when that holds a UUID,
or minted here otherwise, and then:

- kept in :data:`request_id_ctx` so any code on the request path can read
  it through :func:`get_request_id`
- bound into the structlog context, so ``user_created`` and friends are
  logged with ``request_id=...``
- returned as the ``correlation_id`` of 503/500 problem documents
- echoed on the response as ``X-Request-ID``
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

from userhub.foundation.application import MiddlewareContribution

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    Send = Callable[[dict[str, Any]], Awaitable[None]]

REQUEST_ID_HEADER = "X-Request-ID"
_HEADER_KEY = REQUEST_ID_HEADER.lower().encode("latin-1")

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Return the id of the request being handled.

    Returns:
        The request id, or ``""`` when called outside a request (startup,
        detached publish tasks once the request has finished).

    Example:
        >>> from userhub.infra.fastapi.middleware import get_request_id
        >>> get_request_id()
        ''
    """
    return request_id_ctx.get()


def _resolve_request_id(scope: dict[str, Any]) -> str:
    """Pick the client's id when it is a UUID, else mint a UUID4."""
    for key, value in scope.get("headers", []):
        if key.lower() != _HEADER_KEY:
            continue
        candidate = value.decode("latin-1")
        try:
            uuid.UUID(candidate)
        except ValueError:
            break
        return candidate
    return str(uuid.uuid4())


def _echo_request_id(send: Send, request_id: str) -> Send:
    """Wrap ``send`` so the response start carries the request id header."""
    encoded = request_id.encode("latin-1")

    async def send_with_request_id(message: dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            headers = [*message.get("headers", []), (_HEADER_KEY, encoded)]
            message = {**message, "headers": headers}
        await send(message)

    return send_with_request_id


class RequestIdMiddleware:
    """Pure ASGI middleware propagating ``X-Request-ID``.

    A missing or malformed header is replaced by a fresh UUID4 instead of
    failing the request; clients that send garbage still get an id they
    can quote back. Lifespan and websocket scopes pass through untouched.

    Example:
        >>> from fastapi import FastAPI
        >>> from userhub.infra.fastapi.middleware import RequestIdMiddleware
        >>> app = FastAPI()
        >>> app.add_middleware(RequestIdMiddleware)
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Send,
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _resolve_request_id(scope)
        token = request_id_ctx.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            await self.app(scope, receive, _echo_request_id(send, request_id))
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
            request_id_ctx.reset(token)


# Outermost, so handlers and every other middleware see the id.
contribution = MiddlewareContribution(
    middleware_class=RequestIdMiddleware,
    priority=10,
)
