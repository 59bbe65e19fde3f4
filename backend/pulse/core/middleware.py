"""Custom FastAPI middleware."""
from __future__ import annotations

from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from pulse.core.context import request_id_ctx_var, trigger_ctx_var


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id (and the route as default trigger) for the lifetime of a request."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        request_token = request_id_ctx_var.set(request_id)
        trigger_token = trigger_ctx_var.set(f"http:{request.method} {request.url.path}")

        try:
            response = await call_next(request)
        finally:
            trigger_ctx_var.reset(trigger_token)
            request_id_ctx_var.reset(request_token)

        response.headers["X-Request-Id"] = request_id
        return response
