"""Correlation context middleware.

Binds request, correlation and actor ids to logging context variables for the
duration of a request and echoes the ids back to the client.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from marketcache.api.deps import resolve_actor
from marketcache.observability.logging import (
    correlation_id_var,
    request_id_var,
    user_id_var,
)


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Propagate x-request-id / x-correlation-id and the acting user.

    Headers:
    - x-request-id: unique id for this request (generated when absent)
    - x-correlation-id: id spanning services (falls back to the request id)
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        correlation_id = request.headers.get("x-correlation-id") or request_id

        request_token = request_id_var.set(request_id)
        correlation_token = correlation_id_var.set(correlation_id)
        user_token = user_id_var.set(resolve_actor(request) or "")

        try:
            request.state.request_id = request_id
            request.state.correlation_id = correlation_id

            response = await call_next(request)

            response.headers["x-request-id"] = request_id
            response.headers["x-correlation-id"] = correlation_id
            return response
        finally:
            request_id_var.reset(request_token)
            correlation_id_var.reset(correlation_token)
            user_id_var.reset(user_token)
