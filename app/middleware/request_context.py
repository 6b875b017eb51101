import time
import uuid

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.context import current_request_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id for the log records and log one line per request."""

    async def dispatch(self, request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        id_token = current_request_id.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            current_request_id.reset(id_token)

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        logger.bind(request_id=request_id).info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
        )
        return response
