"""Request tracking middleware."""

import time
import uuid

from fastapi import Request
from loguru import logger

REQUEST_ID_HEADER = "X-Request-ID"


async def add_request_id(request: Request, call_next):
    """Tag each request with an ID and log its outcome and latency.

    An incoming X-Request-ID is reused so callers can correlate votes
    across services; otherwise a new one is generated.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id
    started = time.perf_counter()

    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)"
        )
        return response
