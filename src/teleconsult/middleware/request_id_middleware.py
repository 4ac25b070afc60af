"""
Request id and latency middleware.
"""

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("teleconsult.http")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind ``request.state.request_id`` (from X-Request-ID when sent) and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        response = await call_next(request)

        process_time_ms = round((time.time() - start_time) * 1000, 2)
        logger.info(
            f"method={request.method} path={request.url.path} "
            f"status={response.status_code} latency={process_time_ms}ms request_id={request_id}"
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time_ms)
        return response
