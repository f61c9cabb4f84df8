"""
Request Logging Middleware for VaultStamp.

Logs every request with a request ID and response timing.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("vaultstamp.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses.

    - Request ID tracking (X-Request-Id in and out)
    - Response timing (X-Response-Time)
    - Health probes are not logged
    """

    EXCLUDE_PATHS = {
        "/healthz",
        "/readyz",
        "/health",
        "/favicon.ico",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        request_id = request.headers.get("X-Request-Id", str(uuid.uuid4())[:8])

        if path in self.EXCLUDE_PATHS:
            response = await call_next(request)
            response.headers["X-Request-Id"] = request_id
            return response

        start_time = time.perf_counter()
        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "client_ip": self._get_client_ip(request),
        }
        logger.debug("Request started: %s %s", request.method, path, extra=log_data)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            log_data.update({"status_code": 500, "duration_ms": round(duration_ms, 2), "error": str(e)})
            logger.exception(
                "Request failed: %s %s -> 500 (%.2fms)",
                request.method, path, duration_ms,
                extra=log_data,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_data.update({"status_code": response.status_code, "duration_ms": round(duration_ms, 2)})

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "Request completed: %s %s -> %d (%.2fms)",
            request.method, path, response.status_code, duration_ms,
            extra=log_data,
        )

        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP, respecting proxy headers."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"
