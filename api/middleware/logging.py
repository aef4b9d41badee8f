"""
Request logging middleware with correlation ID and Prometheus metrics
"""
import time
import json
import uuid
import logging
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable
from lib.prometheus_metrics import (
    http_requests_total,
    http_request_duration_seconds,
    update_uptime
)

logger = logging.getLogger("promolink.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        duration_seconds = time.time() - start_time

        response.headers["X-Request-ID"] = request_id

        endpoint = request.url.path
        method = request.method
        status = str(response.status_code)

        # Don't track metrics endpoint itself
        if endpoint != "/metrics":
            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=status
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(duration_seconds)

        update_uptime()

        # One JSON line per request for log aggregators
        logger.info(json.dumps({
            "method": method,
            "path": endpoint,
            "status": response.status_code,
            "dur_ms": round(duration_seconds * 1000, 2),
            "request_id": request_id
        }))

        return response
