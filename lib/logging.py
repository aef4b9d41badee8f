"""
Logging module - Request ID tracking & structured logging
"""
import logging
import uuid
import time
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: int = logging.INFO):
    """Configure the root handler once; no-op if the server already did"""
    logging.basicConfig(level=level, format=LOG_FORMAT)


class RequestLogger:
    """Logger with request ID tracking.

    Holds no per-request state: callers keep the request id and start
    time, so one instance serves concurrent requests.
    """

    def __init__(self):
        self.logger = logging.getLogger("promolink.requests")

    def log_request(self, method: str, path: str, request_id: Optional[str] = None) -> str:
        """Log incoming request, returning its request id"""
        if not request_id:
            request_id = str(uuid.uuid4())
        self.logger.info(f"request_id={request_id} method={method} path={path}")
        return request_id

    def log_response(
        self,
        request_id: str,
        status_code: int,
        started_at: float,
        actor: str = "system",
    ) -> float:
        """Log response with latency since started_at (a time.time() value)"""
        latency = round((time.time() - started_at) * 1000, 2)  # ms
        self.logger.info(
            f"request_id={request_id} actor={actor} "
            f"status={status_code} latency={latency}ms"
        )
        return latency


configure_logging()
logger = RequestLogger()
