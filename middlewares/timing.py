import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from config.settings import settings

logger = logging.getLogger(__name__)

class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request.state.started_at = start  # read by the error handlers
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Latency-Ms"] = str(latency_ms)
        if latency_ms >= settings.SLOW_REQUEST_MS:
            logger.warning(f"slow request: {request.method} {request.url.path} {latency_ms}ms status={response.status_code}")
        return response
