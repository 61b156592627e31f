from fastapi import Request

from services.rate_limiter import RateLimiter
from utils.errors import RateLimitError

FALLBACK_CLIENT_IP = "127.0.0.1"


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return FALLBACK_CLIENT_IP


def enforce_rate_limit(request: Request):
    limiter: RateLimiter = request.app.state.rate_limiter
    decision = limiter.hit(client_ip(request))
    if not decision.allowed:
        raise RateLimitError(reset_time=decision.reset_time)
    return decision
