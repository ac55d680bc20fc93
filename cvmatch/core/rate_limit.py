from __future__ import annotations

import hashlib

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from cvmatch.core.config import settings


def client_key(request: Request) -> str:
    """Rate-limit bucket: the API key when one is sent, otherwise the client address."""
    api_key = (request.headers.get("x-api-key") or "").strip()
    if api_key:
        return "key:" + hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:16]
    return get_remote_address(request)


limiter = Limiter(key_func=client_key, enabled=settings.rate_limit_enabled)


def analysis_rate_limit():
    """Limit analysis submissions per client; a no-op decorator when limiting is off."""
    if not settings.rate_limit_enabled:
        return lambda func: func
    return limiter.limit(settings.rate_limit)
