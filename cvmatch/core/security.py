from __future__ import annotations

from fastapi import Header, HTTPException, status

from cvmatch.core.config import settings


def check_api_key(x_api_key: str | None) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please provide a valid API key.",
        )


async def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    check_api_key(x_api_key)
