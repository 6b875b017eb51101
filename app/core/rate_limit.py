# app/core/rate_limit.py
from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.settings import settings
from app.libs.formats.envelope import fail

# per client IP and per route, fixed window
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    retry_after = exc.limit.limit.get_expiry()
    logger.warning(
        f"🐢 Rate limit hit on {request.method} {request.url.path} from {get_remote_address(request)}"
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=fail("Too many attempts, please try again later", "RATE_LIMITED"),
        headers={"Retry-After": str(retry_after)},
    )
