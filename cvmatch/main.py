import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from cvmatch.api.v1.health import router as health_router
from cvmatch.api.v1.analyses import router as analyses_router
from cvmatch.api.v1.progress import router as progress_router
from cvmatch.core.rate_limit import limiter
from cvmatch.core.config import settings
from dotenv import load_dotenv
from cvmatch.core.lifespan import lifespan

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="CV Match Scoring API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_origin_regex=(settings.cors_allow_origin_regex or "").strip() or None,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(analyses_router, prefix="/v1", tags=["Analyses"])
app.include_router(progress_router, prefix="/v1", tags=["Progress"])
