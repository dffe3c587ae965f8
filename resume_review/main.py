import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from resume_review.api.v1.health import router as health_router
from resume_review.api.v1.resumes import router as resumes_router
from resume_review.api.v1.previews import router as previews_router
from resume_review.api.v1.analytics import router as analytics_router
from resume_review.core.cors import cors_middleware_options
from resume_review.core.rate_limit import limiter
from resume_review.core.config import settings
from dotenv import load_dotenv
from resume_review.core.lifespan import lifespan

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Resume Review API", version="0.1.0", lifespan=lifespan)

app.add_middleware(CORSMiddleware, **cors_middleware_options())
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(resumes_router, prefix="/v1", tags=["Resumes"])
app.include_router(previews_router, prefix="/v1", tags=["Previews"])
app.include_router(analytics_router, prefix="/v1", tags=["Analytics"])
