import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api import router as api_router
from app.api.core.config import BASE_DIR, settings
from app.api.core.dependencies.redis_service import close_redis_client
from app.api.core.exceptions import (
    RateLimitExceeded,
    general_exception_handler,
    http_exception_handler,
    rate_limit_exception_handler,
    validation_exception_handler,
)
from app.api.core.logger import setup_logging
from app.api.db.database import Base, engine
from app.api.modules.v1.pages.routes.pages_route import router as pages_router
from app.api.modules.v1.waitlist.service.rate_limiter import build_rate_limiter
from app.api.utils.response_payloads import success_response

setup_logging()
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup and release them on shutdown.

    Creates the tables, builds the process-wide signup rate limiter and, on
    shutdown, closes the Redis pool and disposes of the engine.

    Args:
        app (FastAPI): FastAPI application instance supplied by the framework.

    Returns:
        AsyncIterator[None]: Asynchronous context manager controlling startup/shutdown.

    Examples:
        >>> async with lifespan(app):
        ...     yield
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.rate_limiter = build_rate_limiter()
    logger.info(f"{settings.APP_NAME} started in {settings.ENVIRONMENT} mode")

    try:
        yield
    finally:
        await close_redis_client()
        await engine.dispose()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description=f"{settings.APP_NAME} waitlist API",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.mount("/static", StaticFiles(directory=str(BASE_DIR / "app/static")), name="static")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(api_router)
app.include_router(pages_router)


@app.get("/health")
def health_check():
    return success_response(
        status_code=200,
        message="API is healthy",
        data={
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        },
    )


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.APP_PORT, reload=False)
