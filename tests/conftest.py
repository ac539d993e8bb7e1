import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from httpx import AsyncClient
from httpx._transports.asgi import ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app.api.core.config import BASE_DIR, settings

# Import all models to ensure they are registered with SQLAlchemy before creating tables
from app.api.modules.v1.waitlist.models.waitlist_model import WaitlistEntrant  # noqa: F401
from app.api.modules.v1.waitlist.service.rate_limiter import InMemorySignupRateLimiter
from app.api.modules.v1.waitlist.service.waitlist_service import waitlist_service
from app.api.utils.email_verifier import EmailValidator
from app.api.utils.zerobounce import DeliverabilityClient

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def offline_settings(monkeypatch):
    """
    Keep every test off the network.

    No deliverability key, no email provider key, no MX lookups in the shared
    service's validator. Tests that exercise those paths opt back in explicitly.
    """
    monkeypatch.setattr(settings, "ZEROBOUNCE_API_KEY", "")
    monkeypatch.setattr(settings, "MAIL_PASSWORD", "")
    monkeypatch.setattr(settings, "ENVIRONMENT", "dev")
    monkeypatch.setattr(waitlist_service, "serialize_admissions", False)
    monkeypatch.setattr(
        waitlist_service,
        "_validator",
        EmailValidator(deliverability_client=DeliverabilityClient(api_key=""), check_mx=False),
    )


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine shared by every connection of a test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def rate_limiter():
    return InMemorySignupRateLimiter(cleanup_probability=0.0)


@pytest.fixture
def app(test_session: AsyncSession, rate_limiter):
    """FastAPI app with the API and pages mounted and the test DB wired in."""
    from app.api import router as api_router
    from app.api.core.exceptions import (
        RateLimitExceeded,
        http_exception_handler,
        rate_limit_exception_handler,
        validation_exception_handler,
    )
    from app.api.db.database import get_db
    from app.api.modules.v1.pages.routes.pages_route import router as pages_router

    app = FastAPI()
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "app/static")), name="static")

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.include_router(api_router)
    app.include_router(pages_router)
    app.state.rate_limiter = rate_limiter

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
