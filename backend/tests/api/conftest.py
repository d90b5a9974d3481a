"""API-specific test fixtures.

The app under test is assembled like create_app() minus the lifespan, with
every collaborator swapped through dependency_overrides: in-memory datastore,
fakeredis-backed pay sessions, fake token issuer and a mocked object store.
Requests go through httpx.AsyncClient on the pytest-asyncio loop so the
fakes share one event loop with the test.
"""

import httpx
import pytest
from fastapi import FastAPI

from app.api import dependencies
from app.api.routes import api_router
from app.core.auth import ClerkUser, require_auth
from app.main import register_exception_handlers
from app.middleware.correlation import setup_correlation_middleware


@pytest.fixture
def api_app(datastore, pay_session_store, token_issuer, storage) -> FastAPI:
    app = FastAPI(title="QuickSite - Test Client")
    setup_correlation_middleware(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    app.dependency_overrides[dependencies.get_datastore] = lambda: datastore
    app.dependency_overrides[dependencies.get_pay_session_store] = lambda: pay_session_store
    app.dependency_overrides[dependencies.get_token_issuer] = lambda: token_issuer
    app.dependency_overrides[dependencies.get_object_storage] = lambda: storage
    return app


@pytest.fixture
async def anon_client(api_app):
    """Client with no credentials: require_auth runs for real and rejects."""
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def client(api_app):
    """Client authenticated as uid ``u1``."""
    api_app.dependency_overrides[require_auth] = lambda: ClerkUser(user_id="u1", claims={"sub": "u1"})
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
