"""Pytest configuration and fixtures for taskflow.

HTTP tests run app.main:app over ASGI against the in-memory document store.
ASGITransport does not run lifespan, so the client fixture enters it
itself: every test starts with an empty store (shutdown drops the client)
and a bootstrap admin.
"""

import os

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-password-123"

os.environ["DATABASE_BACKEND"] = "memory"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = ADMIN_EMAIL
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = ADMIN_PASSWORD

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from app.core.limiter import limiter, reset_portal_failures  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client against the FastAPI app, inside its lifespan."""
    limiter.reset()
    reset_portal_failures()
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


@pytest.fixture
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    """Log in as the bootstrap admin and return the Authorization header."""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
