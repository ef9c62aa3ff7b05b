import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test database URL before importing app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def service():
    """An in-process service with the built-in agents and an in-memory store."""
    from conveyor_ai.agent_core.factory import build_conveyor_service

    return build_conveyor_service()


@pytest_asyncio.fixture(name="client")
async def client_fixture(service) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app with the service dependency overridden."""
    from conveyor_ai.server.main import app
    from conveyor_ai.server.services.orchestrator import get_orchestrator

    app.dependency_overrides[get_orchestrator] = lambda: service

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    await service.review.drain()
    app.dependency_overrides.clear()
