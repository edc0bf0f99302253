"""
Common fixtures for all test modules.
This file contains fixtures that are shared across different test types.
"""

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient

from sdk.gemini_client import MockGeminiImageClient
from src.api.v1.services.generation_service import get_generation_service
from src.config.settings import get_settings
from src.main import app
from src.middlewares.rate_limit_middleware import rate_limiter

# Load environment variables from .env file
load_dotenv()

# A 1x1 PNG, used wherever a request needs a plausible base64 image
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


# =============================================================================
# Settings & Shared State
# =============================================================================


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """
    Gives every test a known configuration and a fresh rate-limit window.
    """
    monkeypatch.setenv("GOOGLE_API_KEY", "test-api-key")
    monkeypatch.setenv("GEMINI_MODEL", "test-image-model")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "100")
    monkeypatch.setenv("API_LOGGING_ENABLED", "true")
    get_settings.cache_clear()
    get_generation_service.cache_clear()
    rate_limiter.reset()
    yield
    get_settings.cache_clear()
    get_generation_service.cache_clear()
    rate_limiter.reset()


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_gemini_client() -> MockGeminiImageClient:
    """
    Provides a MockGeminiImageClient with zero delay and the default image reply.
    """
    return MockGeminiImageClient(response_delay=0)


@pytest.fixture
def custom_response_client():
    """
    Provides a factory for MockGeminiImageClient with custom responses.
    """

    def _create_client(responses=None, error=None):
        return MockGeminiImageClient(responses=responses, error=error, response_delay=0)

    return _create_client


@pytest.fixture
def mock_generation_service() -> MagicMock:
    """
    Fixture to mock the GenerationService using FastAPI's dependency overrides.
    """
    mock_service = MagicMock()
    mock_service.generate_image = AsyncMock()

    app.dependency_overrides[get_generation_service] = lambda: mock_service
    yield mock_service
    app.dependency_overrides.pop(get_generation_service, None)


# =============================================================================
# Test Client Fixtures
# =============================================================================


@pytest.fixture
async def unit_test_client() -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an async client bound directly to the ASGI app; no server or
    network access is involved.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c


@pytest.fixture
def png_base64() -> str:
    return PNG_BASE64

