from collections.abc import Generator
from unittest.mock import AsyncMock, Mock, patch

import pytest

from fastapi.routing import APIRoute

from api.main import app, lifespan


@pytest.fixture
def mock_settings() -> Mock:
    mock_settings = Mock()
    mock_settings.database_url = "postgres://test"
    mock_settings.db_pool_min_size = 1
    mock_settings.db_pool_max_size = 1
    mock_settings.db_command_timeout = 10.0
    mock_settings.db_connection_timeout = 10.0
    mock_settings.db_statement_cache_size = 100
    mock_settings.db_max_inactive_connection_lifetime = 300.0
    mock_settings.shutdown_timeout = 10.0
    mock_settings.llm_api_key = "test-llm-key-123"
    mock_settings.llm_base_url_str = "https://api.longcat.chat/openai/v1"
    mock_settings.llm_model = "LongCat-Flash-Chat"
    mock_settings.llm_read_timeout = 30.0
    return mock_settings


@pytest.fixture
def startup_mocks(mock_settings: Mock) -> Generator[dict[str, Mock], None, None]:
    with (
        patch("api.main.settings", mock_settings),
        patch("api.main.create_http_client") as mock_http,
        patch("api.main.create_openai_client") as mock_openai,
        patch("api.main.create_database_pool", new_callable=AsyncMock) as mock_create_db,
        patch("api.main.check_pool_health", new_callable=AsyncMock) as mock_check_health,
        patch("api.main.graceful_pool_close", new_callable=AsyncMock) as mock_close_db,
    ):
        mock_openai.return_value.close = AsyncMock()
        mock_check_health.return_value = {"healthy": True}
        yield {
            "http": mock_http,
            "openai": mock_openai,
            "create_db": mock_create_db,
            "check_health": mock_check_health,
            "close_db": mock_close_db,
        }


@pytest.mark.asyncio
async def test_lifespan_startup_and_shutdown(startup_mocks: dict[str, Mock]) -> None:
    mock_app = Mock()
    mock_app.state = Mock()
    llm_client = startup_mocks["openai"].return_value

    async with lifespan(mock_app):
        startup_mocks["http"].assert_called_once_with(read_timeout=30.0)
        startup_mocks["openai"].assert_called_once_with(
            "test-llm-key-123",
            base_url="https://api.longcat.chat/openai/v1",
            http_client=startup_mocks["http"].return_value,
        )
        startup_mocks["create_db"].assert_awaited_once()
        assert mock_app.state.db_pool == startup_mocks["create_db"].return_value
        assert mock_app.state.llm_client == llm_client

    startup_mocks["close_db"].assert_awaited_once_with(startup_mocks["create_db"].return_value, timeout=10.0)
    llm_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_lifespan_fails_when_database_unhealthy(startup_mocks: dict[str, Mock]) -> None:
    startup_mocks["check_health"].return_value = {"healthy": False}
    mock_app = Mock()
    mock_app.state = Mock()

    with pytest.raises(RuntimeError, match="Database connection failed"):
        async with lifespan(mock_app):
            pass


def test_routes_are_mounted_under_v1() -> None:
    paths = {route.path for route in app.routes if isinstance(route, APIRoute)}

    assert "/api/v1/chat" in paths
    assert "/api/v1/chats" in paths
    assert "/api/v1/chats/{chat_id}" in paths
    assert "/api/v1/auth/signup" in paths
    assert "/api/v1/auth/login" in paths
    assert "/api/v1/auth/profile" in paths
    assert "/api/v1/health" in paths
    assert "/api/v1/health/ready" in paths
    assert "/api/v1/health/live" in paths
