"""Shared fixtures for smdecompile tests."""

from unittest.mock import AsyncMock, patch

import pytest

from smdecompile.decompile_client import OllamaDecompiler
from smdecompile.decompile_settings import DecompileSettings


@pytest.fixture
def settings():
    """Settings with two retries and a generous wall-time cap."""
    return DecompileSettings(retries=2, max_wall_time=10000)


@pytest.fixture
def decompiler(settings):
    """Decompiler whose HTTP layer is replaced by an AsyncMock."""
    client = OllamaDecompiler(settings)
    with patch.object(client, "_post", new_callable=AsyncMock) as mock_post:
        client.mock_post = mock_post
        yield client


@pytest.fixture
def mock_sleep():
    """Make backoff sleeps return immediately."""
    with patch("smdecompile.decompile_client.asyncio.sleep", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def no_jitter():
    """Remove backoff jitter."""
    with patch("smdecompile.decompile_client.random.uniform", return_value=1.0) as mock:
        yield mock
