"""Shared pytest fixtures for all tests."""

import pytest
from fastapi.testclient import TestClient

from cli.config import Config
from gateway.cache import ResolutionCache
from gateway.config import GatewaySettings
from gateway.main import create_app
from upstream_stub import HELPER_BASE_URL, FakeClock, UpstreamStub


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def upstream():
    """Helper API and file host stub; pass upstream.transport to httpx clients."""
    return UpstreamStub()


@pytest.fixture
def settings():
    return GatewaySettings(
        upstream_base_url=HELPER_BASE_URL,
        upstream_timeout=5,
        cache_ttl=300,
        cache_max_entries=16,
        stream_chunk_size=4,
    )


@pytest.fixture
def cache(fake_clock, settings):
    return ResolutionCache(
        ttl_seconds=settings.cache_ttl,
        max_entries=settings.cache_max_entries,
        clock=fake_clock,
    )


@pytest.fixture
def app(settings, upstream, cache):
    """Gateway application wired to the upstream stub."""
    return create_app(settings, transport=upstream.transport, cache=cache)


@pytest.fixture
def client(app):
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .sharefetch directory
    """
    config_dir = tmp_path / '.sharefetch'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir, tmp_path):
    """
    Create temporary config instance downloading into tmp_path.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    config = Config(temp_config_dir / 'config.json')
    config.data['download_dir'] = str(tmp_path / 'downloads')
    config.data['max_retries'] = 0
    return config
