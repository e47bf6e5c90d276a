"""
Shared pytest fixtures and configuration for the dropbin test suite.

This module provides:
- Hypothesis configuration for property-based testing
- Store, service and app fixtures wired to a controllable clock
- Automatic markers based on test location
"""

import io

import pytest
from hypothesis import HealthCheck, Phase, settings

from app_factory import AppConfig, create_app
from dropbin.application.content_service import ContentService
from dropbin.application.expiration_reaper import ExpirationReaper
from dropbin.config.store_config import StoreConfig
from dropbin.infrastructure.local_blob_store import LocalBlobStore
from dropbin.infrastructure.memory_metadata_store import InMemoryMetadataStore
from tests.fixtures.clock import FakeClock

# Register Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.load_profile("default")


# =============================================================================
# Store and Service Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock frozen at 2024-01-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def metadata_store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(str(tmp_path / "blobs"))


@pytest.fixture
def content_service(metadata_store, blob_store, clock) -> ContentService:
    return ContentService(
        metadata_store,
        blob_store,
        max_file_bytes=1024 * 1024,
        max_paste_bytes=64 * 1024,
        clock=clock,
    )


@pytest.fixture
def reaper(metadata_store, blob_store, clock) -> ExpirationReaper:
    return ExpirationReaper(metadata_store, blob_store, clock=clock)


@pytest.fixture
def upload():
    """Factory for in-memory upload streams."""

    def _make(data: bytes = b"hello world") -> io.BytesIO:
        return io.BytesIO(data)

    return _make


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def store_config(tmp_path) -> StoreConfig:
    """In-memory metadata, blobs under tmp_path, no background reaper."""
    return StoreConfig(
        metadata_backend="memory",
        blob_storage_dir=str(tmp_path / "app-blobs"),
        max_file_bytes=256 * 1024,
        max_paste_bytes=16 * 1024,
        reaper_mode="off",
    )


@pytest.fixture
def app(store_config, clock):
    """Flask app with the memory backend and a controllable clock."""
    flask_app = create_app(AppConfig(store=store_config))
    flask_app.config["TESTING"] = True
    flask_app.content_service.clock = clock
    flask_app.container.resolve(ExpirationReaper).clock = clock
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


# =============================================================================
# Pytest Configuration Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (require external services)"
    )
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    - tests/unit/* -> @pytest.mark.unit
    - tests/integration/* -> @pytest.mark.integration
    - tests/property/* -> @pytest.mark.property
    """
    for item in items:
        test_path = str(item.fspath)

        if "/unit/" in test_path or "\\unit\\" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path or "\\integration\\" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/property/" in test_path or "\\property\\" in test_path:
            item.add_marker(pytest.mark.property)
