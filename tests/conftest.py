from __future__ import annotations

import os

import pytest

# Test suite runs against SQLite fixtures and local storage; keep runtime mode explicit.
os.environ.setdefault("OTA_SERVER_RUNTIME_ENVIRONMENT", "test")
os.environ.setdefault("OTA_SERVER_DATABASE_URL", "sqlite:///./ota_server_test.sqlite")
os.environ.setdefault("OTA_SERVER_BASE_URL", "https://updates.example.test")
os.environ.setdefault("OTA_SERVER_APP_PK_SECRET", "test-app-pk-secret")

from apps.api.app.core.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
