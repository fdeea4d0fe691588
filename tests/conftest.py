from __future__ import annotations

import pytest

from halalmap.api import deps
from halalmap.catalog.loader import load_catalog
from halalmap.config.settings import get_settings

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def settings(monkeypatch, tmp_path):
    """Settings pointing at a throwaway SQLite file (cached singletons rebuilt around the test)."""
    monkeypatch.setenv("HALALMAP_DATABASE_URL", f"sqlite:///{tmp_path / 'halalmap.db'}")
    monkeypatch.setenv("HALALMAP_ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.delenv("HALALMAP_STORAGE_BACKEND", raising=False)
    monkeypatch.delenv("HALALMAP_CONFIG_PATH", raising=False)
    get_settings.cache_clear()
    deps.reset_caches()
    yield get_settings()
    deps.reset_caches()
    get_settings.cache_clear()


@pytest.fixture
def repo(settings):
    """The process-wide repository, with the bundled catalog imported."""
    deps.get_database().create_all()
    repository = deps.get_repository()
    repository.bulk_create(load_catalog(settings.catalog.path))
    return repository
