"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from inkpost.auth.accounts import AccountService
from inkpost.auth.session import LocalSessionBackend
from inkpost.config import Settings
from inkpost.content.posts import PostService
from inkpost.events import ChangeNotifier
from inkpost.models import User
from inkpost.storage.memory import MemoryMedium
from inkpost.storage.store import ContentStore


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Create test settings with temporary paths."""
    return Settings(
        storage_backend="memory",
        data_dir=tmp_path / "store",
        db_path=tmp_path / "test.db",
        export_dir=tmp_path / "site",
        seed_password="changeme",
        min_password_length=6,
        password_hash_method="pbkdf2:sha256:1000",
        log_level="WARNING",
    )


@pytest.fixture
def medium() -> MemoryMedium:
    return MemoryMedium()


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def store(medium: MemoryMedium, notifier: ChangeNotifier) -> ContentStore:
    """A store over an empty in-memory medium (seeded on first read)."""
    return ContentStore(medium, notifier)


@pytest.fixture
def accounts(store: ContentStore, settings: Settings) -> AccountService:
    return AccountService(store, settings)


@pytest.fixture
def sessions(store: ContentStore, accounts: AccountService) -> LocalSessionBackend:
    return LocalSessionBackend(store, accounts)


@pytest.fixture
def posts(store: ContentStore) -> PostService:
    return PostService(store)


def user_by_id(store: ContentStore, user_id: str) -> User:
    """Fetch a seeded user, failing loudly if it is missing."""
    user = store.users.get(user_id)
    assert user is not None
    return user
