"""Tests for the record store and the key-value media behind it."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from inkpost.errors import StorageUnavailable, ValidationFailed
from inkpost.events import ChangeNotifier, Topic
from inkpost.models import Post, PostStatus, Role, User
from inkpost.storage.database import SqliteMedium, _engines
from inkpost.storage.files import JsonFileMedium
from inkpost.storage.memory import MemoryMedium
from inkpost.storage.store import POSTS_KEY, USERS_KEY, ContentStore, open_medium


def _post(**overrides) -> Post:
    fields = {"title": "Hello", "content": "Body text", "author_id": "3"}
    fields.update(overrides)
    return Post(**fields)


def _user(email: str = "new@example.com", **overrides) -> User:
    return User(email=email, name="New Author", **overrides)


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


class TestSeeding:
    """First read of an empty medium writes the built-in collections."""

    def test_empty_medium_seeds_posts_and_users(
        self, store: ContentStore, medium: MemoryMedium
    ) -> None:
        """Test that listing an absent key returns and persists the defaults."""
        posts = store.posts.list()
        users = store.users.list()

        assert [p.id for p in posts] == ["1", "2", "3", "4"]
        assert [u.email for u in users][0] == "admin@example.com"
        assert users[0].role == Role.SUPER_ADMIN
        assert medium.read(POSTS_KEY) is not None
        assert medium.read(USERS_KEY) is not None

    def test_seeding_happens_once(self, store: ContentStore) -> None:
        """Test that a deleted seed post does not come back on the next read."""
        store.posts.list()
        assert store.posts.delete("1") is True

        assert [p.id for p in store.posts.list()] == ["2", "3", "4"]

    def test_persisted_layout_uses_camel_case(
        self, store: ContentStore, medium: MemoryMedium
    ) -> None:
        """Test that stored records use the camelCase field names."""
        store.posts.list()
        first = json.loads(medium.read(POSTS_KEY))[0]

        assert first["authorId"] == "1"
        assert first["viewCount"] == 234
        assert first["isFeature"] is True
        assert "author_id" not in first

    def test_custom_seed(self, medium: MemoryMedium) -> None:
        """Test that a store can be seeded with an empty collection."""
        store = ContentStore(medium, seed_posts=list, seed_users=list)
        assert store.posts.list() == []
        assert store.users.list() == []


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


class TestRecordCollection:
    """Create, read, update and delete over one collection."""

    def test_create_assigns_id_and_round_trips(self, store: ContentStore) -> None:
        """Test that a created record reads back equal, with a fresh id."""
        created = store.posts.create(_post(tags=["a", "b"]))

        assert created.id
        assert created.id not in {"1", "2", "3", "4"}
        assert store.posts.get(created.id) == created

    def test_ids_are_unique(self, store: ContentStore) -> None:
        """Test that back-to-back creates never collide."""
        ids = {store.posts.create(_post(title=f"Post {i}")).id for i in range(20)}
        assert len(ids) == 20

    def test_posts_are_prepended(self, store: ContentStore) -> None:
        """Test that a new post comes first in storage order."""
        created = store.posts.create(_post())
        assert store.posts.list()[0].id == created.id

    def test_users_are_appended(self, store: ContentStore) -> None:
        """Test that a new user comes last in storage order."""
        created = store.users.create(_user())
        assert store.users.list()[-1].id == created.id

    def test_duplicate_email_rejected(self, store: ContentStore) -> None:
        """Test that emails are unique, ignoring case and surrounding spaces."""
        with pytest.raises(ValidationFailed, match="already registered"):
            store.users.create(_user(email=" Admin@Example.com "))

    def test_duplicate_id_rejected(self, store: ContentStore) -> None:
        """Test that a caller-supplied id that is taken is refused."""
        with pytest.raises(ValidationFailed):
            store.posts.create(_post(id="2"))

    def test_update_replaces_record_but_keeps_id(self, store: ContentStore) -> None:
        """Test that update stores the new record under the original id."""
        original = store.posts.get("2")
        replacement = original.model_copy(update={"id": "other", "title": "Renamed"})

        assert store.posts.update("2", replacement) is True
        stored = store.posts.get("2")
        assert stored.title == "Renamed"
        assert store.posts.get("other") is None

    def test_update_missing_returns_false(
        self, store: ContentStore, notifier: ChangeNotifier
    ) -> None:
        """Test that updating an unknown id writes nothing and notifies nobody."""
        before = store.posts.list()
        calls: list[Topic] = []
        notifier.subscribe(Topic.POSTS_CHANGED, calls.append)

        assert store.posts.update("missing", _post()) is False
        assert store.posts.list() == before
        assert calls == []

    def test_delete_is_permanent(self, store: ContentStore) -> None:
        """Test that a deleted record stays gone, and a second delete reports False."""
        assert store.posts.delete("3") is True
        assert store.posts.get("3") is None
        assert store.posts.delete("3") is False

    def test_mutations_publish_their_topic(
        self, store: ContentStore, notifier: ChangeNotifier
    ) -> None:
        """Test that posts and users changes reach their own subscribers."""
        seen: list[Topic] = []
        notifier.subscribe(Topic.POSTS_CHANGED, seen.append)
        notifier.subscribe(Topic.USERS_CHANGED, seen.append)

        store.posts.create(_post())
        store.users.create(_user())
        store.users.delete("4")

        assert seen == [Topic.POSTS_CHANGED, Topic.USERS_CHANGED, Topic.USERS_CHANGED]

    def test_subscriber_sees_new_state(
        self, store: ContentStore, notifier: ChangeNotifier
    ) -> None:
        """Test that the write is visible by the time handlers run."""
        counts: list[int] = []
        notifier.subscribe(Topic.POSTS_CHANGED, lambda _t: counts.append(len(store.posts.list())))

        store.posts.create(_post())
        assert counts == [5]


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


class TestUnavailableStorage:
    """Storage the host refuses to provide."""

    def test_list_raises_and_snapshot_degrades(
        self, store: ContentStore, medium: MemoryMedium
    ) -> None:
        """Test that reads raise StorageUnavailable but snapshot returns []."""
        medium.disabled = True

        with pytest.raises(StorageUnavailable):
            store.posts.list()
        assert store.posts.snapshot() == []

    def test_write_raises(self, store: ContentStore, medium: MemoryMedium) -> None:
        """Test that a mutation against disabled storage raises."""
        store.posts.list()
        medium.disabled = True
        with pytest.raises(StorageUnavailable):
            store.posts.create(_post())

    def test_corrupt_collection(self, medium: MemoryMedium) -> None:
        """Test that unreadable stored data is reported as unavailable storage."""
        medium.write(POSTS_KEY, '[{"title": "no author"}]')
        store = ContentStore(medium)

        with pytest.raises(StorageUnavailable):
            store.posts.list()
        assert store.posts.snapshot() == []


# ---------------------------------------------------------------------------
# Session marker and documents
# ---------------------------------------------------------------------------


def test_session_marker_round_trip(store: ContentStore) -> None:
    """Test that the signed-in user is stored and cleared."""
    user = store.users.get("2")
    store.write_session(user)
    assert store.read_session() == user

    store.write_session(None)
    assert store.read_session() is None


def test_unreadable_session_is_cleared(medium: MemoryMedium, store: ContentStore) -> None:
    """Test that garbage under the session key reads as signed out."""
    medium.write("currentUser", "{not json")
    assert store.read_session() is None
    assert medium.read("currentUser") is None


def test_document_round_trip(store: ContentStore) -> None:
    """Test that auxiliary documents read back, and absent ones read as None."""
    assert store.read_document("credentials") is None
    store.write_document("credentials", {"1": "x$y"})
    assert store.read_document("credentials") == {"1": "x$y"}


# ---------------------------------------------------------------------------
# External writers
# ---------------------------------------------------------------------------


class TestExternalChanges:
    """Another process writing the same medium."""

    def test_poll_detects_foreign_write(self, medium: MemoryMedium) -> None:
        """Test that a write by another store triggers STORAGE_CHANGED once."""
        notifier = ChangeNotifier()
        seen: list[Topic] = []
        notifier.subscribe(Topic.STORAGE_CHANGED, seen.append)
        mine = ContentStore(medium, notifier)
        theirs = ContentStore(medium)

        mine.posts.list()
        mine.users.list()
        assert mine.poll_external_changes() is False

        theirs.posts.create(_post())
        assert mine.poll_external_changes() is True
        assert mine.poll_external_changes() is False
        assert seen == [Topic.STORAGE_CHANGED]

    def test_own_writes_are_not_external(self, store: ContentStore) -> None:
        """Test that a store's own mutations do not count as foreign."""
        store.posts.list()
        store.users.list()
        store.posts.create(_post())
        assert store.poll_external_changes() is False


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------


class TestJsonFileMedium:
    """One JSON file per key."""

    def test_read_write_remove(self, tmp_path: Path) -> None:
        """Test the basic medium contract on disk."""
        medium = JsonFileMedium(tmp_path / "store")

        assert medium.read("posts") is None
        assert medium.version("posts") is None
        medium.write("posts", "[]")
        assert medium.read("posts") == "[]"
        assert (tmp_path / "store" / "posts.json").exists()

        medium.remove("posts")
        medium.remove("posts")
        assert medium.read("posts") is None

    def test_version_changes_on_write(self, tmp_path: Path) -> None:
        """Test that rewriting a key changes its version token."""
        medium = JsonFileMedium(tmp_path)
        medium.write("users", "[]")
        first = medium.version("users")
        medium.write("users", "[{}]")
        assert medium.version("users") != first

    def test_rejects_path_like_keys(self, tmp_path: Path) -> None:
        """Test that keys cannot escape the base directory."""
        medium = JsonFileMedium(tmp_path)
        with pytest.raises(ValueError):
            medium.read("../outside")

    def test_store_survives_reopen(self, tmp_path: Path) -> None:
        """Test that a second store over the same directory sees earlier writes."""
        created = ContentStore(JsonFileMedium(tmp_path)).posts.create(_post(title="Kept"))
        reopened = ContentStore(JsonFileMedium(tmp_path))
        assert reopened.posts.get(created.id).title == "Kept"


class TestSqliteMedium:
    """Key-value rows in a SQLite file through SQLModel."""

    def test_read_write_remove(self, tmp_path: Path) -> None:
        """Test the medium contract and revision-based version tokens."""
        _engines.clear()
        medium = SqliteMedium(tmp_path / "kv.db")

        assert medium.read("posts") is None
        assert medium.version("posts") is None
        medium.write("posts", "[]")
        first = medium.version("posts")
        medium.write("posts", "[1]")

        assert medium.read("posts") == "[1]"
        assert medium.version("posts") != first
        medium.remove("posts")
        assert medium.read("posts") is None
        _engines.clear()

    def test_store_on_sqlite(self, tmp_path: Path) -> None:
        """Test that the store works unchanged over SQLite."""
        _engines.clear()
        store = ContentStore(SqliteMedium(tmp_path / "blog.db"))
        created = store.posts.create(_post(status=PostStatus.PUBLISHED))

        assert store.posts.list()[0].id == created.id
        assert len(store.users.list()) == 4
        _engines.clear()


def test_open_medium_follows_settings(settings, tmp_path: Path) -> None:
    """Test that the backend setting selects the medium."""
    assert isinstance(open_medium(settings), MemoryMedium)

    files = settings.model_copy(update={"storage_backend": "files"})
    assert isinstance(open_medium(files), JsonFileMedium)
