"""Record store: CRUD over the serialized ``users`` and ``posts`` collections.

Every operation is a read-modify-write of the whole collection. There is no
in-memory cache shared between callers; each call re-reads the medium, so
two processes writing the same key race with last-write-wins.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from inkpost.config import Settings
from inkpost.defaults import default_posts, default_users
from inkpost.errors import StorageUnavailable, ValidationFailed
from inkpost.events import ChangeNotifier, Topic
from inkpost.log import get_logger
from inkpost.models import Post, Record, User
from inkpost.storage.base import KeyValueMedium

logger = get_logger(__name__)

T = TypeVar("T", bound=Record)

POSTS_KEY = "posts"
USERS_KEY = "users"
SESSION_KEY = "currentUser"


def new_record_id() -> str:
    return uuid.uuid4().hex


class RecordCollection(Generic[T]):
    """One named collection persisted under a single medium key.

    Args:
        medium: Where the serialized collection lives.
        key: Medium key, also the collection name.
        model: Record class used to validate stored items.
        seed: Builds the default collection written on first read.
        topic: Published after every successful mutation.
        prepend: New records go first (posts) instead of last (users).
        unique: Optional secondary key that must be unique on create.
    """

    def __init__(
        self,
        medium: KeyValueMedium,
        key: str,
        model: type[T],
        *,
        seed: Callable[[], list[T]],
        notifier: ChangeNotifier,
        topic: Topic,
        prepend: bool = False,
        unique: tuple[str, Callable[[T], str]] | None = None,
    ) -> None:
        self._medium = medium
        self.key = key
        self._adapter = TypeAdapter(list[model])
        self._seed = seed
        self._notifier = notifier
        self._topic = topic
        self._prepend = prepend
        self._unique = unique
        self.seen_version: object = None

    # -- reads ---------------------------------------------------------------

    def list(self) -> list[T]:
        """Return the whole collection in storage order, seeding it if absent.

        Raises:
            StorageUnavailable: The medium failed or holds unreadable data.
        """
        raw = self._medium.read(self.key)
        if raw is None:
            records = self._seed()
            self._save(records)
            logger.info("collection_seeded", collection=self.key, count=len(records))
            return records
        try:
            records = self._adapter.validate_json(raw)
        except ValidationError as e:
            logger.error("collection_unreadable", collection=self.key, errors=e.error_count())
            raise StorageUnavailable(f"stored {self.key!r} collection is unreadable") from e
        self.seen_version = self._medium.version(self.key)
        return records

    def snapshot(self) -> list[T]:
        """Like :meth:`list` but degrades an unavailable medium to ``[]``."""
        try:
            return self.list()
        except StorageUnavailable as e:
            logger.warning("storage_unavailable", collection=self.key, error=str(e))
            return []

    def get(self, record_id: str) -> T | None:
        return next((r for r in self.list() if r.id == record_id), None)

    # -- writes --------------------------------------------------------------

    def create(self, record: T) -> T:
        """Store a new record and return it as stored.

        A record without an id gets a fresh random one. A caller-supplied id
        or unique key that is already taken raises ValidationFailed.
        """
        records = self.list()
        if not record.id:
            record = record.model_copy(update={"id": new_record_id()})
        elif any(r.id == record.id for r in records):
            raise ValidationFailed(f"A record with id {record.id} already exists")

        if self._unique is not None:
            label, key_of = self._unique
            taken = {key_of(r) for r in records}
            if key_of(record) in taken:
                raise ValidationFailed(f"That {label} is already registered")

        if self._prepend:
            records.insert(0, record)
        else:
            records.append(record)
        self._save(records)
        logger.info("record_created", collection=self.key, id=record.id)
        self._notifier.publish(self._topic)
        return record

    def update(self, record_id: str, record: T) -> bool:
        """Replace the first record with ``record_id`` by ``record``.

        The id itself never changes. Returns False, without writing, when no
        record matches.
        """
        records = self.list()
        for index, existing in enumerate(records):
            if existing.id == record_id:
                records[index] = record.model_copy(update={"id": record_id})
                break
        else:
            logger.info("record_not_found", collection=self.key, id=record_id, op="update")
            return False

        self._save(records)
        logger.info("record_updated", collection=self.key, id=record_id)
        self._notifier.publish(self._topic)
        return True

    def delete(self, record_id: str) -> bool:
        """Remove the first record with ``record_id``. Returns whether one was found."""
        records = self.list()
        for index, existing in enumerate(records):
            if existing.id == record_id:
                del records[index]
                break
        else:
            logger.info("record_not_found", collection=self.key, id=record_id, op="delete")
            return False

        self._save(records)
        logger.info("record_deleted", collection=self.key, id=record_id)
        self._notifier.publish(self._topic)
        return True

    def _save(self, records: list[T]) -> None:
        payload = json.dumps([r.to_storage() for r in records], ensure_ascii=False, indent=2)
        self._medium.write(self.key, payload)
        self.seen_version = self._medium.version(self.key)


class ContentStore:
    """Owns the ``posts`` and ``users`` collections, the session key and the notifier.

    Views and services receive a ContentStore instance; nothing reads the
    collections through module-level state.
    """

    def __init__(
        self,
        medium: KeyValueMedium,
        notifier: ChangeNotifier | None = None,
        *,
        seed_posts: Callable[[], list[Post]] = default_posts,
        seed_users: Callable[[], list[User]] = default_users,
    ) -> None:
        self.medium = medium
        self.notifier = notifier or ChangeNotifier()
        self.posts: RecordCollection[Post] = RecordCollection(
            medium,
            POSTS_KEY,
            Post,
            seed=seed_posts,
            notifier=self.notifier,
            topic=Topic.POSTS_CHANGED,
            prepend=True,
        )
        self.users: RecordCollection[User] = RecordCollection(
            medium,
            USERS_KEY,
            User,
            seed=seed_users,
            notifier=self.notifier,
            topic=Topic.USERS_CHANGED,
            unique=("email", lambda u: u.email.strip().lower()),
        )

    # -- session marker --------------------------------------------------------

    def read_session(self) -> User | None:
        raw = self.medium.read(SESSION_KEY)
        if raw is None:
            return None
        try:
            return User.model_validate_json(raw)
        except ValidationError:
            logger.warning("session_unreadable")
            self.medium.remove(SESSION_KEY)
            return None

    def write_session(self, user: User | None) -> None:
        if user is None:
            self.medium.remove(SESSION_KEY)
        else:
            self.medium.write(SESSION_KEY, json.dumps(user.to_storage(), ensure_ascii=False))

    # -- auxiliary documents -----------------------------------------------------

    def read_document(self, key: str) -> dict[str, Any] | None:
        """Read a JSON object stored under ``key``, or None when absent."""
        raw = self.medium.read(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageUnavailable(f"stored {key!r} document is unreadable") from e
        if not isinstance(data, dict):
            raise StorageUnavailable(f"stored {key!r} document is not an object")
        return data

    def write_document(self, key: str, data: dict[str, Any]) -> None:
        self.medium.write(key, json.dumps(data, ensure_ascii=False, indent=2))

    def remove_document(self, key: str) -> None:
        self.medium.remove(key)

    # -- external writers ----------------------------------------------------------

    def poll_external_changes(self) -> bool:
        """Publish STORAGE_CHANGED if another writer touched posts or users.

        Compares the medium's version tokens with the ones this store last
        read or wrote. Returns whether a change was seen.
        """
        changed = False
        for collection in (self.posts, self.users):
            try:
                current = self.medium.version(collection.key)
            except StorageUnavailable as e:
                logger.warning("storage_unavailable", collection=collection.key, error=str(e))
                continue
            if current != collection.seen_version:
                collection.seen_version = current
                changed = True
        if changed:
            logger.info("external_change_detected")
            self.notifier.publish(Topic.STORAGE_CHANGED)
        return changed


def open_medium(settings: Settings) -> KeyValueMedium:
    """Build the medium selected by ``settings.storage_backend``."""
    if settings.storage_backend == "memory":
        from inkpost.storage.memory import MemoryMedium

        return MemoryMedium()
    if settings.storage_backend == "sqlite":
        from inkpost.storage.database import SqliteMedium

        return SqliteMedium(settings.db_path)

    from inkpost.storage.files import JsonFileMedium

    return JsonFileMedium(settings.data_dir)


def open_store(settings: Settings, notifier: ChangeNotifier | None = None) -> ContentStore:
    return ContentStore(open_medium(settings), notifier)
