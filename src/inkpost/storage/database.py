"""SQLite database initialization, session management and the SQLite medium."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from inkpost.errors import StorageUnavailable
from inkpost.models import utcnow
from inkpost.storage.base import KeyValueMedium

# Import models so SQLModel registers them
from inkpost.storage.models import StoredValue

_engines: dict[str, object] = {}


def get_engine(db_path: Path):
    """Get or create a SQLAlchemy engine for the given database path."""
    key = str(db_path)
    if key not in _engines:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(f"sqlite:///{db_path}", echo=False)
        SQLModel.metadata.create_all(engine)
        _engines[key] = engine
    return _engines[key]


def get_session(db_path: Path) -> Session:
    """Create a new database session."""
    engine = get_engine(db_path)
    return Session(engine)


class SqliteMedium(KeyValueMedium):
    """Key-value medium stored in the ``storedvalue`` table of a SQLite file."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        try:
            get_engine(db_path)
        except (SQLAlchemyError, OSError) as e:
            raise StorageUnavailable(f"cannot open database {db_path}: {e}") from e

    def read(self, key: str) -> str | None:
        try:
            with get_session(self.db_path) as session:
                row = session.get(StoredValue, key)
                return row.value if row else None
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"cannot read {key!r}: {e}") from e

    def write(self, key: str, value: str) -> None:
        try:
            with get_session(self.db_path) as session:
                row = session.get(StoredValue, key)
                if row is None:
                    row = StoredValue(key=key, value=value)
                else:
                    row.value = value
                    row.revision += 1
                    row.updated_at = utcnow()
                session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"cannot write {key!r}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            with get_session(self.db_path) as session:
                row = session.get(StoredValue, key)
                if row is not None:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"cannot remove {key!r}: {e}") from e

    def version(self, key: str) -> object:
        try:
            with get_session(self.db_path) as session:
                row = session.get(StoredValue, key)
                return (row.revision, row.updated_at) if row else None
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"cannot read {key!r}: {e}") from e
