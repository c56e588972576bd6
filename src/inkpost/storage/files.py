"""Local filesystem key-value medium: one JSON file per key."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from inkpost.errors import StorageUnavailable
from inkpost.log import get_logger
from inkpost.storage.base import KeyValueMedium

logger = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class JsonFileMedium(KeyValueMedium):
    """
    Stores each key as ``<base_path>/<key>.json``.

    Writes go to a temporary file in the same directory and are moved into
    place, so a reader never sees a half-written collection. Two processes
    writing the same key race with last-write-wins.
    """

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path).resolve()
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"cannot create {self.base_path}: {e}") from e
        logger.debug("file_medium_initialized", base_path=str(self.base_path))

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.base_path / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailable(f"cannot read {path}: {e}") from e

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.base_path, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageUnavailable(f"cannot write {path}: {e}") from e
        logger.debug("file_written", path=str(path), size=len(value))

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"cannot remove {path}: {e}") from e

    def version(self, key: str) -> object:
        path = self._path(key)
        try:
            stat = path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailable(f"cannot stat {path}: {e}") from e
        return (stat.st_mtime_ns, stat.st_size, stat.st_ino)
