"""Process-local key-value medium."""

from __future__ import annotations

from inkpost.errors import StorageUnavailable
from inkpost.storage.base import KeyValueMedium


class MemoryMedium(KeyValueMedium):
    """Dict-backed medium. Nothing survives the process.

    ``disabled`` emulates storage the host refuses to provide: every call
    raises :class:`StorageUnavailable` while it is set.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._versions: dict[str, int] = {}
        self.disabled = False

    def _check(self) -> None:
        if self.disabled:
            raise StorageUnavailable("in-memory storage is disabled")

    def read(self, key: str) -> str | None:
        self._check()
        return self._values.get(key)

    def write(self, key: str, value: str) -> None:
        self._check()
        self._values[key] = value
        self._versions[key] = self._versions.get(key, 0) + 1

    def remove(self, key: str) -> None:
        self._check()
        if self._values.pop(key, None) is not None:
            self._versions[key] = self._versions.get(key, 0) + 1

    def version(self, key: str) -> object:
        self._check()
        return self._versions.get(key)
