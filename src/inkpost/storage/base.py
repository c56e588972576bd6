"""Key-value medium interface backing the record store."""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueMedium(ABC):
    """Abstract base class for persistent key-value media.

    Values are serialized collections (JSON text). Implementations raise
    :class:`inkpost.errors.StorageUnavailable` for every failure of the
    underlying medium, never a backend-specific exception.
    """

    @abstractmethod
    def read(self, key: str) -> str | None:
        """
        Read the value stored under ``key``.

        Returns:
            The stored text, or None when the key has never been written
        """
        ...

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""
        ...

    @abstractmethod
    def version(self, key: str) -> object:
        """
        Return an opaque token that changes whenever ``key`` is rewritten.

        Tokens are only compared for equality. A key that was never written
        has the token None.
        """
        ...
