"""Session backends: who is signed in, behind one interface.

Two implementations exist: :class:`LocalSessionBackend` checks credentials
kept in the local store, :class:`inkpost.remote.client.RemoteBackend` asks
a hosted auth service. A deployment picks one; their credential rules are
independent.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from inkpost.auth.accounts import AccountService
from inkpost.config import Settings
from inkpost.errors import StorageUnavailable
from inkpost.log import get_logger
from inkpost.models import User
from inkpost.storage.store import ContentStore

logger = get_logger(__name__)


@runtime_checkable
class SessionBackend(Protocol):
    def sign_in(self, email: str, password: str) -> User:
        """Authenticate and start a session. Raises AuthFailed."""
        ...

    def sign_out(self) -> None:
        ...

    def get_session(self) -> User | None:
        """The user recorded when the session started, if any."""
        ...

    def get_current_user_profile(self) -> User | None:
        """A fresh copy of the signed-in user's profile, if any."""
        ...


class LocalSessionBackend:
    """Keeps the signed-in user under the ``currentUser`` key."""

    def __init__(self, store: ContentStore, accounts: AccountService) -> None:
        self._store = store
        self._accounts = accounts

    def sign_in(self, email: str, password: str) -> User:
        user = self._accounts.authenticate(email, password)
        self._store.write_session(user)
        return user

    def sign_out(self) -> None:
        self._store.write_session(None)
        logger.info("signed_out")

    def get_session(self) -> User | None:
        try:
            return self._store.read_session()
        except StorageUnavailable as e:
            logger.warning("storage_unavailable", key="currentUser", error=str(e))
            return None

    def get_current_user_profile(self) -> User | None:
        """Re-read the session user from ``users``.

        A session whose user was deleted or deactivated since sign-in is
        ended here.
        """
        session = self.get_session()
        if session is None:
            return None
        try:
            user = self._store.users.get(session.id)
        except StorageUnavailable as e:
            logger.warning("storage_unavailable", collection="users", error=str(e))
            return None
        if user is None or not user.is_active:
            logger.info("session_revoked", user_id=session.id)
            self._store.write_session(None)
            return None
        return user


def open_session_backend(settings: Settings, store: ContentStore) -> SessionBackend:
    """Build the session backend selected by ``settings.session_backend``."""
    if settings.session_backend == "remote":
        from inkpost.remote.client import RemoteBackend

        return RemoteBackend(settings.remote_url, settings.remote_api_key, store=store)
    return LocalSessionBackend(store, AccountService(store, settings))
