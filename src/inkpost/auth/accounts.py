"""Author registration, credential checks and admin account actions.

Credentials are werkzeug password hashes kept under the ``credentials`` key,
indexed by user id. The hash method comes from ``Settings.password_hash_method``.
"""

from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from inkpost.auth.policy import can_admin
from inkpost.config import Settings
from inkpost.errors import AuthFailed, PermissionDenied, ValidationFailed
from inkpost.log import get_logger
from inkpost.models import Role, User, utcnow
from inkpost.storage.store import ContentStore

logger = get_logger(__name__)

CREDENTIALS_KEY = "credentials"
DEFAULT_BIO = "New author on the platform"


@dataclass
class RegistrationForm:
    """Input of the author registration form."""

    name: str
    email: str
    password: str
    confirm_password: str
    bio: str = ""
    avatar: str = ""


class AccountService:
    """Manages user accounts on top of the ``users`` collection."""

    def __init__(self, store: ContentStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings

    # -- lookups ---------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        wanted = email.strip().lower()
        return next(
            (u for u in self._store.users.list() if u.email.strip().lower() == wanted),
            None,
        )

    # -- registration and login ---------------------------------------------------

    def register(self, form: RegistrationForm) -> User:
        """Create an author account.

        Raises:
            ValidationFailed: With a message the user can act on.
        """
        name, email = form.name.strip(), form.email.strip()
        if not name or not email or not form.password:
            raise ValidationFailed("All fields are required")
        if "@" not in email:
            raise ValidationFailed("Enter a valid email address")
        if form.password != form.confirm_password:
            raise ValidationFailed("Passwords do not match")
        minimum = self._settings.min_password_length
        if len(form.password) < minimum:
            raise ValidationFailed(f"Password must be at least {minimum} characters")

        user = self._store.users.create(
            User(
                email=email,
                name=name,
                role=Role.AUTHOR,
                bio=form.bio.strip() or DEFAULT_BIO,
                avatar=form.avatar.strip() or None,
                joined_at=utcnow(),
                is_active=True,
            )
        )
        credentials = self._credentials()
        credentials[user.id] = self._hash(form.password)
        self._store.write_document(CREDENTIALS_KEY, credentials)
        logger.info("user_registered", user_id=user.id)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the active user owning these credentials.

        Raises:
            AuthFailed: For an unknown email, a wrong password or an
                inactive account alike.
        """
        user = self.find_by_email(email)
        if user is None:
            logger.info("login_failed", reason="unknown_email")
            raise AuthFailed()
        stored = self._credentials().get(user.id)
        if not stored or not check_password_hash(stored, password):
            logger.info("login_failed", reason="bad_password", user_id=user.id)
            raise AuthFailed()
        if not user.is_active:
            logger.info("login_failed", reason="inactive", user_id=user.id)
            raise AuthFailed()
        logger.info("login_succeeded", user_id=user.id)
        return user

    # -- profile and admin actions ------------------------------------------------

    def update_profile(
        self,
        actor: User | None,
        user_id: str,
        *,
        name: str | None = None,
        bio: str | None = None,
        avatar: str | None = None,
    ) -> User | None:
        """Edit name, bio or avatar. Users edit themselves; admins edit anyone."""
        if actor is None or (actor.id != user_id and not can_admin(actor)):
            raise PermissionDenied("You can only edit your own profile")
        user = self._store.users.get(user_id)
        if user is None:
            return None
        changes: dict[str, object] = {}
        if name is not None:
            if not name.strip():
                raise ValidationFailed("Name cannot be empty")
            changes["name"] = name.strip()
        if bio is not None:
            changes["bio"] = bio.strip() or None
        if avatar is not None:
            changes["avatar"] = avatar.strip() or None
        updated = user.model_copy(update=changes)
        return updated if self._store.users.update(user_id, updated) else None

    def change_role(self, actor: User | None, user_id: str, role: Role) -> bool:
        self._require_admin(actor)
        user = self._store.users.get(user_id)
        if user is None:
            return False
        return self._store.users.update(user_id, user.model_copy(update={"role": Role(role)}))

    def set_active(self, actor: User | None, user_id: str, active: bool) -> bool:
        self._require_admin(actor)
        user = self._store.users.get(user_id)
        if user is None:
            return False
        return self._store.users.update(user_id, user.model_copy(update={"is_active": active}))

    def delete_user(self, actor: User | None, user_id: str) -> bool:
        """Hard-delete an account and its credentials."""
        self._require_admin(actor)
        if actor.id == user_id:
            raise ValidationFailed("You cannot delete your own account")
        if not self._store.users.delete(user_id):
            return False
        credentials = self._credentials()
        if credentials.pop(user_id, None) is not None:
            self._store.write_document(CREDENTIALS_KEY, credentials)
        return True

    # -- internals -------------------------------------------------------------------

    def _hash(self, password: str) -> str:
        return generate_password_hash(password, method=self._settings.password_hash_method)

    def _require_admin(self, actor: User | None) -> None:
        if not can_admin(actor):
            raise PermissionDenied("Only administrators can manage accounts")

    def _credentials(self) -> dict[str, str]:
        """Read the credential table, seeding the default accounts on first use."""
        credentials = self._store.read_document(CREDENTIALS_KEY)
        if credentials is None:
            credentials = {
                u.id: self._hash(self._settings.seed_password) for u in self._store.users.list()
            }
            self._store.write_document(CREDENTIALS_KEY, credentials)
            logger.info("credentials_seeded", count=len(credentials))
        return credentials
