"""Tests for registration, login and account administration."""

from __future__ import annotations

import pytest
from werkzeug.security import check_password_hash

from inkpost.auth.accounts import CREDENTIALS_KEY, DEFAULT_BIO, AccountService, RegistrationForm
from inkpost.auth.session import LocalSessionBackend
from inkpost.errors import AuthFailed, PermissionDenied, ValidationFailed
from inkpost.models import Role
from inkpost.storage.store import ContentStore
from tests.conftest import user_by_id


def _form(**overrides) -> RegistrationForm:
    fields = {
        "name": "Jelena Markovic",
        "email": "jelena@example.com",
        "password": "secret1",
        "confirm_password": "secret1",
    }
    fields.update(overrides)
    return RegistrationForm(**fields)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegistration:
    """Author self-registration."""

    def test_register_creates_author(self, accounts: AccountService, store: ContentStore) -> None:
        """Test that a valid form creates an active author with a default bio."""
        user = accounts.register(_form(name="  Jelena Markovic "))

        assert user.role == Role.AUTHOR
        assert user.is_active is True
        assert user.name == "Jelena Markovic"
        assert user.bio == DEFAULT_BIO
        assert store.users.list()[-1].id == user.id

    def test_registered_user_can_sign_in(self, accounts: AccountService) -> None:
        user = accounts.register(_form())
        assert accounts.authenticate("jelena@example.com", "secret1").id == user.id

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"name": " "}, "All fields are required"),
            ({"email": ""}, "All fields are required"),
            ({"password": "", "confirm_password": ""}, "All fields are required"),
            ({"email": "not-an-email"}, "Enter a valid email address"),
            ({"confirm_password": "secret2"}, "Passwords do not match"),
            ({"password": "abc", "confirm_password": "abc"}, "at least 6 characters"),
        ],
    )
    def test_invalid_forms(
        self, accounts: AccountService, store: ContentStore, overrides: dict, message: str
    ) -> None:
        """Test that each invalid form is refused with its message and nothing is stored."""
        with pytest.raises(ValidationFailed, match=message):
            accounts.register(_form(**overrides))
        assert len(store.users.list()) == 4

    def test_duplicate_email(self, accounts: AccountService) -> None:
        with pytest.raises(ValidationFailed, match="already registered"):
            accounts.register(_form(email="marko.petrovic@example.com"))


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestAuthenticate:
    """Credential checks against the seeded accounts."""

    def test_seeded_accounts_use_seed_password(self, accounts: AccountService) -> None:
        user = accounts.authenticate("admin@example.com", "changeme")
        assert user.id == "1"

    def test_email_is_case_insensitive(self, accounts: AccountService) -> None:
        assert accounts.authenticate("  ADMIN@example.com", "changeme").id == "1"

    def test_failures_share_one_message(
        self, accounts: AccountService, store: ContentStore
    ) -> None:
        """Test that unknown email, wrong password and inactive account look alike."""
        admin = user_by_id(store, "1")
        accounts.set_active(admin, "3", False)

        messages = set()
        for email, password in [
            ("nobody@example.com", "changeme"),
            ("admin@example.com", "wrong"),
            ("ana.jovanovic@example.com", "changeme"),
        ]:
            with pytest.raises(AuthFailed) as exc_info:
                accounts.authenticate(email, password)
            messages.add(str(exc_info.value))

        assert messages == {"Invalid email or password"}

    def test_credentials_are_persisted(
        self, accounts: AccountService, store: ContentStore
    ) -> None:
        """Test that the credential table is written, hashed, on first use."""
        accounts.authenticate("admin@example.com", "changeme")
        table = store.read_document(CREDENTIALS_KEY)

        assert set(table) == {"1", "2", "3", "4"}
        assert "changeme" not in table["1"]
        assert table["1"].startswith("pbkdf2:sha256:1000$")
        assert check_password_hash(table["1"], "changeme")
        assert table["1"] != table["2"]


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


class TestAdministration:
    """Admin-only account actions."""

    def test_change_role(self, accounts: AccountService, store: ContentStore) -> None:
        admin = user_by_id(store, "1")
        assert accounts.change_role(admin, "3", Role.EDITOR) is True
        assert user_by_id(store, "3").role == Role.EDITOR

    def test_change_role_unknown_user(self, accounts: AccountService, store: ContentStore) -> None:
        assert accounts.change_role(user_by_id(store, "1"), "missing", Role.EDITOR) is False

    def test_non_admins_are_refused(self, accounts: AccountService, store: ContentStore) -> None:
        """Test that editors cannot change roles, activation or delete accounts."""
        editor = user_by_id(store, "2")
        with pytest.raises(PermissionDenied):
            accounts.change_role(editor, "3", Role.EDITOR)
        with pytest.raises(PermissionDenied):
            accounts.set_active(editor, "3", False)
        with pytest.raises(PermissionDenied):
            accounts.delete_user(editor, "3")
        with pytest.raises(PermissionDenied):
            accounts.delete_user(None, "3")

    def test_delete_user_removes_credentials(
        self, accounts: AccountService, store: ContentStore
    ) -> None:
        admin = user_by_id(store, "1")
        accounts.authenticate("milos.nikolic@example.com", "changeme")

        assert accounts.delete_user(admin, "4") is True
        assert store.users.get("4") is None
        assert "4" not in store.read_document(CREDENTIALS_KEY)
        with pytest.raises(AuthFailed):
            accounts.authenticate("milos.nikolic@example.com", "changeme")

    def test_admin_cannot_delete_self(self, accounts: AccountService, store: ContentStore) -> None:
        with pytest.raises(ValidationFailed):
            accounts.delete_user(user_by_id(store, "1"), "1")


class TestProfile:
    """Profile edits."""

    def test_user_edits_own_profile(self, accounts: AccountService, store: ContentStore) -> None:
        author = user_by_id(store, "3")
        updated = accounts.update_profile(author, "3", name="Ana J.", bio="  ")

        assert updated.name == "Ana J."
        assert updated.bio is None
        assert user_by_id(store, "3").name == "Ana J."

    def test_cannot_edit_someone_else(self, accounts: AccountService, store: ContentStore) -> None:
        with pytest.raises(PermissionDenied):
            accounts.update_profile(user_by_id(store, "3"), "4", name="X")

    def test_admin_edits_anyone(self, accounts: AccountService, store: ContentStore) -> None:
        updated = accounts.update_profile(user_by_id(store, "1"), "4", avatar="https://a/b.png")
        assert updated.avatar == "https://a/b.png"

    def test_empty_name_rejected(self, accounts: AccountService, store: ContentStore) -> None:
        with pytest.raises(ValidationFailed):
            accounts.update_profile(user_by_id(store, "3"), "3", name=" ")


# ---------------------------------------------------------------------------
# Local session backend
# ---------------------------------------------------------------------------


class TestLocalSession:
    """Signing in and out against the local store."""

    def test_sign_in_and_out(self, sessions: LocalSessionBackend) -> None:
        user = sessions.sign_in("marko.petrovic@example.com", "changeme")

        assert sessions.get_session().id == user.id
        assert sessions.get_current_user_profile().id == user.id

        sessions.sign_out()
        assert sessions.get_session() is None
        assert sessions.get_current_user_profile() is None

    def test_failed_sign_in_keeps_no_session(self, sessions: LocalSessionBackend) -> None:
        with pytest.raises(AuthFailed):
            sessions.sign_in("marko.petrovic@example.com", "nope")
        assert sessions.get_session() is None

    def test_profile_is_fresh(
        self, sessions: LocalSessionBackend, accounts: AccountService, store: ContentStore
    ) -> None:
        """Test that the current profile reflects changes made after sign-in."""
        sessions.sign_in("ana.jovanovic@example.com", "changeme")
        accounts.change_role(user_by_id(store, "1"), "3", Role.EDITOR)

        assert sessions.get_session().role == Role.AUTHOR
        assert sessions.get_current_user_profile().role == Role.EDITOR

    def test_deactivated_user_is_signed_out(
        self, sessions: LocalSessionBackend, accounts: AccountService, store: ContentStore
    ) -> None:
        sessions.sign_in("ana.jovanovic@example.com", "changeme")
        accounts.set_active(user_by_id(store, "1"), "3", False)

        assert sessions.get_current_user_profile() is None
        assert sessions.get_session() is None

    def test_unavailable_storage_reads_as_signed_out(
        self, sessions: LocalSessionBackend, medium
    ) -> None:
        sessions.sign_in("ana.jovanovic@example.com", "changeme")
        medium.disabled = True
        assert sessions.get_session() is None
        assert sessions.get_current_user_profile() is None
