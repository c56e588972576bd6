"""Role to capability predicates. Every predicate is False without a user."""

from __future__ import annotations

from inkpost.models import Role, User

_EDITORIAL = frozenset({Role.SUPER_ADMIN, Role.EDITOR})


def can_edit(user: User | None, post_id: str | None = None) -> bool:
    """Whether ``user`` may edit posts.

    ``post_id`` is accepted but authorship is not checked: editors and
    admins may edit any post, and authors get no per-post edit right.
    """
    return user is not None and user.role in _EDITORIAL


def can_moderate(user: User | None) -> bool:
    return user is not None and user.role in _EDITORIAL


def can_admin(user: User | None) -> bool:
    return user is not None and user.role == Role.SUPER_ADMIN


def capabilities(user: User | None) -> frozenset[str]:
    """Names of the capabilities ``user`` holds, for display."""
    checks = {"edit": can_edit, "moderate": can_moderate, "admin": can_admin}
    return frozenset(name for name, check in checks.items() if check(user))
