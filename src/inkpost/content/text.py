"""Small text helpers used when posts are written."""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^\w-]")


def slugify(title: str) -> str:
    """Lowercase, whitespace runs to hyphens, other non-word characters dropped.

    Slugs are not guaranteed unique.
    """
    return _NON_SLUG.sub("", _WHITESPACE.sub("-", title.strip().lower()))


def derive_excerpt(content: str, excerpt: str | None = None, length: int = 150) -> str:
    """Return the trimmed excerpt, or the opening of the content when it is blank."""
    if excerpt and excerpt.strip():
        return excerpt.strip()
    return content.strip()[:length] + "..."


def parse_tags(raw: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Split comma-separated tags, trim them and drop empty ones."""
    if not raw:
        return []
    parts = raw.split(",") if isinstance(raw, str) else raw
    return [tag.strip() for tag in parts if tag.strip()]
