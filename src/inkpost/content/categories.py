"""The fixed category catalog, with post counts taken from live posts."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from inkpost.defaults import CATEGORIES
from inkpost.models import Category, Post, PostStatus


def with_live_counts(posts: Iterable[Post]) -> list[Category]:
    """Return the catalog with ``post_count`` recomputed from published posts."""
    counts = Counter(p.category for p in posts if p.status == PostStatus.PUBLISHED)
    return [c.model_copy(update={"post_count": counts.get(c.name, 0)}) for c in CATEGORIES]


def find_category(name_or_slug: str) -> Category | None:
    wanted = name_or_slug.strip().lower()
    return next(
        (c for c in CATEGORIES if c.slug == wanted or c.name.lower() == wanted),
        None,
    )
