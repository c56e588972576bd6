"""Writing, editing and listing posts on top of the record store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from inkpost.auth.policy import can_admin, can_edit, can_moderate
from inkpost.content.text import derive_excerpt, parse_tags, slugify
from inkpost.errors import PermissionDenied, ValidationFailed
from inkpost.log import get_logger
from inkpost.models import Post, PostStatus, User, utcnow
from inkpost.storage.store import ContentStore

logger = get_logger(__name__)

ALL_CATEGORIES = "all"
UNKNOWN_AUTHOR = "Unknown author"


@dataclass
class PostDraft:
    """What the editor form submits."""

    title: str
    content: str
    excerpt: str = ""
    featured_image: str = ""
    category: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass
class DashboardStats:
    total: int
    drafts: int
    published: int
    views: int


def _touch_time(post: Post) -> datetime:
    """Now, but never earlier than the post's creation time."""
    now = utcnow()
    if post.created_at.tzinfo is not None and now < post.created_at:
        return post.created_at
    return now


class PostService:
    """Post operations used by the blog list, post page, editor and dashboard."""

    def __init__(self, store: ContentStore, *, excerpt_length: int = 150) -> None:
        self._store = store
        self._excerpt_length = excerpt_length

    # -- writing ---------------------------------------------------------------

    def publish_draft(self, author: User | None, draft: PostDraft) -> Post:
        """Create a post from the editor form. New posts are always published."""
        if author is None:
            raise PermissionDenied("Sign in to write posts")
        title, content = self._validated(draft)

        now = utcnow()
        post = Post(
            title=title,
            content=content,
            excerpt=derive_excerpt(draft.content, draft.excerpt, self._excerpt_length),
            slug=slugify(title),
            author_id=author.id,
            category=draft.category,
            tags=parse_tags(draft.tags),
            status=PostStatus.PUBLISHED,
            featured_image=draft.featured_image.strip() or None,
            published_at=now,
            created_at=now,
            updated_at=now,
            view_count=0,
            is_feature=False,
        )
        stored = self._store.posts.create(post)
        logger.info("post_published", post_id=stored.id, author_id=author.id)
        return stored

    def edit(self, actor: User | None, post_id: str, draft: PostDraft) -> bool:
        """Apply the editor form to an existing post.

        Only title, content, excerpt, image, category and tags change, plus
        ``updated_at``; the slug, author, status, counters and timestamps
        are carried over. Editors and admins may edit any post, other users
        the posts listed on their dashboard (their own).

        Returns False when the post does not exist.
        """
        post = self._store.posts.get(post_id)
        if post is None:
            return False
        if not (can_edit(actor, post_id) or (actor is not None and post.author_id == actor.id)):
            raise PermissionDenied("You cannot edit this post")
        title, content = self._validated(draft)

        updated = post.model_copy(
            update={
                "title": title,
                "content": content,
                "excerpt": derive_excerpt(draft.content, draft.excerpt, self._excerpt_length),
                "featured_image": draft.featured_image.strip() or None,
                "category": draft.category,
                "tags": parse_tags(draft.tags),
                "updated_at": _touch_time(post),
            }
        )
        return self._store.posts.update(post_id, updated)

    def delete(self, actor: User | None, post_id: str) -> bool:
        if not can_admin(actor):
            raise PermissionDenied("Only administrators can delete posts")
        return self._store.posts.delete(post_id)

    def record_view(self, post_id: str) -> bool:
        post = self._store.posts.get(post_id)
        if post is None:
            return False
        return self._store.posts.update(
            post_id, post.model_copy(update={"view_count": post.view_count + 1})
        )

    # -- reading -------------------------------------------------------------------

    def get(self, post_id: str) -> Post | None:
        return next((p for p in self._store.posts.snapshot() if p.id == post_id), None)

    def published(self) -> list[Post]:
        return [p for p in self._store.posts.snapshot() if p.status == PostStatus.PUBLISHED]

    def featured(self) -> list[Post]:
        return [p for p in self.published() if p.is_feature]

    def regular(self, category: str = ALL_CATEGORIES, search: str = "") -> list[Post]:
        """Published, non-featured posts filtered by category and search text.

        The search is a case-insensitive substring match on title or excerpt.
        """
        needle = search.strip().lower()
        return [
            p
            for p in self.published()
            if not p.is_feature
            and (category == ALL_CATEGORIES or p.category == category)
            and (needle in p.title.lower() or needle in p.excerpt.lower())
        ]

    def dashboard_posts(self, user: User | None) -> list[Post]:
        """Editors and admins see every post, everyone else their own."""
        if user is None:
            return []
        posts = self._store.posts.snapshot()
        if can_moderate(user):
            return posts
        return [p for p in posts if p.author_id == user.id]

    def dashboard_stats(self, user: User | None) -> DashboardStats:
        posts = self.dashboard_posts(user)
        return DashboardStats(
            total=len(posts),
            drafts=sum(1 for p in posts if p.status == PostStatus.DRAFT),
            published=sum(1 for p in posts if p.status == PostStatus.PUBLISHED),
            views=sum(p.view_count for p in posts),
        )

    def author_name(self, author_id: str) -> str:
        author = next((u for u in self._store.users.snapshot() if u.id == author_id), None)
        return author.name if author else UNKNOWN_AUTHOR

    @staticmethod
    def _validated(draft: PostDraft) -> tuple[str, str]:
        title, content = draft.title.strip(), draft.content.strip()
        if not title or not content:
            raise ValidationFailed("Title and content are required")
        return title, content
