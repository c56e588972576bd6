"""Built-in collections written to an empty store on first read."""

from __future__ import annotations

from datetime import datetime, timezone

from inkpost.models import Category, Post, PostStatus, Role, User

_AVATAR = "https://images.pexels.com/photos/{}/pexels-photo-{}.jpeg?auto=compress&cs=tinysrgb&w=150&h=150&dpr=1"
_COVER = "https://images.pexels.com/photos/{}/pexels-photo-{}.jpeg?auto=compress&cs=tinysrgb&w=800&h=400&dpr=1"


def _at(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def default_users() -> list[User]:
    """Seed accounts, one per role that writes or moderates."""
    return [
        User(
            id="1",
            email="admin@example.com",
            name="Nenad Djoric",
            role=Role.SUPER_ADMIN,
            avatar=_AVATAR.format(2379004, 2379004),
            bio="Platform administrator, writer and editor.",
            joined_at=_at("2024-01-01T00:00:00"),
        ),
        User(
            id="2",
            email="marko.petrovic@example.com",
            name="Marko Petrovic",
            role=Role.EDITOR,
            avatar=_AVATAR.format(1681010, 1681010),
            bio="Editor in chief, covering literature and culture.",
            joined_at=_at("2024-01-15T00:00:00"),
        ),
        User(
            id="3",
            email="ana.jovanovic@example.com",
            name="Ana Jovanovic",
            role=Role.AUTHOR,
            avatar=_AVATAR.format(1542085, 1542085),
            bio="Writes about technology and science.",
            joined_at=_at("2024-02-01T00:00:00"),
        ),
        User(
            id="4",
            email="milos.nikolic@example.com",
            name="Milos Nikolic",
            role=Role.AUTHOR,
            avatar=_AVATAR.format(1043471, 1043471),
            bio="Writer and researcher of regional tradition.",
            joined_at=_at("2024-02-15T00:00:00"),
        ),
    ]


def default_posts() -> list[Post]:
    """Seed posts, most recently created first."""
    return [
        Post(
            id="1",
            title="The digital transformation of Serbian literature",
            content=(
                "In the digital age, Serbian literature is going through real change. "
                "Writers are turning to new media and platforms to share their work.\n\n"
                "E-books are more popular than ever, letting authors reach readers "
                "**without intermediaries**.\n\n"
                "### Challenges and opportunities\n\n"
                "The main challenge is adapting to the new environment while keeping "
                "the *quality* and authenticity of the work."
            ),
            excerpt="How the digital revolution is reshaping Serbian literature and publishing.",
            slug="the-digital-transformation-of-serbian-literature",
            author_id="1",
            category="Literature",
            tags=["digitization", "literature", "technology"],
            status=PostStatus.PUBLISHED,
            featured_image=_COVER.format(159711, 159711),
            published_at=_at("2024-12-20T10:00:00"),
            created_at=_at("2024-12-19T15:30:00"),
            updated_at=_at("2024-12-20T09:45:00"),
            view_count=234,
            is_feature=True,
        ),
        Post(
            id="2",
            title="Trends in contemporary Serbian poetry",
            content=(
                "Contemporary poetry is in a period of intense experimentation.\n\n"
                "## Main characteristics\n\n"
                "- freer choice of themes and forms\n"
                "- urban subjects and everyday experience\n"
                "- openness to mixed styles\n\n"
                "> Poetry is becoming accessible to a wider audience."
            ),
            excerpt="An overview of current movements in contemporary Serbian poetry.",
            slug="trends-in-contemporary-serbian-poetry",
            author_id="2",
            category="Literature",
            tags=["poetry", "contemporary literature", "trends"],
            status=PostStatus.PUBLISHED,
            featured_image=_COVER.format(261763, 261763),
            published_at=_at("2024-12-19T14:00:00"),
            created_at=_at("2024-12-18T11:20:00"),
            updated_at=_at("2024-12-19T13:45:00"),
            view_count=156,
        ),
        Post(
            id="3",
            title="Artificial intelligence and the future of writing",
            content=(
                "Text generation tools keep getting more sophisticated, which raises "
                "questions about the role of the author.\n\n"
                "### New possibilities\n\n"
                "AI tools can help writers with research, planning and editing. "
                "Read more in [our technology section](https://example.com/technology)."
            ),
            excerpt="On the influence of artificial intelligence on writing and creating content.",
            slug="artificial-intelligence-and-the-future-of-writing",
            author_id="3",
            category="Technology",
            tags=["artificial intelligence", "writing", "future"],
            status=PostStatus.PUBLISHED,
            featured_image=_COVER.format(8386440, 8386440),
            published_at=_at("2024-12-18T16:30:00"),
            created_at=_at("2024-12-17T09:15:00"),
            updated_at=_at("2024-12-18T16:00:00"),
            view_count=189,
            is_feature=True,
        ),
        Post(
            id="4",
            title="Cultural events in the digital age",
            content=(
                "Virtual festivals, online exhibitions and streamed concerts have become "
                "part of cultural life.\n\n"
                "### Benefits of going digital\n\n"
                "The digital format makes cultural content more accessible and widens "
                "the audience."
            ),
            excerpt="How digital technology is changing cultural events and the arts.",
            slug="cultural-events-in-the-digital-age",
            author_id="2",
            category="Culture",
            tags=["digitization", "culture", "events"],
            status=PostStatus.PUBLISHED,
            featured_image=_COVER.format(1105666, 1105666),
            published_at=_at("2024-12-17T12:00:00"),
            created_at=_at("2024-12-16T14:45:00"),
            updated_at=_at("2024-12-17T11:30:00"),
            view_count=142,
        ),
    ]


CATEGORIES: tuple[Category, ...] = (
    Category(id="1", name="Literature", slug="literature",
             description="Articles about literature, books and writers"),
    Category(id="2", name="Culture", slug="culture",
             description="Cultural content and events"),
    Category(id="3", name="Technology", slug="technology",
             description="Technological innovation and trends"),
    Category(id="4", name="Society", slug="society",
             description="Social commentary and analysis"),
)
