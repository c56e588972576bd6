"""Static HTML export of the published blog through Jinja2 templates."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from inkpost.content.categories import with_live_counts
from inkpost.content.posts import PostService
from inkpost.content.renderer import render_markup
from inkpost.log import get_logger
from inkpost.models import Post

logger = get_logger(__name__)

_TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "html.j2"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

SITE_TITLE = "inkpost"


@dataclass
class ExportResult:
    index_path: Path
    post_paths: list[Path]


def post_filename(post: Post) -> str:
    return f"post-{post.id}.html"


def render(template_name: str, **context: object) -> str:
    """Render a site template with the given context variables."""
    return _env.get_template(template_name).render(**context)


def _post_context(post: Post, posts: PostService) -> dict[str, object]:
    stamp = post.published_at or post.created_at
    return {
        "title": post.title,
        "excerpt": post.excerpt,
        "author": posts.author_name(post.author_id),
        "date": stamp.strftime("%d %B %Y"),
        "category": post.category,
        "image": post.featured_image,
        "views": post.view_count,
        "tags": post.tags,
        "filename": post_filename(post),
        "body_html": render_markup(post.content),
    }


def export_site(posts: PostService, out_dir: Path, *, site_title: str = SITE_TITLE) -> ExportResult:
    """Write ``index.html`` plus one page per published post into ``out_dir``."""
    out_dir.mkdir(parents=True, exist_ok=True)
    published = posts.published()

    post_paths: list[Path] = []
    for post in published:
        path = out_dir / post_filename(post)
        path.write_text(
            render("post.html.j2", post=_post_context(post, posts), site_title=site_title),
            encoding="utf-8",
        )
        post_paths.append(path)

    index_path = out_dir / "index.html"
    index_path.write_text(
        render(
            "index.html.j2",
            site_title=site_title,
            featured=[_post_context(p, posts) for p in published if p.is_feature],
            regular=[_post_context(p, posts) for p in published if not p.is_feature],
            categories=with_live_counts(published),
        ),
        encoding="utf-8",
    )
    logger.info("site_exported", out_dir=str(out_dir), posts=len(post_paths))
    return ExportResult(index_path=index_path, post_paths=post_paths)
