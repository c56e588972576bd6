"""CLI entry point for the inkpost blog."""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from inkpost.errors import (
    AuthFailed,
    InkpostError,
    PermissionDenied,
    RemoteBackendError,
    StorageUnavailable,
    ValidationFailed,
)

if TYPE_CHECKING:
    from inkpost.auth.accounts import AccountService
    from inkpost.auth.session import SessionBackend
    from inkpost.config import Settings
    from inkpost.content.posts import PostService
    from inkpost.models import User
    from inkpost.storage.store import ContentStore

console = Console()


@dataclass
class _App:
    settings: Settings
    store: ContentStore
    sessions: SessionBackend
    accounts: AccountService
    posts: PostService

    def current_user(self) -> User | None:
        return self.sessions.get_current_user_profile()


def _app() -> _App:
    """Wire settings, store and services for one command invocation."""
    from inkpost.auth.accounts import AccountService
    from inkpost.auth.session import open_session_backend
    from inkpost.config import get_settings
    from inkpost.content.posts import PostService
    from inkpost.log import configure_logging
    from inkpost.storage.store import open_store

    settings = get_settings()
    configure_logging(settings)
    store = open_store(settings)
    return _App(
        settings=settings,
        store=store,
        sessions=open_session_backend(settings, store),
        accounts=AccountService(store, settings),
        posts=PostService(store, excerpt_length=settings.excerpt_length),
    )


def _handle_errors(func: Callable) -> Callable:
    """Turn domain errors into a one-line message and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ValidationFailed, AuthFailed, PermissionDenied) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
        except StorageUnavailable as e:
            console.print(f"[bold red]Storage is unavailable:[/bold red] {e}")
        except RemoteBackendError as e:
            console.print(f"[bold red]Remote backend error:[/bold red] {e}")
        except InkpostError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
        raise SystemExit(1)

    return wrapper


def _require_user(app: _App):
    user = app.current_user()
    if user is None:
        console.print("[yellow]Not signed in. Use 'inkpost login' first.[/yellow]")
        raise SystemExit(1)
    return user


@click.group()
@click.version_option(version="0.1.0")
def main() -> None:
    """inkpost multi-author blog."""


# ---------------------------------------------------------------------------
# Session: login, logout, whoami
# ---------------------------------------------------------------------------


@main.command()
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password")
@_handle_errors
def login(email: str, password: str) -> None:
    """Sign in and remember the session."""
    app = _app()
    user = app.sessions.sign_in(email, password)
    console.print(f"[green]Signed in as {user.name} ({user.role.value}).[/green]")


@main.command()
@_handle_errors
def logout() -> None:
    """End the current session."""
    app = _app()
    app.sessions.sign_out()
    console.print("[green]Signed out.[/green]")


@main.command()
@_handle_errors
def whoami() -> None:
    """Show the signed-in user and what they may do."""
    from inkpost.auth.policy import capabilities

    app = _app()
    user = app.current_user()
    if user is None:
        console.print("[dim]Not signed in.[/dim]")
        return
    caps = ", ".join(sorted(capabilities(user))) or "none"
    console.print(f"[bold]{user.name}[/bold] <{user.email}>")
    console.print(f"  Role: {user.role.value}")
    console.print(f"  Capabilities: {caps}")


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


@main.group()
def posts() -> None:
    """Browse and manage posts."""


@posts.command("list")
@click.option("--category", "-c", default="all", help="Category name, or 'all'")
@click.option("--search", "-s", default="", help="Text to look for in title or excerpt")
@click.option("--mine", is_flag=True, help="Dashboard view: every post you may manage")
@_handle_errors
def list_posts(category: str, search: str, mine: bool) -> None:
    """List published posts (or your dashboard with --mine)."""
    app = _app()
    if mine:
        user = _require_user(app)
        items = app.posts.dashboard_posts(user)
        title = "Dashboard"
    else:
        items = app.posts.regular(category=category, search=search)
        title = "Posts"

    if not items:
        console.print("[yellow]No posts found.[/yellow]")
        return

    table = Table(title=title)
    table.add_column("ID", no_wrap=True)
    table.add_column("Title", width=50)
    table.add_column("Author", width=20)
    table.add_column("Category", width=14)
    table.add_column("Status", width=10)
    table.add_column("Views", justify="right")
    for p in items:
        table.add_row(
            p.id,
            p.title[:50],
            app.posts.author_name(p.author_id),
            p.category,
            p.status.value,
            str(p.view_count),
        )
    console.print(table)


@posts.command()
@_handle_errors
def featured() -> None:
    """List featured posts."""
    app = _app()
    items = app.posts.featured()
    if not items:
        console.print("[yellow]No featured posts.[/yellow]")
        return
    for p in items:
        console.print(f"[bold]{p.title}[/bold] [dim]({p.id})[/dim]")
        console.print(f"  {p.excerpt}")


@posts.command()
@click.argument("post_id")
@click.option("--html", "as_html", is_flag=True, help="Print the rendered HTML body")
@_handle_errors
def show(post_id: str, as_html: bool) -> None:
    """Show one post and count the view."""
    from inkpost.content.renderer import render_markup

    app = _app()
    post = app.posts.get(post_id)
    if post is None:
        console.print(f"[yellow]Post {post_id} not found.[/yellow]")
        raise SystemExit(1)
    app.posts.record_view(post_id)

    if as_html:
        click.echo(render_markup(post.content))
        return

    stamp = post.published_at or post.created_at
    console.print(
        Panel(
            f"[bold]{post.title}",
            subtitle=f"{app.posts.author_name(post.author_id)} | "
            f"{stamp.strftime('%Y-%m-%d')} | {post.view_count + 1} views",
        )
    )
    console.print(f"[italic]{post.excerpt}[/italic]\n")
    console.print(Markdown(post.content))
    if post.tags:
        console.print("\n" + " ".join(f"[cyan]#{t}[/cyan]" for t in post.tags))


def _read_content(content: str | None, file_path: str | None) -> str | None:
    if file_path:
        return Path(file_path).read_text(encoding="utf-8")
    return content


@posts.command()
@click.option("--title", "-t", required=True, help="Post title")
@click.option("--content", "-b", default=None, help="Post body (markup)")
@click.option("--file", "-f", "file_path", type=click.Path(exists=True),
              help="Read the post body from a file")
@click.option("--excerpt", "-x", default="", help="Short summary (derived when omitted)")
@click.option("--image", "-i", default="", help="Featured image URL")
@click.option("--category", "-c", default="Literature", help="Category name")
@click.option("--tags", "-g", default="", help="Comma-separated tags")
@_handle_errors
def write(
    title: str,
    content: str | None,
    file_path: str | None,
    excerpt: str,
    image: str,
    category: str,
    tags: str,
) -> None:
    """Write and publish a new post."""
    from inkpost.content.posts import PostDraft
    from inkpost.content.text import parse_tags

    app = _app()
    user = _require_user(app)
    draft = PostDraft(
        title=title,
        content=_read_content(content, file_path) or "",
        excerpt=excerpt,
        featured_image=image,
        category=category,
        tags=parse_tags(tags),
    )
    post = app.posts.publish_draft(user, draft)
    console.print(f"[green]Published '{post.title}' ({post.id}).[/green]")


@posts.command()
@click.argument("post_id")
@click.option("--title", "-t", default=None, help="New title")
@click.option("--content", "-b", default=None, help="New body (markup)")
@click.option("--file", "-f", "file_path", type=click.Path(exists=True),
              help="Read the new body from a file")
@click.option("--excerpt", "-x", default=None, help="New summary")
@click.option("--image", "-i", default=None, help="New featured image URL")
@click.option("--category", "-c", default=None, help="New category")
@click.option("--tags", "-g", default=None, help="New comma-separated tags")
@_handle_errors
def edit(
    post_id: str,
    title: str | None,
    content: str | None,
    file_path: str | None,
    excerpt: str | None,
    image: str | None,
    category: str | None,
    tags: str | None,
) -> None:
    """Edit an existing post. Options left out keep their current value."""
    from inkpost.content.posts import PostDraft
    from inkpost.content.text import parse_tags

    app = _app()
    user = _require_user(app)
    post = app.posts.get(post_id)
    if post is None:
        console.print(f"[yellow]Post {post_id} not found.[/yellow]")
        raise SystemExit(1)

    body = _read_content(content, file_path)
    draft = PostDraft(
        title=title if title is not None else post.title,
        content=body if body is not None else post.content,
        excerpt=excerpt if excerpt is not None else post.excerpt,
        featured_image=image if image is not None else (post.featured_image or ""),
        category=category if category is not None else post.category,
        tags=parse_tags(tags) if tags is not None else post.tags,
    )
    if app.posts.edit(user, post_id, draft):
        console.print(f"[green]Updated '{draft.title.strip()}'.[/green]")
    else:
        console.print(f"[yellow]Post {post_id} not found.[/yellow]")
        raise SystemExit(1)


@posts.command()
@click.argument("post_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@_handle_errors
def delete(post_id: str, yes: bool) -> None:
    """Delete a post permanently (admins only)."""
    app = _app()
    user = _require_user(app)
    if not yes and not click.confirm(f"Delete post {post_id}?"):
        return
    if app.posts.delete(user, post_id):
        console.print("[green]Post deleted.[/green]")
    else:
        console.print(f"[yellow]Post {post_id} not found.[/yellow]")
        raise SystemExit(1)


@posts.command()
@_handle_errors
def stats() -> None:
    """Dashboard totals for the signed-in user."""
    app = _app()
    user = _require_user(app)
    s = app.posts.dashboard_stats(user)
    console.print(f"  Posts: {s.total}")
    console.print(f"  Published: {s.published}")
    console.print(f"  Drafts: {s.drafts}")
    console.print(f"  Views: {s.views}")


# ---------------------------------------------------------------------------
# Users: registration and administration
# ---------------------------------------------------------------------------


@main.group()
def users() -> None:
    """Register and manage accounts."""


@users.command("list")
@_handle_errors
def list_users() -> None:
    """List accounts (editors and admins)."""
    from inkpost.auth.policy import can_moderate

    app = _app()
    user = _require_user(app)
    if not can_moderate(user):
        raise PermissionDenied("Only editors and administrators can list users")

    table = Table(title="Users")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name", width=24)
    table.add_column("Email", width=32)
    table.add_column("Role", width=12)
    table.add_column("Active", width=6)
    for u in app.store.users.snapshot():
        table.add_row(u.id, u.name, u.email, u.role.value, "yes" if u.is_active else "no")
    console.print(table)


@users.command()
@click.option("--name", "-n", prompt=True, help="Display name")
@click.option("--email", "-e", prompt=True, help="Login email")
@click.option("--password", "-p", prompt=True, hide_input=True,
              confirmation_prompt=False, help="Password")
@click.option("--confirm", "confirm_password", prompt="Repeat password", hide_input=True,
              help="Password again")
@click.option("--bio", default="", help="Short biography")
@click.option("--avatar", default="", help="Avatar URL")
@_handle_errors
def register(
    name: str, email: str, password: str, confirm_password: str, bio: str, avatar: str
) -> None:
    """Register a new author account."""
    from inkpost.auth.accounts import RegistrationForm

    app = _app()
    user = app.accounts.register(
        RegistrationForm(
            name=name,
            email=email,
            password=password,
            confirm_password=confirm_password,
            bio=bio,
            avatar=avatar,
        )
    )
    console.print(f"[green]Registered {user.name}. You can now sign in.[/green]")


@users.command()
@click.argument("user_id")
@click.argument("role", type=click.Choice(["super_admin", "editor", "author", "reader"]))
@_handle_errors
def role(user_id: str, role: str) -> None:
    """Change a user's role (admins only)."""
    from inkpost.models import Role

    app = _app()
    actor = _require_user(app)
    _report(app.accounts.change_role(actor, user_id, Role(role)), user_id, f"Role set to {role}.")


@users.command()
@click.argument("user_id")
@_handle_errors
def activate(user_id: str) -> None:
    """Re-enable a user account (admins only)."""
    app = _app()
    actor = _require_user(app)
    _report(app.accounts.set_active(actor, user_id, True), user_id, "Account activated.")


@users.command()
@click.argument("user_id")
@_handle_errors
def deactivate(user_id: str) -> None:
    """Disable a user account (admins only)."""
    app = _app()
    actor = _require_user(app)
    _report(app.accounts.set_active(actor, user_id, False), user_id, "Account deactivated.")


@users.command("delete")
@click.argument("user_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@_handle_errors
def delete_user(user_id: str, yes: bool) -> None:
    """Delete a user account permanently (admins only)."""
    app = _app()
    actor = _require_user(app)
    if not yes and not click.confirm(f"Delete user {user_id}?"):
        return
    _report(app.accounts.delete_user(actor, user_id), user_id, "User deleted.")


def _report(found: bool, user_id: str, message: str) -> None:
    if found:
        console.print(f"[green]{message}[/green]")
    else:
        console.print(f"[yellow]User {user_id} not found.[/yellow]")
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# categories / render / export
# ---------------------------------------------------------------------------


@main.command()
@_handle_errors
def categories() -> None:
    """Show categories with their number of published posts."""
    from inkpost.content.categories import with_live_counts

    app = _app()
    table = Table(title="Categories")
    table.add_column("Name", width=16)
    table.add_column("Description", width=44)
    table.add_column("Posts", justify="right")
    for c in with_live_counts(app.posts.published()):
        table.add_row(c.name, c.description, str(c.post_count))
    console.print(table)


@main.command()
@click.argument("file_path", type=click.Path(exists=True))
def render(file_path: str) -> None:
    """Render a markup file to HTML on stdout."""
    from inkpost.content.renderer import render_markup

    click.echo(render_markup(Path(file_path).read_text(encoding="utf-8")))


@main.command()
@click.option("--out", "-o", "out_dir", type=click.Path(file_okay=False), default=None,
              help="Output directory (defaults to the configured export_dir)")
@_handle_errors
def export(out_dir: str | None) -> None:
    """Export the published blog as static HTML."""
    from inkpost.content.site import export_site

    app = _app()
    target = Path(out_dir) if out_dir else app.settings.export_dir
    with console.status("[green]Exporting..."):
        result = export_site(app.posts, target)
    console.print(f"[green]Exported {len(result.post_paths)} posts to {result.index_path}[/green]")
