"""Client for a hosted auth + REST backend (GoTrue/PostgREST style).

Implements the same session interface as the local backend and offers
CRUD for posts and profiles, so a deployment can move its data to a hosted
service without changing the callers. Rows use snake_case columns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from inkpost.errors import AuthFailed, RemoteBackendError, StorageUnavailable
from inkpost.log import get_logger
from inkpost.models import Post, User

if TYPE_CHECKING:
    from inkpost.storage.store import ContentStore

logger = get_logger(__name__)

# Access token and profile of the signed-in user, kept between processes
REMOTE_SESSION_KEY = "remoteSession"

_POST_COLUMNS = (
    "title",
    "content",
    "excerpt",
    "slug",
    "author_id",
    "category",
    "tags",
    "status",
    "featured_image",
    "published_at",
    "scheduled_at",
    "is_feature",
)
_PROFILE_COLUMNS = ("email", "name", "role", "avatar", "bio", "is_active")


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for transient failures (rate limits, server errors, network).

    Other 4xx answers will never succeed on a retry.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


def post_from_row(row: dict[str, Any]) -> Post:
    data = dict(row)
    data["featured_image"] = data.get("featured_image") or None
    data["tags"] = data.get("tags") or []
    return Post.model_validate(data)


def post_to_row(post: Post) -> dict[str, Any]:
    dumped = post.model_dump(mode="json")
    return {column: dumped[column] for column in _POST_COLUMNS}


def user_from_row(row: dict[str, Any]) -> User:
    data = dict(row)
    data["avatar"] = data.get("avatar") or None
    data["bio"] = data.get("bio") or None
    return User.model_validate(data)


def user_to_row(user: User) -> dict[str, Any]:
    dumped = user.model_dump(mode="json")
    return {column: dumped[column] for column in _PROFILE_COLUMNS}


class RemoteBackend:
    """Wrapper around the hosted backend's auth and REST endpoints.

    When given a ``store``, the access token is saved under
    ``remoteSession`` on sign-in and picked up again by the next instance.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        store: ContentStore | None = None,
        timeout: float = 30.0,
    ) -> None:
        if not base_url:
            raise RemoteBackendError("No remote backend URL configured")
        self._api_key = api_key
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "apikey": api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
        )
        self._access_token: str | None = None
        self._session_user: User | None = None
        self._store = store
        self._restore_session()

    # -- transport -------------------------------------------------------------

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._access_token or self._api_key}"}
        headers.update(kwargs.pop("headers", None) or {})
        resp = self._client.request(method, path, headers=headers, **kwargs)
        resp.raise_for_status()
        return resp

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._request(method, path, **kwargs)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("remote_request_failed", method=method, path=path, status=status)
            raise RemoteBackendError(f"{method} {path} failed with HTTP {status}", status) from e
        except httpx.HTTPError as e:
            logger.warning("remote_request_failed", method=method, path=path, error=str(e))
            raise RemoteBackendError(f"{method} {path} failed: {e}") from e

    def _rows(self, method: str, path: str, **kwargs: Any) -> list[dict[str, Any]]:
        data = self._send(method, path, **kwargs).json()
        return data if isinstance(data, list) else [data]

    # -- session ---------------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> User:
        try:
            resp = self._send(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except RemoteBackendError as e:
            if e.status_code in (400, 401, 403):
                raise AuthFailed() from e
            raise
        self._access_token = resp.json()["access_token"]
        profile = self.get_current_user_profile()
        if profile is None:
            self._access_token = None
            raise AuthFailed()
        self._session_user = profile
        if self._store is not None:
            self._store.write_document(
                REMOTE_SESSION_KEY,
                {"accessToken": self._access_token, "user": profile.to_storage()},
            )
        return profile

    def sign_out(self) -> None:
        if self._access_token:
            try:
                self._send("POST", "/auth/v1/logout")
            finally:
                self._forget_session()

    def get_session(self) -> User | None:
        return self._session_user if self._access_token else None

    def get_current_user_profile(self) -> User | None:
        if not self._access_token:
            return None
        try:
            auth_user = self._send("GET", "/auth/v1/user").json()
        except RemoteBackendError as e:
            if e.status_code == 401:
                logger.info("remote_session_expired")
                self._forget_session()
                return None
            raise
        return self.get_profile(auth_user["id"])

    def _restore_session(self) -> None:
        if self._store is None:
            return
        try:
            saved = self._store.read_document(REMOTE_SESSION_KEY)
        except StorageUnavailable as e:
            logger.warning("storage_unavailable", key=REMOTE_SESSION_KEY, error=str(e))
            return
        if saved is None:
            return
        try:
            user = User.model_validate(saved["user"])
            token = saved["accessToken"]
        except (KeyError, ValidationError):
            logger.warning("remote_session_unreadable")
            self._store.remove_document(REMOTE_SESSION_KEY)
            return
        self._access_token = token
        self._session_user = user

    def _forget_session(self) -> None:
        self._access_token = None
        self._session_user = None
        if self._store is not None:
            self._store.remove_document(REMOTE_SESSION_KEY)

    # -- posts -------------------------------------------------------------------------

    def list_published_posts(self) -> list[Post]:
        rows = self._rows(
            "GET",
            "/rest/v1/posts",
            params={"select": "*", "status": "eq.published", "order": "published_at.desc"},
        )
        return [post_from_row(r) for r in rows]

    def list_posts(self) -> list[Post]:
        rows = self._rows(
            "GET", "/rest/v1/posts", params={"select": "*", "order": "created_at.desc"}
        )
        return [post_from_row(r) for r in rows]

    def list_posts_by_author(self, author_id: str) -> list[Post]:
        rows = self._rows(
            "GET",
            "/rest/v1/posts",
            params={"select": "*", "author_id": f"eq.{author_id}", "order": "created_at.desc"},
        )
        return [post_from_row(r) for r in rows]

    def get_post(self, post_id: str) -> Post | None:
        rows = self._rows("GET", "/rest/v1/posts", params={"select": "*", "id": f"eq.{post_id}"})
        return post_from_row(rows[0]) if rows else None

    def create_post(self, post: Post) -> Post:
        """Insert a post. The backend assigns id, timestamps and view count."""
        rows = self._rows(
            "POST",
            "/rest/v1/posts",
            json=post_to_row(post),
            headers={"Prefer": "return=representation"},
        )
        return post_from_row(rows[0])

    def update_post(self, post_id: str, post: Post) -> Post | None:
        rows = self._rows(
            "PATCH",
            "/rest/v1/posts",
            params={"id": f"eq.{post_id}"},
            json=post_to_row(post),
            headers={"Prefer": "return=representation"},
        )
        return post_from_row(rows[0]) if rows else None

    def delete_post(self, post_id: str) -> bool:
        rows = self._rows(
            "DELETE",
            "/rest/v1/posts",
            params={"id": f"eq.{post_id}"},
            headers={"Prefer": "return=representation"},
        )
        return bool(rows)

    def increment_view_count(self, post_id: str) -> None:
        self._send("POST", "/rest/v1/rpc/increment_view_count", json={"post_id": post_id})

    # -- profiles ------------------------------------------------------------------------

    def list_profiles(self) -> list[User]:
        rows = self._rows(
            "GET", "/rest/v1/profiles", params={"select": "*", "order": "created_at.desc"}
        )
        return [user_from_row(r) for r in rows]

    def get_profile(self, user_id: str) -> User | None:
        rows = self._rows(
            "GET", "/rest/v1/profiles", params={"select": "*", "id": f"eq.{user_id}"}
        )
        return user_from_row(rows[0]) if rows else None

    def update_profile(self, user_id: str, user: User) -> User | None:
        rows = self._rows(
            "PATCH",
            "/rest/v1/profiles",
            params={"id": f"eq.{user_id}"},
            json=user_to_row(user),
            headers={"Prefer": "return=representation"},
        )
        return user_from_row(rows[0]) if rows else None

    def delete_profile(self, user_id: str) -> bool:
        rows = self._rows(
            "DELETE",
            "/rest/v1/profiles",
            params={"id": f"eq.{user_id}"},
            headers={"Prefer": "return=representation"},
        )
        return bool(rows)

    def close(self) -> None:
        self._client.close()
