"""
Mattermost REST v4 client.

Covers the host calls Doc Up needs:
    get_user(id)       — GET  /api/v4/users/{id}
    get_post(id)       — GET  /api/v4/posts/{id}
    create_post(post)  — POST /api/v4/posts
    get_site_url()     — GET  /api/v4/config/client?format=old
"""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any


class MattermostError(RuntimeError):
    """Raised when a Mattermost API call fails."""


@dataclass(frozen=True)
class User:
    id: str
    username: str
    first_name: str = ""
    last_name: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> User:
        return cls(
            id=d.get("id", ""),
            username=d.get("username", ""),
            first_name=d.get("first_name", ""),
            last_name=d.get("last_name", ""),
        )


@dataclass(frozen=True)
class Post:
    id: str = ""
    channel_id: str = ""
    message: str = ""
    root_id: str = ""
    user_id: str = ""

    @property
    def thread_root(self) -> str:
        """Id of the first post in this post's thread."""
        return self.root_id or self.id

    def to_dict(self) -> dict:
        d = {"channel_id": self.channel_id, "message": self.message}
        if self.root_id:
            d["root_id"] = self.root_id
        if self.user_id:
            d["user_id"] = self.user_id
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Post:
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


class MattermostClient:
    def __init__(self, server_url: str, token: str = "", timeout: float = 30.0):
        self.server_url = server_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(f"{self.server_url}/api/v4{path}", method=method, data=data)
        req.add_header("Accept", "application/json")
        if self.token:
            req.add_header("Authorization", f"Bearer {self.token}")
        if payload is not None:
            req.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace").strip()
            raise MattermostError(f"{method} {path} failed ({exc.code}): {detail}") from exc
        except urllib.error.URLError as exc:
            raise MattermostError(f"Failed to reach Mattermost: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise MattermostError(f"{method} {path} failed: {exc!r}") from exc
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise MattermostError(f"{method} {path} returned a non-JSON response") from exc

    @staticmethod
    def _quote(value: str) -> str:
        return urllib.parse.quote(value, safe="")

    def _object(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict:
        data = self._request(method, path, payload)
        if not isinstance(data, dict):
            raise MattermostError(f"{method} {path} returned an unexpected payload")
        return data

    def get_user(self, user_id: str) -> User:
        return User.from_dict(self._object("GET", f"/users/{self._quote(user_id)}"))

    def get_post(self, post_id: str) -> Post:
        if not post_id:
            raise MattermostError("post id is required")
        return Post.from_dict(self._object("GET", f"/posts/{self._quote(post_id)}"))

    def create_post(self, post: Post) -> Post:
        # REST v4 ignores user_id; the post is authored by the token owner
        return Post.from_dict(self._object("POST", "/posts", post.to_dict()))

    def get_site_url(self) -> str:
        config = self._object("GET", "/config/client?format=old")
        site_url = config.get("SiteURL")
        if not site_url:
            raise MattermostError("Mattermost SiteURL is not configured")
        return site_url
