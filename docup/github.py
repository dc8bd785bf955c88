"""GitHub REST client — just enough to open issues."""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from docup.config import DEFAULT_GITHUB_API_URL, RepositoryTarget

API_VERSION = "2022-11-28"


class GitHubError(RuntimeError):
    """Raised when the GitHub API can't be reached or rejects a call."""


@dataclass(frozen=True)
class IssueRequest:
    title: str
    body: str
    labels: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        # labels always sent, [] included
        return {"title": self.title, "body": self.body, "labels": list(self.labels)}


@dataclass(frozen=True)
class CreatedIssue:
    number: int
    url: str
    html_url: str

    @classmethod
    def from_api_payload(cls, payload: dict[str, Any]) -> CreatedIssue:
        try:
            number = int(payload["number"])
            url = str(payload["url"])
            html_url = str(payload.get("html_url") or url)
        except (KeyError, TypeError, ValueError) as exc:
            raise GitHubError("Unexpected GitHub response payload") from exc
        return cls(number=number, url=url, html_url=html_url)


class GitHubClient:
    def __init__(self, token: str, api_url: str = DEFAULT_GITHUB_API_URL, timeout: float = 30.0):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(f"{self.api_url}{path}", method=method, data=data)
        req.add_header("Accept", "application/vnd.github+json")
        req.add_header("Authorization", f"Bearer {self.token}")
        req.add_header("X-GitHub-Api-Version", API_VERSION)
        if payload is not None:
            req.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace").strip()
            raise GitHubError(f"GitHub API error ({exc.code}): {detail}") from exc
        except urllib.error.URLError as exc:
            raise GitHubError(f"Failed to reach GitHub API: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise GitHubError(f"GitHub API request failed: {exc!r}") from exc
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise GitHubError("GitHub returned a non-JSON response") from exc

    def create_issue(self, target: RepositoryTarget, issue: IssueRequest) -> CreatedIssue:
        """Open an issue in ``target``. No retry."""
        data = self._request("POST", f"/repos/{target.owner}/{target.name}/issues", issue.to_payload())
        if not isinstance(data, dict):
            raise GitHubError("Unexpected GitHub response payload")
        return CreatedIssue.from_api_payload(data)
