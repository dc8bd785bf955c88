"""
Create-issue pipeline.

One straight line per request:
    identity -> payload -> repository -> labels -> user -> post
    -> permalink -> issue body -> GitHub issue -> confirmation reply

Any failed step stops the request; nothing after it runs.
"""

import json
import logging
import posixpath
import urllib.parse
from dataclasses import dataclass

from docup.config import Category, ConfigStore, ConfigurationError, RepositoryTarget
from docup.github import CreatedIssue, GitHubError, IssueRequest
from docup.mattermost import MattermostError, Post

logger = logging.getLogger(__name__)

TITLE_PREFIX = "Request for Documentation: "
PLUGIN_LINK = "[Doc Up](https://github.com/jwilander/mattermost-plugin-docup)"

ISSUE_BODY_TEMPLATE = (
    "Mattermost user `{username}` from {site_url} has requested the following be documented:\n"
    "\n"
    "```\n"
    "{body}\n"
    "```\n"
    "\n"
    "See the original post [here]({permalink}).\n"
    "\n"
    "_This issue was generated from [Mattermost](https://mattermost.com) using the "
    + PLUGIN_LINK + " plugin._"
)

CONFIRMATION_TEMPLATE = (
    "Marked [this post]({permalink}) for documentation [here]({issue_url}).\n"
    "\n"
    "_Generated by the " + PLUGIN_LINK + " plugin._"
)


class RequestError(Exception):
    """Request failed. ``status_code`` is what the HTTP layer answers with."""
    status_code = 500


class Unauthorized(RequestError):
    status_code = 401


class BadRequest(RequestError):
    status_code = 400


class InternalError(RequestError):
    status_code = 500


@dataclass(frozen=True)
class IssueCreationRequest:
    category: str
    title: str
    body: str
    source_message_id: str

    @classmethod
    def from_json(cls, raw: bytes) -> "IssueCreationRequest":
        """Decode the /create body. Raises ValueError unless it is a JSON object of string fields."""
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("request body must be a JSON object")
        fields = {}
        for key in ("type", "title", "body", "post_id"):
            value = data.get(key)
            if value is None:
                value = ""
            elif not isinstance(value, str):
                raise ValueError(f"{key} must be a string, got {type(value).__name__}")
            fields[key] = value
        return cls(
            category=fields["type"],
            title=fields["title"],
            body=fields["body"],
            source_message_id=fields["post_id"],
        )


def build_permalink(site_url: str, post_id: str) -> str:
    """Deep link to a post: <site url>/_redirect/pl/<post id>."""
    parsed = urllib.parse.urlsplit(site_url)
    path = posixpath.join(parsed.path or "/", "_redirect", "pl", post_id)
    return urllib.parse.urlunsplit(parsed._replace(path=path))


def compose_issue_body(username: str, site_url: str, body: str, permalink: str) -> str:
    return ISSUE_BODY_TEMPLATE.format(
        username=username, site_url=site_url, body=body, permalink=permalink,
    )


def compose_confirmation(permalink: str, issue_url: str) -> str:
    return CONFIRMATION_TEMPLATE.format(permalink=permalink, issue_url=issue_url)


class IssueRequestHandler:
    """
    Turns a chat post into a documentation issue.

    Collaborators:
        store   — ConfigStore; one snapshot is read per request
        host    — get_user / get_post / create_post / get_site_url
                  (see docup.mattermost.MattermostClient)
        tracker — create_issue(target, IssueRequest) -> CreatedIssue
                  (see docup.github.GitHubClient)
    """

    def __init__(self, store: ConfigStore, host, tracker):
        self.store = store
        self.host = host
        self.tracker = tracker

    def _fail(self, message: str, exc: Exception) -> InternalError:
        logger.error("%s err=%s", message, exc)
        return InternalError(message)

    def resolve_target(self, config, category: str) -> RepositoryTarget:
        try:
            owner_and_repo = config.repository_for(Category(category))
        except ValueError:
            owner_and_repo = ""
        if not owner_and_repo:
            raise BadRequest(f"Unknown request type: {category!r}")
        try:
            return RepositoryTarget.parse(owner_and_repo)
        except ConfigurationError as exc:
            raise self._fail("Bad configured repo", exc) from exc

    def handle(self, user_id: str, raw_body: bytes) -> CreatedIssue:
        """
        Run the pipeline for one /create request.

        Returns the created issue; raises Unauthorized, BadRequest or
        InternalError (already logged) on failure.
        """
        if not user_id:
            raise Unauthorized("Not authorized")

        try:
            request = IssueCreationRequest.from_json(raw_body)
        except ValueError as exc:
            raise self._fail("Unable to decode JSON", exc) from exc

        config = self.store.get()
        target = self.resolve_target(config, request.category)
        labels = config.label_list

        try:
            user = self.host.get_user(user_id)
        except MattermostError as exc:
            raise self._fail("Unable to get user", exc) from exc

        try:
            site_url = self.host.get_site_url()
        except MattermostError as exc:
            raise self._fail("Unable to get server config", exc) from exc

        try:
            doc_post = self.host.get_post(request.source_message_id)
        except MattermostError as exc:
            raise self._fail("Unable to get post", exc) from exc

        permalink = build_permalink(site_url, doc_post.id)
        issue_request = IssueRequest(
            title=TITLE_PREFIX + request.title,
            body=compose_issue_body(user.username, site_url, request.body, permalink),
            labels=labels,
        )

        try:
            issue = self.tracker.create_issue(target, issue_request)
        except GitHubError as exc:
            raise self._fail("Error creating GitHub issue", exc) from exc

        reply = Post(
            user_id=user_id,
            channel_id=doc_post.channel_id,
            root_id=doc_post.thread_root,
            message=compose_confirmation(permalink, issue.html_url),
        )
        try:
            self.host.create_post(reply)
        except MattermostError as exc:
            raise self._fail("Unable to create post", exc) from exc

        logger.info("Created %s for post %s in %s", issue.html_url, doc_post.id, target)
        return issue
