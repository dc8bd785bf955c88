"""Tests for the GitHub and Mattermost REST clients (urlopen patched)."""

import http.client
import io
import json
import logging
import socket
import urllib.error

import pytest

from docup import github, mattermost
from docup.config import ConfigStore, Configuration, RepositoryTarget
from docup.github import GitHubClient, GitHubError, IssueRequest
from docup.handler import InternalError, IssueRequestHandler
from docup.mattermost import MattermostClient, MattermostError, Post
from tests.fakes import FakeHost


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class Recorder:
    """Replays queued responses and remembers each request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return FakeResponse(json.dumps(response).encode("utf-8"))


def http_error(url: str, code: int, body: str) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(url, code, "error", {}, io.BytesIO(body.encode("utf-8")))


class TestGitHubClient:
    def test_create_issue(self, monkeypatch):
        recorder = Recorder({
            "number": 12,
            "url": "https://api.github.com/repos/org/repo/issues/12",
            "html_url": "https://github.com/org/repo/issues/12",
        })
        monkeypatch.setattr(github.urllib.request, "urlopen", recorder)

        client = GitHubClient("ghp_x")
        issue = client.create_issue(
            RepositoryTarget("org", "repo"),
            IssueRequest(title="Request for Documentation: T", body="B", labels=["a", "b"]),
        )

        assert issue.number == 12
        assert issue.html_url == "https://github.com/org/repo/issues/12"
        req = recorder.requests[0]
        assert req.get_method() == "POST"
        assert req.full_url == "https://api.github.com/repos/org/repo/issues"
        assert req.get_header("Authorization") == "Bearer ghp_x"
        assert json.loads(req.data) == {"title": "Request for Documentation: T", "body": "B", "labels": ["a", "b"]}

    def test_empty_labels_still_sent(self, monkeypatch):
        recorder = Recorder({"number": 1, "url": "u", "html_url": "h"})
        monkeypatch.setattr(github.urllib.request, "urlopen", recorder)
        GitHubClient("t", api_url="https://ghe.example.com/api/v3/").create_issue(
            RepositoryTarget("o", "r"), IssueRequest(title="x", body="y"),
        )
        req = recorder.requests[0]
        assert req.full_url == "https://ghe.example.com/api/v3/repos/o/r/issues"
        assert json.loads(req.data)["labels"] == []

    def test_http_error(self, monkeypatch):
        url = "https://api.github.com/repos/org/repo/issues"
        monkeypatch.setattr(github.urllib.request, "urlopen", Recorder(http_error(url, 404, "Not Found")))
        with pytest.raises(GitHubError, match="404"):
            GitHubClient("t").create_issue(RepositoryTarget("org", "repo"), IssueRequest(title="x", body="y"))

    def test_unreachable(self, monkeypatch):
        monkeypatch.setattr(github.urllib.request, "urlopen", Recorder(urllib.error.URLError("dns")))
        with pytest.raises(GitHubError, match="Failed to reach"):
            GitHubClient("t").create_issue(RepositoryTarget("org", "repo"), IssueRequest(title="x", body="y"))

    def test_unexpected_payload(self, monkeypatch):
        monkeypatch.setattr(github.urllib.request, "urlopen", Recorder({"message": "huh"}))
        with pytest.raises(GitHubError):
            GitHubClient("t").create_issue(RepositoryTarget("org", "repo"), IssueRequest(title="x", body="y"))


class TestMattermostClient:
    def setup_method(self):
        self.client = MattermostClient("https://chat.example.com/", token="mm")

    def test_get_user(self, monkeypatch):
        recorder = Recorder({"id": "U1", "username": "alice", "email": "a@example.com"})
        monkeypatch.setattr(mattermost.urllib.request, "urlopen", recorder)
        user = self.client.get_user("U1")
        assert user.username == "alice"
        assert recorder.requests[0].full_url == "https://chat.example.com/api/v4/users/U1"
        assert recorder.requests[0].get_header("Authorization") == "Bearer mm"

    def test_get_post(self, monkeypatch):
        recorder = Recorder({"id": "M2", "channel_id": "C1", "root_id": "P", "message": "hi", "props": {}})
        monkeypatch.setattr(mattermost.urllib.request, "urlopen", recorder)
        post = self.client.get_post("M2")
        assert post.thread_root == "P"
        assert Post(id="M1").thread_root == "M1"

    def test_get_post_requires_id(self):
        with pytest.raises(MattermostError):
            self.client.get_post("")

    def test_create_post(self, monkeypatch):
        recorder = Recorder({"id": "R1", "channel_id": "C1", "root_id": "M1", "message": "done", "user_id": "U1"})
        monkeypatch.setattr(mattermost.urllib.request, "urlopen", recorder)
        created = self.client.create_post(Post(channel_id="C1", root_id="M1", message="done", user_id="U1"))
        assert created.id == "R1"
        req = recorder.requests[0]
        assert req.full_url == "https://chat.example.com/api/v4/posts"
        assert json.loads(req.data) == {"channel_id": "C1", "root_id": "M1", "message": "done", "user_id": "U1"}

    def test_site_url(self, monkeypatch):
        monkeypatch.setattr(mattermost.urllib.request, "urlopen", Recorder({"SiteURL": "https://chat.example.com"}))
        assert self.client.get_site_url() == "https://chat.example.com"

    def test_site_url_unset(self, monkeypatch):
        monkeypatch.setattr(mattermost.urllib.request, "urlopen", Recorder({"SiteURL": ""}))
        with pytest.raises(MattermostError):
            self.client.get_site_url()

    def test_not_found(self, monkeypatch):
        url = "https://chat.example.com/api/v4/posts/nope"
        monkeypatch.setattr(mattermost.urllib.request, "urlopen", Recorder(http_error(url, 404, "{}")))
        with pytest.raises(MattermostError, match="404"):
            self.client.get_post("nope")


class TestReadFailures:
    def test_github_timeout(self, monkeypatch):
        monkeypatch.setattr(github.urllib.request, "urlopen", Recorder(TimeoutError("timed out")))
        with pytest.raises(GitHubError) as info:
            GitHubClient("t").create_issue(RepositoryTarget("org", "repo"), IssueRequest(title="x", body="y"))
        assert isinstance(info.value.__cause__, TimeoutError)

    def test_github_disconnect(self, monkeypatch):
        monkeypatch.setattr(github.urllib.request, "urlopen", Recorder(http.client.RemoteDisconnected("closed")))
        with pytest.raises(GitHubError):
            GitHubClient("t").create_issue(RepositoryTarget("org", "repo"), IssueRequest(title="x", body="y"))

    def test_mattermost_timeout(self, monkeypatch):
        monkeypatch.setattr(mattermost.urllib.request, "urlopen", Recorder(TimeoutError("timed out")))
        with pytest.raises(MattermostError) as info:
            MattermostClient("https://chat.example.com").get_post("M1")
        assert isinstance(info.value.__cause__, TimeoutError)

    def test_mattermost_connection_reset(self, monkeypatch):
        monkeypatch.setattr(mattermost.urllib.request, "urlopen", Recorder(ConnectionResetError()))
        with pytest.raises(MattermostError):
            MattermostClient("https://chat.example.com").get_user("U1")

    def test_handler_reports_timeout_as_internal_error(self, monkeypatch, caplog):
        monkeypatch.setattr(github.urllib.request, "urlopen", Recorder(socket.timeout("timed out")))
        host = FakeHost()
        host.add_user("U1", "alice")
        host.add_post("M1")
        config = Configuration(github_api_key="t", developer_repository="org/repo")
        handler = IssueRequestHandler(ConfigStore(config), host, GitHubClient("t"))

        body = json.dumps({"type": "developer", "title": "T", "body": "B", "post_id": "M1"}).encode()
        with caplog.at_level(logging.ERROR):
            with pytest.raises(InternalError):
                handler.handle("U1", body)
        assert "Error creating GitHub issue" in caplog.text
        assert host.created == []
