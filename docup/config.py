"""
Configuration for the Doc Up service.

Settings use the Mattermost plugin-settings names so an existing
plugin configuration block can be dropped into a JSON file as-is:

    GitHubAPIKey         — token used to create issues
    AdminRepository      — owner/name for "admin" requests
    DeveloperRepository  — owner/name for "developer" requests
    HandbookRepository   — owner/name for "handbook" requests
    Labels               — comma-separated labels applied to every issue

Every setting can also come from a DOCUP_* environment variable,
which wins over the file.
"""

import json
import os
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_GITHUB_API_URL = "https://api.github.com"


class ConfigurationError(ValueError):
    """Raised when the configuration cannot be used."""


class Category(str, Enum):
    """Kind of documentation request. Selects the target repository."""
    ADMIN = "admin"
    DEVELOPER = "developer"
    HANDBOOK = "handbook"


@dataclass(frozen=True)
class RepositoryTarget:
    owner: str
    name: str

    @classmethod
    def parse(cls, raw: str) -> "RepositoryTarget":
        """Split an ``owner/name`` string. Both parts must be non-empty."""
        parts = raw.split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ConfigurationError(f"Bad configured repo: {raw}")
        return cls(owner=parts[0], name=parts[1])

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_labels(raw: Optional[str]) -> list[str]:
    """Issue labels from the Labels setting, trimmed, blanks dropped."""
    if not raw:
        return []
    return [s.strip() for s in raw.split(",") if s.strip()]


# (attribute, JSON key, environment variable)
_SETTINGS = (
    ("github_api_key", "GitHubAPIKey", "DOCUP_GITHUB_API_KEY"),
    ("admin_repository", "AdminRepository", "DOCUP_ADMIN_REPOSITORY"),
    ("developer_repository", "DeveloperRepository", "DOCUP_DEVELOPER_REPOSITORY"),
    ("handbook_repository", "HandbookRepository", "DOCUP_HANDBOOK_REPOSITORY"),
    ("labels", "Labels", "DOCUP_LABELS"),
    ("github_api_url", "GitHubAPIURL", "DOCUP_GITHUB_API_URL"),
    ("mattermost_url", "MattermostURL", "DOCUP_MATTERMOST_URL"),
    ("mattermost_token", "MattermostToken", "DOCUP_MATTERMOST_TOKEN"),
)


@dataclass(frozen=True)
class Configuration:
    """Immutable snapshot of the service settings."""
    github_api_key: str = ""
    admin_repository: str = ""
    developer_repository: str = ""
    handbook_repository: str = ""
    labels: str = ""
    github_api_url: str = DEFAULT_GITHUB_API_URL
    mattermost_url: str = ""
    mattermost_token: str = ""
    repositories: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "repositories", {
            Category.ADMIN: self.admin_repository.strip(),
            Category.DEVELOPER: self.developer_repository.strip(),
            Category.HANDBOOK: self.handbook_repository.strip(),
        })

    @property
    def label_list(self) -> list[str]:
        return parse_labels(self.labels)

    def repository_for(self, category: Category) -> str:
        """Raw ``owner/name`` string configured for a category, or ""."""
        return self.repositories.get(category, "")

    def is_valid(self) -> None:
        """Raise ConfigurationError if the service cannot run with these settings."""
        if not self.github_api_key:
            raise ConfigurationError("Must have a GitHub API key")
        if not self.mattermost_url:
            raise ConfigurationError("Must have a Mattermost server URL")
        configured = {c: r for c, r in self.repositories.items() if r}
        if not configured:
            raise ConfigurationError("Must configure at least one repository")
        for category, raw in configured.items():
            try:
                RepositoryTarget.parse(raw)
            except ConfigurationError as exc:
                raise ConfigurationError(f"{category.value} repository: {exc}") from exc

    def to_dict(self, mask_secrets: bool = True) -> dict:
        d = {}
        for attr, key, _ in _SETTINGS:
            value = getattr(self, attr)
            if mask_secrets and attr in ("github_api_key", "mattermost_token") and value:
                value = "*" * 8
            d[key] = value
        return d

    @classmethod
    def from_dict(cls, d: Mapping) -> "Configuration":
        kwargs = {}
        for attr, key, _ in _SETTINGS:
            if d.get(key) is not None:
                kwargs[attr] = str(d[key])
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[Mapping] = None) -> "Configuration":
        """
        Build a configuration from an optional JSON file and the environment.

        Environment variables override values from the file.
        """
        environ = os.environ if environ is None else environ
        config = cls()
        if path:
            config_path = Path(path)
            try:
                with open(config_path) as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as exc:
                raise ConfigurationError(f"Unable to read {config_path}: {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigurationError(f"{config_path} must contain a JSON object")
            config = cls.from_dict(data)

        overrides = {attr: environ[env] for attr, _, env in _SETTINGS if environ.get(env)}
        if overrides:
            config = replace(config, **overrides)
        return config


class ConfigStore:
    """
    Holds the active configuration snapshot.

    Readers take the current reference without locking; set() swaps
    the reference under a lock so concurrent updates don't interleave.
    """

    def __init__(self, config: Optional[Configuration] = None):
        self._lock = threading.Lock()
        self._config = config or Configuration()

    def get(self) -> Configuration:
        return self._config

    def set(self, config: Configuration) -> Configuration:
        """Install a new snapshot. Returns the previous one."""
        with self._lock:
            previous = self._config
            self._config = config
        return previous
