"""Plugin lifecycle: activation, configuration changes, handler wiring."""

import logging
from typing import Callable, Optional

from docup.config import ConfigStore, Configuration
from docup.github import GitHubClient
from docup.handler import IssueRequestHandler
from docup.mattermost import MattermostClient

logger = logging.getLogger(__name__)


def _default_tracker(config: Configuration) -> GitHubClient:
    return GitHubClient(config.github_api_key, api_url=config.github_api_url)


def _default_host(config: Configuration) -> MattermostClient:
    return MattermostClient(config.mattermost_url, token=config.mattermost_token)


class Plugin:
    """
    Owns the configuration snapshot and the live IssueRequestHandler.

    Nothing is served until activate() succeeds. An invalid
    configuration fails activation and is never installed.
    """

    def __init__(
        self,
        config: Optional[Configuration] = None,
        tracker_factory: Callable[[Configuration], object] = _default_tracker,
        host_factory: Callable[[Configuration], object] = _default_host,
    ):
        self.store = ConfigStore(config)
        self.tracker_factory = tracker_factory
        self.host_factory = host_factory
        self.handler: Optional[IssueRequestHandler] = None

    @property
    def activated(self) -> bool:
        return self.handler is not None

    def activate(self) -> None:
        config = self.store.get()
        config.is_valid()
        self.handler = self._build_handler(config)
        logger.info("Doc Up activated (%s)", self._describe(config))

    def on_configuration_change(self, config: Configuration) -> None:
        """Validate and install a new snapshot. The old one stays on failure."""
        config.is_valid()
        previous = self.store.set(config)
        if self.handler is None:
            return
        clients_changed = (
            (config.github_api_key, config.github_api_url, config.mattermost_url, config.mattermost_token)
            != (previous.github_api_key, previous.github_api_url, previous.mattermost_url, previous.mattermost_token)
        )
        if clients_changed:
            self.handler = self._build_handler(config)
        logger.info("Configuration updated (%s)", self._describe(config))

    def _build_handler(self, config: Configuration) -> IssueRequestHandler:
        return IssueRequestHandler(self.store, self.host_factory(config), self.tracker_factory(config))

    @staticmethod
    def _describe(config: Configuration) -> str:
        repos = ", ".join(f"{c.value}={r}" for c, r in config.repositories.items() if r)
        return f"repositories: {repos}; labels: {config.label_list}"
