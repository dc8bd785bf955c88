"""Doc Up — turn Mattermost posts into GitHub documentation requests."""

from docup.config import Category, Configuration, ConfigurationError, ConfigStore, RepositoryTarget
from docup.handler import IssueRequestHandler, IssueCreationRequest, BadRequest, InternalError, Unauthorized
from docup.plugin import Plugin

__all__ = [
    "Category",
    "Configuration",
    "ConfigurationError",
    "ConfigStore",
    "RepositoryTarget",
    "IssueRequestHandler",
    "IssueCreationRequest",
    "BadRequest",
    "InternalError",
    "Unauthorized",
    "Plugin",
]
