"""Configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from golem.core.errors import ConfigError

GOLEM_DIR_NAME = ".golem"

DEFAULT_SOURCE_ID = 1002
DEFAULT_GROUP_ID = 38000120203
DEFAULT_CATEGORY = "Applications"
DEFAULT_EMAIL = "ace-bot@pearlriverresort.com"

FRESH_STATUS_OPEN = 2
FRESH_STATUS_CLOSED = 5


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"Missing {name} environment variable")
    return value


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


@dataclass
class SyncConfig:
    """Installation-specific values the sync engine needs for ticket creation."""

    helpdesk_domain: str
    default_group_id: int = DEFAULT_GROUP_ID
    default_category: str = DEFAULT_CATEGORY
    default_email: str = DEFAULT_EMAIL
    default_source_channel: int = DEFAULT_SOURCE_ID
    open_status_code: int = FRESH_STATUS_OPEN
    closed_status_code: int = FRESH_STATUS_CLOSED

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """
        Build the sync configuration from the environment.

        Raises:
            ConfigError: If FRESH_DOMAIN is unset or a numeric value is malformed
        """
        return cls(
            helpdesk_domain=_require("FRESH_DOMAIN"),
            default_group_id=_int_env("FRESH_DEFAULT_GROUP_ID", DEFAULT_GROUP_ID),
            default_category=os.getenv("FRESH_DEFAULT_CATEGORY", DEFAULT_CATEGORY),
            default_email=os.getenv("FRESH_DEFAULT_EMAIL", DEFAULT_EMAIL),
            default_source_channel=_int_env("FRESH_SOURCE_ID", DEFAULT_SOURCE_ID),
        )

    def agent_ticket_url(self, numeric_id: int) -> str:
        """URL of the ticket in the agent portal, used for back-links."""
        return f"https://{self.helpdesk_domain}/a/tickets/{numeric_id}"

    def helpdesk_ticket_url(self, numeric_id: int) -> str:
        """URL stored on the local record."""
        return f"https://{self.helpdesk_domain}/helpdesk/tickets/{numeric_id}"


@dataclass
class FreshserviceConfig:
    """Freshservice connection settings."""

    domain: str
    api_key: str

    @classmethod
    def from_env(cls) -> "FreshserviceConfig":
        domain = os.getenv("FRESH_DOMAIN")
        api_key = os.getenv("FRESH_API_KEY")
        if not domain or not api_key:
            raise ConfigError("Missing FRESH_DOMAIN or FRESH_API_KEY environment variables")
        return cls(domain=domain, api_key=api_key)


@dataclass
class GiteaConfig:
    """Gitea connection settings."""

    base_url: str
    token: str
    org: str

    @classmethod
    def from_env(cls) -> "GiteaConfig":
        base_url = os.getenv("GITEA_URL")
        token = os.getenv("GITEA_TOKEN")
        org = os.getenv("GITEA_ORG")
        if not base_url or not token or not org:
            raise ConfigError("Missing GITEA_URL, GITEA_TOKEN, or GITEA_ORG environment variables")
        return cls(base_url=base_url, token=token, org=org)


def default_repo(repo: Optional[str] = None) -> str:
    """
    Resolve the Gitea repository to operate on.

    Args:
        repo: Explicit repository, takes precedence over GITEA_REPO

    Returns:
        Repository identifier
    """
    resolved = repo or os.getenv("GITEA_REPO")
    if not resolved:
        raise ConfigError("--repo required or set GITEA_REPO")
    return resolved


@dataclass
class GolemContext:
    """Filesystem locations used by a golem invocation."""

    project_root: Path

    @property
    def golem_dir(self) -> Path:
        return self.project_root / GOLEM_DIR_NAME

    @property
    def tickets_dir(self) -> Path:
        return self.golem_dir / "tickets"

    @classmethod
    def from_cwd(cls) -> "GolemContext":
        return cls(project_root=Path.cwd())
