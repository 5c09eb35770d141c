"""Shared fixtures."""

from unittest.mock import Mock

import pytest

from golem.core.config import SyncConfig
from golem.core.models import FreshInfo, GiteaInfo, GitInfo, TicketState
from golem.core.sync import TicketSync
from golem.core.ticket_store import TicketStore


@pytest.fixture
def store(tmp_path):
    return TicketStore.for_directory(tmp_path / "tickets")


@pytest.fixture
def sync_config():
    return SyncConfig(helpdesk_domain="acme.freshservice.com")


@pytest.fixture
def fresh():
    return Mock()


@pytest.fixture
def gitea():
    return Mock()


@pytest.fixture
def sync(fresh, gitea, store, sync_config):
    return TicketSync(fresh=fresh, gitea=gitea, store=store, repo="CRDE/dashboard-api", config=sync_config)


@pytest.fixture
def fresh_ticket():
    return {
        "id": 4521,
        "subject": "Fix login bug",
        "description": "<div>Users cannot log in</div>",
        "description_text": "Users cannot log in",
        "priority": 1,
        "status": 2,
        "ticket_type": "Incident",
    }


@pytest.fixture
def gitea_issue():
    return {
        "number": 17,
        "title": "[INC-4521] Fix login bug",
        "html_url": "https://git.example.com/CRDE/dashboard-api/issues/17",
    }


def make_ticket(ticket_id="INC-4521", slug="login-bug", commit_type="fix", fresh=True, gitea=True, **kwargs):
    """Build a ticket record the way the sync engine would."""
    branch = f"{commit_type}/{ticket_id}-{slug}"
    return TicketState(
        id=ticket_id,
        slug=slug,
        type=commit_type,
        fresh=FreshInfo(
            id=ticket_id,
            url="https://acme.freshservice.com/helpdesk/tickets/4521",
            subject="Fix login bug",
            description="Users cannot log in",
            priority=1,
            status=2,
        ) if fresh else None,
        gitea=GiteaInfo(
            repo="CRDE/dashboard-api",
            issue_number=17,
            url="https://git.example.com/CRDE/dashboard-api/issues/17",
        ) if gitea else None,
        git=GitInfo(worktree=f".golem/worktrees/{branch}", branch=branch),
        **kwargs,
    )


@pytest.fixture
def ticket_factory():
    return make_ticket
