"""
Ticket sync between Freshservice, Gitea and the local record.

The local record (.golem/tickets/<id>.yaml) is the source of truth. Remote
systems are mirrors: creating the primary remote entities must succeed, but
notes, comments and status mirroring are best-effort and never roll back
local state.
"""

import logging
import re
from typing import Any, Dict, Optional, Union

from golem.core.config import SyncConfig
from golem.core.errors import NotFoundError
from golem.core.freshservice import FreshserviceClient
from golem.core.gitea import GiteaClient
from golem.core.models import (
    FreshInfo,
    GiteaInfo,
    GitInfo,
    PRIORITIES,
    SyncOutcome,
    SyncResult,
    TicketState,
    validate_commit_type,
    validate_status,
)
from golem.core.ticket_store import TicketStore
from golem.core.utils import generate_branch_name, generate_worktree_path

logger = logging.getLogger(__name__)

NOTE_PREFIX = "🤖 Golem: "

DIGITS_PATTERN = re.compile(r"\d+", re.ASCII)


class TicketSync:
    """Creates, imports and updates tickets across all three systems."""

    def __init__(
        self,
        fresh: FreshserviceClient,
        gitea: GiteaClient,
        store: TicketStore,
        repo: str,
        config: SyncConfig,
    ):
        """
        Initialize the sync engine.

        Args:
            fresh: Freshservice client
            gitea: Gitea client
            store: Local ticket store
            repo: Gitea repository issues are created in
            config: Installation-specific ticket defaults
        """
        self.fresh = fresh
        self.gitea = gitea
        self.store = store
        self.repo = repo
        self.config = config

    def _issue_body(self, description: str, ticket_id: str, numeric_id: int, commit_type: str) -> str:
        fresh_url = self.config.agent_ticket_url(numeric_id)
        return (
            f"{description}\n\n---\n"
            f"**Freshservice:** [{ticket_id}]({fresh_url})\n"
            f"**Type:** {commit_type}"
        )

    def _create_issue(
        self, ticket_id: str, numeric_id: int, subject: str, description: str, commit_type: str
    ) -> Dict[str, Any]:
        issue = self.gitea.create_issue(
            self.repo,
            title=f"[{ticket_id}] {subject}",
            body=self._issue_body(description, ticket_id, numeric_id, commit_type),
        )
        logger.info("Created Gitea issue #%s for %s", issue["number"], ticket_id)
        return issue

    def _build_state(
        self,
        ticket_id: str,
        slug: str,
        commit_type: str,
        fresh_ticket: Dict[str, Any],
        issue: Dict[str, Any],
        linked: bool,
    ) -> TicketState:
        branch = generate_branch_name(commit_type, ticket_id, slug)
        return TicketState(
            id=ticket_id,
            slug=slug,
            type=commit_type,
            status="new",
            fresh=FreshInfo(
                id=ticket_id,
                url=self.config.helpdesk_ticket_url(fresh_ticket["id"]),
                subject=fresh_ticket["subject"],
                description=fresh_ticket.get("description_text") or "",
                priority=int(fresh_ticket.get("priority", 3)),
                status=int(fresh_ticket.get("status", self.config.open_status_code)),
            ),
            gitea=GiteaInfo(
                repo=self.repo,
                issue_number=int(issue["number"]),
                url=issue["html_url"],
                linked=linked,
            ),
            git=GitInfo(
                worktree=generate_worktree_path(branch),
                branch=branch,
            ),
        )

    def _link_back(self, state: TicketState, warnings: list) -> None:
        """Add the Gitea link note to the Freshservice ticket and mark the record linked."""
        numeric_id = FreshserviceClient.parse_ticket_id(state.id)
        try:
            self.fresh.add_note(numeric_id, f"🔗 Gitea Issue: {state.gitea.url}", private=True)
        except Exception as e:
            message = f"Failed to link {state.id} to Gitea issue #{state.gitea.issue_number}: {e}"
            logger.warning(message)
            warnings.append(message)
            return

        state.gitea.linked = True
        self.store.save(state)

    def create_linked(
        self,
        subject: str,
        description: str,
        commit_type: str,
        slug: str,
        priority: int = 3,
    ) -> SyncOutcome:
        """
        Create a new ticket in Freshservice and Gitea, linked together.

        Args:
            subject: Ticket subject
            description: Ticket description
            commit_type: Conventional commit type for the branch
            slug: Short name for the branch
            priority: 1 (urgent) to 4 (low)

        Returns:
            SyncOutcome with the persisted ticket

        Raises:
            RemoteError: If creating the Freshservice ticket or Gitea issue fails
        """
        validate_commit_type(commit_type)
        if priority not in PRIORITIES:
            raise ValueError(f"priority must be one of {PRIORITIES}, got {priority!r}")

        fresh_ticket = self.fresh.create_ticket(
            subject=subject,
            description=description,
            priority=priority,
            status=self.config.open_status_code,
            source=self.config.default_source_channel,
            group_id=self.config.default_group_id,
            category=self.config.default_category,
            email=self.config.default_email,
        )
        ticket_id = FreshserviceClient.format_ticket_id(
            fresh_ticket["id"], fresh_ticket.get("ticket_type")
        )
        logger.info("Created Freshservice ticket %s", ticket_id)

        issue = self._create_issue(ticket_id, fresh_ticket["id"], subject, description, commit_type)

        # Persist before the link-back note so a failure there leaves a resumable record
        state = self._build_state(ticket_id, slug, commit_type, fresh_ticket, issue, linked=False)
        self.store.save(state)

        warnings = []
        self._link_back(state, warnings)
        return SyncOutcome(ticket=state, warnings=warnings)

    def import_existing(
        self,
        fresh_ticket_id: Union[int, str],
        commit_type: str,
        slug: str,
    ) -> SyncOutcome:
        """
        Import an existing Freshservice ticket and link it to a Gitea issue.

        Importing the same ticket twice returns the existing record untouched.

        Args:
            fresh_ticket_id: Numeric ID, digit string or display ID ("INC-1234")
            commit_type: Conventional commit type for the branch
            slug: Short name for the branch

        Returns:
            SyncOutcome with the persisted ticket

        Raises:
            InvalidFormatError: If the ID cannot be parsed
            RemoteError: If fetching the ticket or creating the issue fails
        """
        validate_commit_type(commit_type)

        if isinstance(fresh_ticket_id, int):
            numeric_id = fresh_ticket_id
        elif DIGITS_PATTERN.fullmatch(fresh_ticket_id.strip()):
            numeric_id = int(fresh_ticket_id.strip())
        else:
            numeric_id = FreshserviceClient.parse_ticket_id(fresh_ticket_id)

        fresh_ticket = self.fresh.get_ticket(numeric_id)
        ticket_id = FreshserviceClient.format_ticket_id(
            fresh_ticket["id"], fresh_ticket.get("ticket_type")
        )

        existing = self.store.load(ticket_id)
        if existing:
            logger.info("Ticket %s already imported, returning existing state", ticket_id)
            return SyncOutcome(ticket=existing)

        issue = self.gitea.find_issue_by_ticket_id(self.repo, ticket_id)
        if issue:
            logger.info("Found existing Gitea issue #%s for %s", issue["number"], ticket_id)
            state = self._build_state(ticket_id, slug, commit_type, fresh_ticket, issue, linked=True)
            self.store.save(state)
            return SyncOutcome(ticket=state)

        issue = self._create_issue(
            ticket_id,
            fresh_ticket["id"],
            fresh_ticket["subject"],
            fresh_ticket.get("description_text") or "",
            commit_type,
        )

        state = self._build_state(ticket_id, slug, commit_type, fresh_ticket, issue, linked=False)
        self.store.save(state)

        warnings = []
        self._link_back(state, warnings)
        return SyncOutcome(ticket=state, warnings=warnings)

    def relink(self, ticket_id: str) -> SyncOutcome:
        """
        Retry the Freshservice link-back note for a record left pending.

        Args:
            ticket_id: Ticket ID

        Raises:
            NotFoundError: If the ticket has no record
        """
        state = self._require(ticket_id)
        warnings = []
        if state.fresh and state.gitea and not state.gitea.linked:
            self._link_back(state, warnings)
        return SyncOutcome(ticket=state, warnings=warnings)

    def update_status(self, ticket_id: str, new_status: str, note: Optional[str] = None) -> SyncResult:
        """
        Update ticket status locally and mirror it to Freshservice and Gitea.

        The local record always takes the new status. Each remote is attempted
        independently; failures are reported in the result, not raised.

        Args:
            ticket_id: Ticket ID
            new_status: New workflow status
            note: Message to post instead of the generated transition text

        Returns:
            SyncResult describing which targets were updated
        """
        validate_status(new_status)

        state = self.store.load(ticket_id)
        if state is None:
            return SyncResult(success=False, error=f"Ticket {ticket_id} not found")

        old_status = state.status
        state.status = new_status
        status_message = note or f"Status: {old_status} → {new_status}"
        done = new_status == "done"

        result = SyncResult(success=True)

        if state.fresh:
            try:
                fresh_id = FreshserviceClient.parse_ticket_id(state.fresh.id)
                self.fresh.add_note(fresh_id, f"{NOTE_PREFIX}{status_message}", private=True)
                if done:
                    self.fresh.close_ticket(
                        fresh_id, status_message, status=self.config.closed_status_code
                    )
                    state.fresh.status = self.config.closed_status_code
                result.fresh_updated = True
            except Exception as e:
                message = f"Failed to update Freshservice for {ticket_id}: {e}"
                logger.warning(message)
                result.warnings.append(message)

        if state.gitea:
            try:
                self.gitea.add_issue_comment(
                    state.gitea.repo, state.gitea.issue_number, f"{NOTE_PREFIX}{status_message}"
                )
                if done:
                    self.gitea.close_issue(state.gitea.repo, state.gitea.issue_number)
                result.gitea_updated = True
            except Exception as e:
                message = f"Failed to update Gitea for {ticket_id}: {e}"
                logger.warning(message)
                result.warnings.append(message)

        self.store.save(state)
        result.local_updated = True
        return result

    def record_commit(self, ticket_id: str, commit_sha: str) -> TicketState:
        """
        Record a commit against a ticket.

        Raises:
            NotFoundError: If the ticket has no record
        """
        return self.store.append_commit(ticket_id, commit_sha)

    def link_pull_request(self, ticket_id: str, pr_number: int, pr_url: str) -> TicketState:
        """
        Store a pull request on the ticket's Gitea mirror.

        Raises:
            NotFoundError: If the ticket has no record
            ValueError: If the ticket has no Gitea issue
        """
        state = self._require(ticket_id)
        if state.gitea is None:
            raise ValueError(f"Ticket {ticket_id} has no Gitea issue")

        state.gitea.pr_number = pr_number
        state.gitea.pr_url = pr_url
        self.store.save(state)
        return state

    def _require(self, ticket_id: str) -> TicketState:
        state = self.store.load(ticket_id)
        if state is None:
            raise NotFoundError(ticket_id)
        return state
