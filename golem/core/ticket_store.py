"""Ticket record store used by the sync engine and the CLI."""

from pathlib import Path
from typing import List, Optional

from golem.core.errors import NotFoundError
from golem.core.models import TicketState, validate_status
from golem.core.storage import TicketStorage
from golem.core.storage_yaml import YAMLTicketStorage
from golem.core.utils import utc_now_iso


class TicketStore:
    """Loads and persists ticket records by ID."""

    def __init__(self, storage: TicketStorage):
        """
        Initialize ticket store.

        Args:
            storage: Storage backend
        """
        self.storage = storage

    @classmethod
    def for_directory(cls, tickets_dir: Path) -> "TicketStore":
        """Create a store backed by YAML files in `tickets_dir`."""
        return cls(YAMLTicketStorage(tickets_dir))

    def load(self, ticket_id: str) -> Optional[TicketState]:
        """
        Get ticket by ID.

        Args:
            ticket_id: Ticket ID

        Returns:
            TicketState or None if not found
        """
        return self.storage.load(ticket_id)

    def save(self, state: TicketState) -> None:
        """
        Persist a ticket, stamping its `updated` time.

        Args:
            state: Ticket to save
        """
        state.updated = utc_now_iso()
        if not state.created:
            state.created = state.updated
        self.storage.save(state)

    def append_commit(self, ticket_id: str, commit_sha: str) -> TicketState:
        """
        Record a commit against a ticket.

        Args:
            ticket_id: Ticket ID
            commit_sha: Commit hash to append

        Returns:
            The updated ticket

        Raises:
            NotFoundError: If the ticket has no record
        """
        state = self.load(ticket_id)
        if state is None:
            raise NotFoundError(ticket_id)

        state.git.commits.append(commit_sha)
        self.save(state)
        return state

    def list(self, status: Optional[str] = None) -> List[TicketState]:
        """
        List tickets with an optional status filter.

        Args:
            status: Only return tickets in this status

        Returns:
            List of tickets
        """
        if status is not None:
            validate_status(status)

        tickets = []
        for ticket_id in self.storage.list_ids():
            state = self.load(ticket_id)
            if state is None:
                continue
            if status is None or state.status == status:
                tickets.append(state)
        return tickets
