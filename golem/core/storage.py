"""Abstract storage interface for ticket persistence."""

from abc import ABC, abstractmethod
from typing import List, Optional

from golem.core.models import TicketState


class TicketStorage(ABC):
    """Abstract base class for ticket storage backends."""
    
    @abstractmethod
    def load(self, ticket_id: str) -> Optional[TicketState]:
        """
        Load a ticket by ID.
        
        Args:
            ticket_id: Display ticket ID (e.g., "INC-1234")
            
        Returns:
            TicketState or None if missing or unreadable
        """
        pass
    
    @abstractmethod
    def save(self, state: TicketState) -> None:
        """
        Write the full ticket record, replacing any previous version.
        
        Args:
            state: Ticket to persist
        """
        pass
    
    @abstractmethod
    def list_ids(self) -> List[str]:
        """
        List the IDs of all persisted tickets.
        
        Returns:
            Ticket IDs in storage order
        """
        pass
