"""Freshservice helpdesk API client."""

import logging
import re
from typing import Any, Dict, List, Optional

import requests

from golem.core.config import FRESH_STATUS_CLOSED, FreshserviceConfig
from golem.core.errors import InvalidFormatError, RemoteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Freshservice"

TICKET_ID_PATTERN = re.compile(r"(INC|SR)-?(\d+)", re.IGNORECASE)
TYPE_PREFIXES = {
    "Incident": "INC",
    "Service Request": "SR",
}


class FreshserviceClient:
    """Talk to the Freshservice v2 REST API."""

    def __init__(self, domain: str, api_key: str, timeout: Optional[float] = None):
        """
        Initialize the client.

        Args:
            domain: Freshservice domain (e.g., "yourcompany.freshservice.com")
            api_key: API key, sent as the basic-auth username
            timeout: Optional per-request timeout in seconds
        """
        self.base_url = f"https://{domain}/api/v2"
        self.timeout = timeout

        self._session = requests.Session()
        self._session.auth = (api_key, "X")
        self._session.headers.update({"Content-Type": "application/json"})

    @classmethod
    def from_env(cls) -> "FreshserviceClient":
        """
        Create client from environment variables.

        Raises:
            ConfigError: If FRESH_DOMAIN or FRESH_API_KEY is unset
        """
        config = FreshserviceConfig.from_env()
        return cls(config.domain, config.api_key)

    def _request(self, method: str, endpoint: str, body: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s", method, url)

        try:
            response = self._session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteError(SERVICE_NAME, None, str(e))

        if not response.ok:
            raise RemoteError(SERVICE_NAME, response.status_code, response.text)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get_ticket(self, ticket_id: int) -> Dict[str, Any]:
        """
        Get a ticket by ID.

        Args:
            ticket_id: Numeric Freshservice ticket ID

        Returns:
            Ticket data from the API
        """
        return self._request("GET", f"/tickets/{ticket_id}")["ticket"]

    def get_my_tickets(self) -> List[Dict[str, Any]]:
        """Get open tickets assigned to the API key's agent."""
        return self._request("GET", "/tickets?filter=new_and_my_open")["tickets"]

    def create_ticket(
        self,
        subject: str,
        description: str,
        priority: int = 3,
        status: Optional[int] = None,
        source: Optional[int] = None,
        group_id: Optional[int] = None,
        category: Optional[str] = None,
        email: Optional[str] = None,
        **extra: Any,
    ) -> Dict[str, Any]:
        """
        Create a new ticket.

        Args:
            subject: Ticket subject
            description: Ticket description (HTML allowed)
            priority: 1 (urgent) to 4 (low)
            status: Status code
            source: Source channel ID
            group_id: Routing group ID
            category: Category name
            email: Requester email
            **extra: Any further ticket fields (e.g., custom_fields)

        Returns:
            Created ticket data
        """
        payload: Dict[str, Any] = {
            "subject": subject,
            "description": description,
            "priority": priority,
        }
        optional = {
            "status": status,
            "source": source,
            "group_id": group_id,
            "category": category,
            "email": email,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        payload.update(extra)

        return self._request("POST", "/tickets", {"ticket": payload})["ticket"]

    def update_ticket(self, ticket_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update ticket fields.

        Args:
            ticket_id: Numeric ticket ID
            updates: Fields to change

        Returns:
            Updated ticket data
        """
        return self._request("PUT", f"/tickets/{ticket_id}", {"ticket": updates})["ticket"]

    def add_note(self, ticket_id: int, body: str, private: bool = True) -> None:
        """
        Add a note to a ticket.

        Args:
            ticket_id: Numeric ticket ID
            body: Note text
            private: Whether the note is hidden from the requester
        """
        self._request("POST", f"/tickets/{ticket_id}/notes", {"body": body, "private": private})

    def close_ticket(
        self,
        ticket_id: int,
        resolution: Optional[str] = None,
        status: int = FRESH_STATUS_CLOSED,
    ) -> Dict[str, Any]:
        """
        Close a ticket, adding the resolution as a note first.

        Args:
            ticket_id: Numeric ticket ID
            resolution: Optional resolution text
            status: Status code the helpdesk uses for closed tickets

        Returns:
            Updated ticket data
        """
        if resolution:
            self.add_note(ticket_id, f"**Resolution:**\n{resolution}")
        return self.update_ticket(ticket_id, {"status": status})

    @staticmethod
    def format_ticket_id(ticket_id: int, ticket_type: Optional[str] = "Incident") -> str:
        """
        Format a ticket ID for display (e.g., 1234 -> "INC-1234").

        Args:
            ticket_id: Numeric ticket ID
            ticket_type: Freshservice ticket type; anything other than a
                service request gets the incident prefix
        """
        prefix = TYPE_PREFIXES.get(ticket_type or "Incident", "INC")
        return f"{prefix}-{int(ticket_id)}"

    @staticmethod
    def parse_ticket_id(value: str) -> int:
        """
        Parse the numeric ID out of a display ID (e.g., "INC-1234" -> 1234).

        Raises:
            InvalidFormatError: If no INC/SR prefix followed by digits is found
        """
        match = TICKET_ID_PATTERN.search(value)
        if not match:
            raise InvalidFormatError(value)
        return int(match.group(2))
