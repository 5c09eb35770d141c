"""Error types raised by golem components."""

from typing import List, Optional


class GolemError(RuntimeError):
    """Base class for golem errors."""


class NotFoundError(GolemError):
    """A referenced ticket has no local record."""
    
    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__(f"Ticket {ticket_id} not found")


class InvalidFormatError(GolemError, ValueError):
    """A display ticket id does not match the expected prefix and digits."""
    
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid ticket ID format: {value}")


class RemoteError(GolemError):
    """A remote API call failed."""
    
    def __init__(self, service: str, status_code: Optional[int], body: str):
        self.service = service
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"{service} request failed: {body}")
        else:
            super().__init__(f"{service} API error {status_code}: {body}")


class GitError(GolemError):
    """A git command exited non-zero."""
    
    def __init__(self, args: List[str], stderr: str, returncode: Optional[int] = None):
        self.args_list = list(args)
        self.stderr = stderr
        self.returncode = returncode
        command = " ".join(["git", *self.args_list])
        super().__init__(f"Git command failed: {command}: {stderr.strip()}")


class ConfigError(GolemError):
    """Required configuration is missing or malformed."""
