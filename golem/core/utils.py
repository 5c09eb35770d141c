"""Utility functions for golem."""

import os
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Dict

from golem.core.config import GOLEM_DIR_NAME

WORKTREES_DIR = f"{GOLEM_DIR_NAME}/worktrees"


def get_git_env() -> Dict[str, str]:
    """
    Get git environment variables for non-interactive operation.

    Returns:
        Dictionary of environment variables for git operations
    """
    return {
        **os.environ,
        "GIT_TERMINAL_PROMPT": "0",  # Disable terminal prompts
        "GIT_ASKPASS": "echo",       # Use echo as askpass (returns empty)
    }


def generate_branch_name(commit_type: str, ticket_id: str, slug: str) -> str:
    """
    Generate a branch name in the format: <type>/<TICKET-ID>-<slug>

    Args:
        commit_type: Conventional commit type (e.g., "fix")
        ticket_id: Display ticket ID (e.g., "INC-1234")
        slug: Short descriptive name for the ticket

    Returns:
        Branch name string
    """
    return f"{commit_type}/{ticket_id}-{slug}"


def generate_worktree_path(branch_name: str, worktrees_dir: str = WORKTREES_DIR) -> str:
    """Worktree location for a branch, relative to the repository root."""
    return str(PurePosixPath(worktrees_dir) / branch_name)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
