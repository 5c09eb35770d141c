"""golem: keep Freshservice tickets, Gitea issues and git worktrees in step."""

__version__ = "0.1.0"
