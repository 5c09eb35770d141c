"""Core ticket sync and worktree components."""
