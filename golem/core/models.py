"""Data models for golem."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

TICKET_STATUSES = ("new", "spec", "planning", "in-progress", "review", "done", "blocked")
COMMIT_TYPES = ("feat", "fix", "refactor", "docs", "test", "chore")
PRIORITIES = (1, 2, 3, 4)


def validate_status(status: str) -> str:
    if status not in TICKET_STATUSES:
        raise ValueError(f"Unknown status {status!r}; expected one of {', '.join(TICKET_STATUSES)}")
    return status


def validate_commit_type(commit_type: str) -> str:
    if commit_type not in COMMIT_TYPES:
        raise ValueError(f"Unknown type {commit_type!r}; expected one of {', '.join(COMMIT_TYPES)}")
    return commit_type


@dataclass
class FreshInfo:
    """Mirror of the Freshservice ticket."""

    id: str
    url: str
    subject: str
    description: str
    priority: int
    status: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "subject": self.subject,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FreshInfo":
        return cls(
            id=str(data["id"]),
            url=data.get("url", ""),
            subject=data.get("subject", ""),
            description=data.get("description") or "",
            priority=int(data.get("priority", 3)),
            status=int(data.get("status", 0)),
        )


@dataclass
class GiteaInfo:
    """Mirror of the Gitea issue and its pull request, if any."""

    repo: str
    issue_number: int
    url: str
    pr_number: Optional[int] = None
    pr_url: Optional[str] = None
    linked: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "repo": self.repo,
            "issueNumber": self.issue_number,
            "url": self.url,
        }
        if self.pr_number is not None:
            data["prNumber"] = self.pr_number
        if self.pr_url:
            data["prUrl"] = self.pr_url
        data["linked"] = self.linked
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GiteaInfo":
        pr_number = data.get("prNumber")
        return cls(
            repo=data["repo"],
            issue_number=int(data["issueNumber"]),
            url=data.get("url", ""),
            pr_number=int(pr_number) if pr_number is not None else None,
            pr_url=data.get("prUrl"),
            linked=bool(data.get("linked", True)),
        )


@dataclass
class GitInfo:
    """Worktree location, branch and the commits recorded for a ticket."""

    worktree: str
    branch: str
    commits: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "worktree": self.worktree,
            "branch": self.branch,
            "commits": list(self.commits),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GitInfo":
        return cls(
            worktree=data["worktree"],
            branch=data["branch"],
            commits=[str(c) for c in data.get("commits") or []],
        )


@dataclass
class TicketState:
    """The local source of truth linking Freshservice, Gitea and git."""

    id: str
    slug: str
    git: GitInfo
    type: str
    status: str = "new"
    fresh: Optional[FreshInfo] = None
    gitea: Optional[GiteaInfo] = None
    created: str = ""
    updated: str = ""
    spec_file: Optional[str] = None
    plan_file: Optional[str] = None

    def __post_init__(self):
        """Validate required fields."""
        if not self.id:
            raise ValueError("id is required")
        if not self.slug:
            raise ValueError("slug is required")
        validate_status(self.status)
        validate_commit_type(self.type)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "slug": self.slug,
            "fresh": self.fresh.to_dict() if self.fresh else None,
            "gitea": self.gitea.to_dict() if self.gitea else None,
            "git": self.git.to_dict(),
            "status": self.status,
            "type": self.type,
            "created": self.created,
            "updated": self.updated,
        }
        if self.spec_file:
            data["specFile"] = self.spec_file
        if self.plan_file:
            data["planFile"] = self.plan_file
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TicketState":
        fresh = data.get("fresh")
        gitea = data.get("gitea")
        return cls(
            id=str(data["id"]),
            slug=str(data["slug"]),
            fresh=FreshInfo.from_dict(fresh) if fresh else None,
            gitea=GiteaInfo.from_dict(gitea) if gitea else None,
            git=GitInfo.from_dict(data["git"]),
            status=data.get("status", "new"),
            type=data["type"],
            created=str(data.get("created", "")),
            updated=str(data.get("updated", "")),
            spec_file=data.get("specFile"),
            plan_file=data.get("planFile"),
        )


@dataclass
class WorktreeInfo:
    """A worktree as reported by `git worktree list`."""

    path: str
    branch: str
    commit_sha: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "branch": self.branch, "commitSha": self.commit_sha}


@dataclass
class WorktreeResult:
    """Outcome of creating (or reusing) a ticket worktree."""

    path: str
    created: bool
    warnings: List[str] = field(default_factory=list)


@dataclass
class SyncOutcome:
    """A ticket plus any best-effort steps that failed along the way."""

    ticket: TicketState
    warnings: List[str] = field(default_factory=list)


@dataclass
class SyncResult:
    """Per-target outcome of a status update."""

    success: bool
    fresh_updated: bool = False
    gitea_updated: bool = False
    local_updated: bool = False
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
