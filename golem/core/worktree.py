"""Git worktree management, one isolated worktree per ticket."""

import logging
from pathlib import Path
from typing import List, Optional, Union

from golem.core.errors import GitError
from golem.core.git_ops import GitRunner
from golem.core.models import TicketState, WorktreeInfo, WorktreeResult
from golem.core.utils import WORKTREES_DIR

logger = logging.getLogger(__name__)

REMOTE = "origin"
REMOTE_HEAD_REF = f"refs/remotes/{REMOTE}/HEAD"


def parse_worktree_list(output: str) -> List[WorktreeInfo]:
    """
    Parse `git worktree list --porcelain` output.

    Blocks are separated by blank lines. Blocks without a path, branch
    and HEAD (bare or detached worktrees) are dropped.

    Args:
        output: Porcelain output

    Returns:
        List of worktrees
    """
    worktrees = []
    current = {}

    for line in output.splitlines() + [""]:
        if line.startswith("worktree "):
            current["path"] = line[len("worktree "):]
        elif line.startswith("HEAD "):
            current["commit_sha"] = line[len("HEAD "):]
        elif line.startswith("branch "):
            current["branch"] = line[len("branch "):].replace("refs/heads/", "", 1)
        elif line == "":
            if current.get("path") and current.get("branch") and current.get("commit_sha"):
                worktrees.append(WorktreeInfo(**current))
            current = {}

    return worktrees


class WorktreeManager:
    """Creates, inspects and rewrites per-ticket worktrees."""

    def __init__(
        self,
        runner: Optional[GitRunner] = None,
        repo_root: Optional[Union[str, Path]] = None,
        worktrees_dir: str = WORKTREES_DIR,
    ):
        """
        Initialize the worktree manager.

        Args:
            runner: Git command runner (a real one if not provided)
            repo_root: Repository root; discovered from the current directory if not provided
            worktrees_dir: Worktree container, relative to the repository root

        Raises:
            GitError: If no repository root can be found
        """
        self.runner = runner or GitRunner()
        if repo_root is None:
            repo_root = self.runner.execute(["rev-parse", "--show-toplevel"])
        self.repo_root = Path(repo_root)
        self.worktrees_dir = worktrees_dir

    def _git(self, args: List[str], cwd: Optional[Union[str, Path]] = None) -> str:
        return self.runner.execute(args, cwd=cwd or self.repo_root)

    def resolve_path(self, path: Union[str, Path]) -> Path:
        """Make a worktree path absolute against the repository root."""
        path = Path(path)
        if path.is_absolute():
            return path
        return self.repo_root / path

    def default_branch(self) -> str:
        """
        Get the default branch of the remote.

        Uses the remote HEAD pointer, falling back to a local `main` and then
        `master` when no remote HEAD is configured.
        """
        try:
            ref = self._git(["symbolic-ref", REMOTE_HEAD_REF])
            return ref.replace(f"refs/remotes/{REMOTE}/", "", 1)
        except GitError:
            logger.debug("No %s configured, checking local branches", REMOTE_HEAD_REF)

        try:
            self._git(["rev-parse", "--verify", "main"])
            return "main"
        except GitError:
            self._git(["rev-parse", "--verify", "master"])
            return "master"

    def list_worktrees(self) -> List[WorktreeInfo]:
        """List all worktrees that have a branch checked out."""
        return parse_worktree_list(self._git(["worktree", "list", "--porcelain"]))

    def find_worktree(self, branch: str) -> Optional[WorktreeInfo]:
        for worktree in self.list_worktrees():
            if worktree.branch == branch:
                return worktree
        return None

    def create(self, ticket: TicketState, base_branch: Optional[str] = None) -> WorktreeResult:
        """
        Create a worktree for a ticket on a new branch.

        Returns the existing worktree if one already has the ticket's branch.

        Args:
            ticket: Ticket whose branch and worktree path to use
            base_branch: Branch to start from (remote default branch if not provided)

        Returns:
            WorktreeResult with the worktree path

        Raises:
            GitError: If `git worktree add` fails
        """
        (self.repo_root / self.worktrees_dir).mkdir(parents=True, exist_ok=True)

        branch = ticket.git.branch
        existing = self.find_worktree(branch)
        if existing:
            logger.info("Worktree for %s already exists at %s", branch, existing.path)
            return WorktreeResult(path=existing.path, created=False)

        warnings = []
        try:
            self._git(["fetch", REMOTE])
        except GitError as e:
            # Offline is fine, the worktree starts from the last fetched state
            message = f"Fetch from {REMOTE} failed: {e.stderr.strip()}"
            logger.warning(message)
            warnings.append(message)

        base = base_branch or self.default_branch()
        worktree_path = self.resolve_path(ticket.git.worktree)

        self._git(["worktree", "add", "-b", branch, str(worktree_path), f"{REMOTE}/{base}"])
        logger.info("Created worktree %s on %s from %s/%s", worktree_path, branch, REMOTE, base)

        return WorktreeResult(path=str(worktree_path), created=True, warnings=warnings)

    def remove(self, path: Union[str, Path]) -> bool:
        """
        Remove a worktree registration and its directory. The branch is kept.

        Args:
            path: Worktree path

        Returns:
            False if there was nothing to remove
        """
        worktree_path = self.resolve_path(path)
        if not worktree_path.exists():
            return False

        self._git(["worktree", "remove", str(worktree_path), "--force"])
        return True

    def current_branch(self, path: Union[str, Path]) -> str:
        return self._git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=self.resolve_path(path))

    def commits_since_base(self, path: Union[str, Path], base_branch: Optional[str] = None) -> List[str]:
        """
        List commits on the worktree's branch that are not on the base branch.

        Args:
            path: Worktree path
            base_branch: Base branch (remote default branch if not provided)

        Returns:
            Commit hashes, newest first
        """
        base = base_branch or self.default_branch()
        output = self._git(
            ["log", f"{REMOTE}/{base}..HEAD", "--format=%H"],
            cwd=self.resolve_path(path),
        )
        return output.splitlines() if output else []

    def squash(self, path: Union[str, Path], message: str, base_branch: Optional[str] = None) -> str:
        """
        Squash all commits since the merge base into one.

        This rewrites history; push with force afterwards.

        Args:
            path: Worktree path
            message: Message for the squashed commit
            base_branch: Base branch (remote default branch if not provided)

        Returns:
            Hash of the new commit, or of HEAD if nothing had diverged
        """
        worktree_path = self.resolve_path(path)
        base = base_branch or self.default_branch()

        if not self.commits_since_base(worktree_path, base):
            logger.info("Nothing to squash in %s", worktree_path)
            return self._git(["rev-parse", "HEAD"], cwd=worktree_path)

        merge_base = self._git(["merge-base", "HEAD", f"{REMOTE}/{base}"], cwd=worktree_path)
        self._git(["reset", "--soft", merge_base], cwd=worktree_path)
        self._git(["commit", "-m", message], cwd=worktree_path)

        return self._git(["rev-parse", "HEAD"], cwd=worktree_path)

    def create_commit(self, path: Union[str, Path], message: str) -> str:
        """
        Stage everything and commit it.

        Args:
            path: Worktree path
            message: Commit message

        Returns:
            Hash of the new commit, or "" if there was nothing to commit
        """
        worktree_path = self.resolve_path(path)

        self._git(["add", "-A"], cwd=worktree_path)
        if not self._git(["diff", "--cached", "--name-only"], cwd=worktree_path):
            return ""

        self._git(["commit", "-m", message], cwd=worktree_path)
        return self._git(["rev-parse", "HEAD"], cwd=worktree_path)

    def push(self, path: Union[str, Path], force: bool = False) -> None:
        """
        Push HEAD to the same-named branch on the remote.

        Args:
            path: Worktree path
            force: Force push, refusing if the remote moved since the last fetch
        """
        args = ["push", "-u", REMOTE, "HEAD"]
        if force:
            args.append("--force-with-lease")
        self._git(args, cwd=self.resolve_path(path))
