"""Narrow interface for running git commands."""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from golem.core.errors import GitError
from golem.core.utils import get_git_env

logger = logging.getLogger(__name__)


class GitRunner:
    """Runs git as a subprocess and returns its output."""

    def __init__(self, executable: str = "git"):
        self.executable = executable

    def execute(self, args: List[str], cwd: Optional[Union[str, Path]] = None) -> str:
        """
        Run a git command.

        Args:
            args: Arguments after `git` (e.g., ["rev-parse", "HEAD"])
            cwd: Directory to run in

        Returns:
            Stripped stdout

        Raises:
            GitError: If git exits non-zero or cannot be started
        """
        logger.debug("git %s (cwd=%s)", " ".join(args), cwd)

        try:
            result = subprocess.run(
                [self.executable, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                env=get_git_env(),
            )
        except OSError as e:
            raise GitError(args, str(e))

        if result.returncode != 0:
            raise GitError(args, result.stderr or result.stdout, result.returncode)

        return result.stdout.strip()
