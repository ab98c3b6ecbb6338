"""
Rust Anthology - Git Commands

Thin wrapper around the git CLI used by the publisher.

Every command runs with check semantics: a non-zero exit raises
GitCommandError carrying git's stderr. Command lines are censored before
they reach logs or exception messages because the push remote embeds the
GitHub token.
"""

import subprocess
from pathlib import Path
from typing import Optional

from config.logging import censor_sensitive_data, get_logger


logger = get_logger(__name__)


class GitCommandError(Exception):
    """A git command exited non-zero, timed out, or could not be started."""

    def __init__(self, args: list[str], returncode: Optional[int], stderr: str = ""):
        self.command = censor_sensitive_data(" ".join(args))
        self.returncode = returncode
        self.stderr = censor_sensitive_data(stderr.strip())
        detail = f": {self.stderr}" if self.stderr else ""
        if returncode is None:
            message = f"`{self.command}` did not complete{detail}"
        else:
            message = f"`{self.command}` exited with status {returncode}{detail}"
        super().__init__(message)


class GitRepository:
    """
    A git working tree operated through the git CLI.

    Args:
        path: Working tree root
        git_command: git executable
        timeout: Seconds allowed for each command
    """

    def __init__(self, path: Path, git_command: str = "git", timeout: int = 300):
        self.path = path
        self.git_command = git_command
        self.timeout = timeout

    def run(self, *args: str) -> str:
        """
        Run a git subcommand in the working tree.

        Returns:
            The command's stdout, stripped

        Raises:
            GitCommandError: If git fails, times out, or is not installed
        """
        command = [self.git_command, *args]
        logger.debug(f"Running: {censor_sensitive_data(' '.join(command))}")

        try:
            result = subprocess.run(
                command,
                cwd=self.path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GitCommandError(command, None, f"timed out after {self.timeout}s") from e
        except FileNotFoundError as e:
            raise GitCommandError(command, None, f"executable not found: {self.git_command}") from e

        if result.returncode != 0:
            raise GitCommandError(command, result.returncode, result.stderr)

        return result.stdout.strip()

    # =========================================================================
    # Queries
    # =========================================================================

    def short_revision(self, ref: str = "HEAD") -> str:
        """Get the abbreviated hash of a commit."""
        return self.run("rev-parse", "--short", ref)

    def full_revision(self, ref: str = "HEAD") -> str:
        return self.run("rev-parse", ref)

    # =========================================================================
    # Mutations
    # =========================================================================

    def init(self) -> None:
        self.run("init", "-q")

    def add_remote(self, name: str, url: str) -> None:
        self.run("remote", "add", name, url)

    def set_identity(self, name: str, email: str) -> None:
        """Set the committer identity for this repository only."""
        self.run("config", "user.name", name)
        self.run("config", "user.email", email)

    def add_all(self) -> None:
        self.run("add", "-A", ".")

    def commit(self, message: str) -> str:
        """
        Commit the index.

        Returns:
            The new commit's full hash
        """
        self.run("commit", "-q", "-m", message)
        return self.full_revision()

    def force_push(self, remote: str, branch: str) -> None:
        """Replace the remote branch with HEAD."""
        self.run("push", "-q", remote, f"HEAD:refs/heads/{branch}", "--force")


__all__ = [
    "GitCommandError",
    "GitRepository",
]
