"""
Rust Anthology - Pages Publisher

Publishes the build output to the gh-pages branch as the latest snapshot.

Preconditions (checked in order, first failure wins):
1. Running on Travis (TRAVIS_BRANCH set)           -> FAILED otherwise
2. TRAVIS_BRANCH is the canonical branch           -> SKIPPED otherwise
3. The build output directory exists               -> FAILED otherwise
4. A push destination is configured (GH_TOKEN)     -> FAILED otherwise

Then the output directory becomes a fresh git repository with a single
commit, which is force-pushed over the hosting branch. History on the
hosting branch is not kept.

Usage:
    publisher = PagesPublisher()
    result = publisher.publish()
"""

import enum
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from config.settings import get_settings
from config.logging import get_logger
from publishing.git import GitCommandError, GitRepository


logger = get_logger(__name__)


class PublishStatus(enum.Enum):
    """Outcome of a publish run."""
    PUBLISHED = "published"          # Snapshot pushed (or prepared, in dry run)
    SKIPPED = "skipped"              # Not the canonical branch; nothing to do
    FAILED = "failed"                # Precondition or git failure


@dataclass
class PublishResult:
    """Result of a publish operation."""

    status: PublishStatus = PublishStatus.PUBLISHED
    reason: str = ""
    dry_run: bool = False

    source_revision: Optional[str] = None
    commit_sha: Optional[str] = None
    commit_message: Optional[str] = None
    branch: Optional[str] = None
    pushed: bool = False

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True for a publish or an intentional skip."""
        return self.status != PublishStatus.FAILED

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def duration_seconds(self) -> float:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def fail(self, message: str) -> None:
        """Record an error and mark the publish as failed."""
        self.errors.append(message)
        self.reason = message
        self.status = PublishStatus.FAILED

    def skip(self, message: str) -> None:
        self.reason = message
        self.status = PublishStatus.SKIPPED


class PagesPublisher:
    """
    Force-pushes the build output to the hosting branch.

    The source repository (for the revision hash) and the output directory
    (the isolated repository) are separate working trees.
    """

    REMOTE_NAME = "upstream"

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        source_dir: Optional[Path] = None,
    ):
        """
        Initialize the publisher.

        Args:
            output_dir: Build output root (default: settings, "out")
            source_dir: Source repository checkout (default: project root)
        """
        self.settings = get_settings()
        self.output_dir = output_dir or self.settings.get_output_path()
        self.source_dir = source_dir or self.settings.project_root

    def publish(self, dry_run: bool = False) -> PublishResult:
        """
        Publish the build output.

        Args:
            dry_run: Prepare the commit but do not push

        Returns:
            PublishResult with a PUBLISHED, SKIPPED, or FAILED status
        """
        result = PublishResult(dry_run=dry_run, branch=self.settings.pages_branch)

        if self._check_preconditions(result):
            logger.info(
                "Committing book directory to hosting branch",
                extra={
                    "output_dir": str(self.output_dir),
                    "branch": self.settings.pages_branch,
                    "dry_run": dry_run,
                },
            )
            try:
                self._commit_and_push(result, dry_run)
            except GitCommandError as e:
                logger.error(f"Publish failed: {e}")
                result.fail(str(e))

        result.completed_at = datetime.now(timezone.utc)

        logger.info(
            "Publish complete",
            extra={
                "status": result.status.value,
                "revision": result.source_revision,
                "pushed": result.pushed,
                "duration_seconds": result.duration_seconds,
            },
        )

        return result

    def _check_preconditions(self, result: PublishResult) -> bool:
        """
        Run the ordered precondition checks.

        Returns:
            True if publishing should proceed; otherwise result is updated
        """
        settings = self.settings

        if not settings.is_ci:
            result.fail("This script may only be run from Travis!")
            logger.error(result.reason)
            return False

        if not settings.is_canonical_branch:
            result.skip(
                f"This commit was made against '{settings.travis_branch}' "
                f"and not {settings.canonical_branch}! No deploy!"
            )
            logger.info(result.reason)
            return False

        if not self.output_dir.is_dir():
            result.fail(f"Build output not found at {self.output_dir}. Run the builder first")
            logger.error(result.reason)
            return False

        if not settings.has_push_credentials:
            result.fail("GH_TOKEN is not set; cannot push to the hosting branch")
            logger.error(result.reason)
            return False

        return True

    def _commit_and_push(self, result: PublishResult, dry_run: bool) -> None:
        """Create the isolated repository, commit the output, and push it."""
        settings = self.settings

        source = GitRepository(self.source_dir, settings.git_command, settings.git_timeout_seconds)
        result.source_revision = source.short_revision()

        self._remove_stale_repository()

        repo = GitRepository(self.output_dir, settings.git_command, settings.git_timeout_seconds)
        repo.init()
        repo.add_remote(self.REMOTE_NAME, settings.get_remote_url())
        repo.set_identity(settings.commit_author_name, settings.commit_author_email)
        repo.add_all()

        result.commit_message = (
            f"Build {settings.book_title} at {settings.get_repo_slug()}@{result.source_revision}"
        )
        result.commit_sha = repo.commit(result.commit_message)
        logger.info(f"Committed {result.commit_sha[:12]}: {result.commit_message}")

        if dry_run:
            logger.info(f"[DRY RUN] Would force-push to {settings.pages_branch}")
            return

        logger.info(f"Pushing {settings.pages_branch} to {settings.pages_repository}")
        repo.force_push(self.REMOTE_NAME, settings.pages_branch)
        result.pushed = True

    def _remove_stale_repository(self) -> None:
        """Delete a .git left in the output directory by a previous publish."""
        stale = self.output_dir / ".git"
        if stale.exists():
            logger.debug(f"Removing stale repository: {stale}")
            shutil.rmtree(stale)


# =============================================================================
# CLI Entry Point
# =============================================================================

def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for publishing.

    Usage:
        python -m publishing.publisher [--output-dir DIR] [--dry-run]
    """
    import argparse

    from config.logging import LogContext, setup_logging
    from startup import validate_settings

    parser = argparse.ArgumentParser(description="Publish the built book to the hosting branch")
    parser.add_argument("--output-dir", type=str, help="Build output root")
    parser.add_argument("--dry-run", action="store_true", help="Commit but do not push")
    args = parser.parse_args(argv)

    settings_valid, settings_errors = validate_settings()
    if not settings_valid:
        print("\nPublish FAILED: invalid settings")
        for error in settings_errors:
            print(f"  - {error}")
        return 1

    setup_logging()

    with LogContext(step="publish"):
        publisher = PagesPublisher(
            output_dir=Path(args.output_dir) if args.output_dir else None,
        )
        result = publisher.publish(dry_run=args.dry_run)

    print(f"\nPublish {result.status.value.upper()}")
    if result.reason:
        print(f"  {result.reason}")
    if result.commit_message:
        print(f"  Commit: {result.commit_message}")
    print(f"  Duration: {result.duration_seconds:.1f}s")

    return result.exit_code


if __name__ == "__main__":
    import sys
    sys.exit(main())
