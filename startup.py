"""
Rust Anthology - Startup Checks

Validates settings and the external toolchain before a pipeline step runs,
so that a missing executable is reported up front instead of as a
subprocess failure halfway through.

Usage:
    from startup import check_toolchain

    result = check_toolchain(require_git=False)
    if not result.success:
        sys.exit(1)

Can also be run standalone to check a machine:
    python -m startup
"""

import logging
import shlex
import shutil
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from config.settings import get_settings


logger = logging.getLogger(__name__)


@dataclass
class StartupResult:
    """Result of startup validation."""

    success: bool = True
    settings_valid: bool = False
    git_available: bool = False
    renderer_available: bool = False

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def add_error(self, message: str) -> None:
        """Add an error and mark as failed."""
        self.errors.append(message)
        self.success = False

    def add_warning(self, message: str) -> None:
        """Add a warning (doesn't fail startup)."""
        self.warnings.append(message)


def find_executable(command: str) -> Optional[str]:
    """
    Resolve the executable of a command line on PATH.

    Args:
        command: Command line prefix such as "mdbook" or "python fake.py"

    Returns:
        Absolute path of the executable, or None if not found
    """
    try:
        parts = shlex.split(command)
    except ValueError:
        return None
    if not parts:
        return None
    return shutil.which(parts[0])


def validate_settings() -> tuple[bool, list[str]]:
    """
    Validate pipeline settings.

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    try:
        get_settings()
    except ValidationError as e:
        return False, [
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
    return True, []


def check_toolchain(
    require_git: bool = True,
    require_renderer: bool = True,
) -> StartupResult:
    """
    Check settings and the executables a step needs.

    Args:
        require_git: The step runs git commands
        require_renderer: The step runs the book renderer

    Returns:
        StartupResult with validation details
    """
    result = StartupResult()

    settings_valid, settings_errors = validate_settings()
    result.settings_valid = settings_valid
    for error in settings_errors:
        result.add_error(f"Settings: {error}")
    if not settings_valid:
        return result

    settings = get_settings()

    git_path = find_executable(settings.git_command)
    result.git_available = git_path is not None
    if git_path:
        logger.debug(f"git: {git_path}")
    elif require_git:
        result.add_error(f"git executable not found: {settings.git_command}")

    if require_git and settings.is_ci and not settings.has_push_credentials:
        result.add_warning("GH_TOKEN is not set; publishing will fail")

    renderer_path = find_executable(settings.mdbook_command)
    result.renderer_available = renderer_path is not None
    if renderer_path:
        logger.debug(f"Renderer: {renderer_path}")
    elif require_renderer:
        result.add_error(f"Book renderer not found: {settings.mdbook_command}")

    for error in result.errors:
        logger.error(error)
    for warning in result.warnings:
        logger.warning(warning)

    return result


# =============================================================================
# CLI Entry Point
# =============================================================================

def main() -> int:
    """
    Check that this machine can build and publish the book.

    Returns:
        0 on success, 1 on failure
    """
    from config.logging import setup_logging

    result = check_toolchain()
    if result.settings_valid:
        setup_logging()

    if result.success:
        print("All startup checks passed")
        return 0

    print("Startup checks failed:")
    for error in result.errors:
        print(f"  - {error}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
