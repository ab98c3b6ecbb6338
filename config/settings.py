"""
Rust Anthology - Configuration Settings

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables and .env files.

The CI context (TRAVIS_BRANCH, TRAVIS_REPO_SLUG, GH_TOKEN) is read from the
environment exactly as Travis provides it. Everything else has a default that
matches the layout of this repository, so a local build needs no configuration.

Usage:
    from config.settings import get_settings

    settings = get_settings()
    print(settings.get_output_path())
"""

from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Determine Project Root
# =============================================================================

def get_project_root() -> Path:
    """Get the project root directory."""
    # Start from this file's directory and go up to find the project root
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "book.toml").exists() or (current / "pyproject.toml").exists():
            return current
        current = current.parent
    # Fallback to the config directory's parent
    return Path(__file__).resolve().parent.parent


PROJECT_ROOT = get_project_root()


# =============================================================================
# Settings Classes
# =============================================================================

class Settings(BaseSettings):
    """
    Pipeline settings loaded from environment variables.

    All settings can be overridden by environment variables.
    Prefix is not used so the Travis-provided variables map directly.

    Required for publishing (set by CI):
        - TRAVIS_BRANCH
        - TRAVIS_REPO_SLUG
        - GH_TOKEN (or PAGES_REMOTE_URL)

    Everything else has sensible defaults.
    """

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # -------------------------------------------------------------------------
    # CI Context
    # -------------------------------------------------------------------------
    travis_branch: Optional[str] = Field(
        default=None,
        description="Branch that triggered the CI build (also the CI marker)",
    )
    travis_repo_slug: Optional[str] = Field(
        default=None,
        description="owner/name of the repository that triggered the build",
    )
    gh_token: Optional[str] = Field(
        default=None,
        description="GitHub token used to push the hosting branch",
    )

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------
    canonical_branch: str = Field(
        default="master",
        description="The only source branch allowed to publish",
    )
    pages_branch: str = Field(
        default="gh-pages",
        description="Remote branch serving the rendered site",
    )
    pages_repository: str = Field(
        default="brson/rust-anthology",
        description="GitHub repository (owner/name) that hosts the pages branch",
    )
    pages_remote_url: Optional[str] = Field(
        default=None,
        description="Explicit push URL; overrides the GitHub URL built from GH_TOKEN",
    )
    book_title: str = Field(
        default="Rust Anthology",
        description="Book title used in publish commit messages",
    )
    commit_author_name: str = Field(
        default="Rust Anthology",
        description="Committer name for the published snapshot",
    )
    commit_author_email: str = Field(
        default="banderson@mozilla.com",
        description="Committer email for the published snapshot",
    )
    git_command: str = Field(
        default="git",
        description="git executable",
    )
    git_timeout_seconds: int = Field(
        default=300,
        description="Timeout for each git command",
    )

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------
    book_directory: str = Field(
        default=".",
        description="Directory containing book.toml (relative to project root or absolute)",
    )
    output_directory: str = Field(
        default="out",
        description="Build output root (relative to project root or absolute)",
    )
    book_subdirectory: str = Field(
        default="1",
        description="Subdirectory of the output root that holds the rendered book",
    )
    mdbook_command: str = Field(
        default="mdbook",
        description="Renderer command line prefix (split shell-style)",
    )
    render_timeout_seconds: int = Field(
        default=600,
        description="Timeout for the renderer",
    )
    templates_directory: Optional[str] = Field(
        default=None,
        description="Directory containing Jinja2 templates (default: bundled templates)",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Log file path (relative to project root or absolute)",
    )
    log_format: str = Field(
        default="text",
        description="Log format (json or text)",
    )
    log_max_bytes: int = Field(
        default=10_485_760,  # 10 MB
        description="Maximum log file size before rotation",
    )
    log_backup_count: int = Field(
        default=5,
        description="Number of backup log files to keep",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Ensure log format is valid."""
        v_lower = v.lower()
        if v_lower not in {"json", "text"}:
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'text'")
        return v_lower

    @field_validator("canonical_branch", "pages_branch")
    @classmethod
    def validate_branch_name(cls, v: str) -> str:
        """Branch names must be non-empty."""
        v = v.strip()
        if not v:
            raise ValueError("Branch name must not be empty")
        return v

    @field_validator("book_subdirectory")
    @classmethod
    def validate_book_subdirectory(cls, v: str) -> str:
        """
        Ensure the book subdirectory is a single relative path segment.

        The redirect page points at <subdir>/index.html, so anything that
        could escape the output root is rejected.
        """
        v = v.strip().strip("/")
        if not v:
            raise ValueError("book_subdirectory must not be empty")
        if "\\" in v:
            raise ValueError("book_subdirectory must use forward slashes")
        parts = PurePosixPath(v).parts
        if len(parts) != 1 or parts[0] in (".", ".."):
            raise ValueError(f"book_subdirectory must be a single path segment, got {v!r}")
        return v

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def is_ci(self) -> bool:
        """Check if running inside the CI environment."""
        return bool(self.travis_branch)

    @property
    def is_canonical_branch(self) -> bool:
        """Check if the triggering branch is the one allowed to publish."""
        return self.travis_branch == self.canonical_branch

    @property
    def has_push_credentials(self) -> bool:
        """Check if a push destination can be built."""
        return bool(self.pages_remote_url or self.gh_token)

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return PROJECT_ROOT

    def get_remote_url(self) -> str:
        """
        Get the authenticated push URL for the hosting repository.

        Contains the token in clear text. Never log the return value
        without passing it through censor_sensitive_data().
        """
        if self.pages_remote_url:
            return self.pages_remote_url
        return f"https://{self.gh_token or ''}@github.com/{self.pages_repository}.git"

    def get_repo_slug(self) -> str:
        """Get the slug embedded in publish commit messages."""
        return self.travis_repo_slug or self.pages_repository

    def get_log_file_path(self, override: Optional[str] = None) -> Optional[Path]:
        """Get the absolute path to the log file, or None when file logging is off."""
        log_file = override or self.log_file
        if not log_file:
            return None
        return self._resolve(log_file)

    def get_book_path(self) -> Path:
        """Get the directory containing book.toml."""
        return self._resolve(self.book_directory)

    def get_output_path(self) -> Path:
        """Get the build output root."""
        return self._resolve(self.output_directory)

    def get_templates_path(self) -> Path:
        """Get the Jinja2 templates directory."""
        if not self.templates_directory:
            return Path(__file__).resolve().parent.parent / "publishing" / "templates"
        return self._resolve(self.templates_directory)

    @staticmethod
    def _resolve(value: str) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        return PROJECT_ROOT / path


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are cached after first load. To reload settings (e.g., in tests),
    call get_settings.cache_clear() first.

    Returns:
        Settings instance with all configuration loaded
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing reload on next access."""
    get_settings.cache_clear()


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "PROJECT_ROOT",
]
