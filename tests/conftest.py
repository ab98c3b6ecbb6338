"""
Rust Anthology - Test Configuration

Pytest fixtures shared by the unit and integration suites.

Settings are read from the environment through a cached singleton, so every
test starts from a clean CI environment and a cleared settings cache.
"""

import logging
import os
import shutil
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from config.settings import clear_settings_cache, get_settings


# Variables that must never leak in from the machine running the tests
PIPELINE_ENV_VARS = [
    "TRAVIS_BRANCH",
    "TRAVIS_REPO_SLUG",
    "GH_TOKEN",
    "CANONICAL_BRANCH",
    "PAGES_BRANCH",
    "PAGES_REPOSITORY",
    "PAGES_REMOTE_URL",
    "BOOK_TITLE",
    "BOOK_DIRECTORY",
    "OUTPUT_DIRECTORY",
    "BOOK_SUBDIRECTORY",
    "MDBOOK_COMMAND",
    "GIT_COMMAND",
    "LOG_FILE",
    "LOG_FORMAT",
]


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as an integration test",
    )
    config.addinivalue_line(
        "markers",
        "requires_git: mark test as requiring the git executable",
    )


requires_git = pytest.mark.skipif(
    shutil.which("git") is None,
    reason="git executable not available",
)


# =============================================================================
# Environment Configuration
# =============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Start every test outside CI with fresh settings."""
    for name in PIPELINE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    clear_settings_cache()

    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level

    yield

    # Entry points call setup_logging(), which replaces the root handlers
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    clear_settings_cache()


@pytest.fixture
def configure(monkeypatch):
    """
    Set pipeline environment variables and return fresh settings.

    Usage:
        settings = configure(travis_branch="master", gh_token="abc")
    """
    def _configure(**values):
        for key, value in values.items():
            if value is None:
                monkeypatch.delenv(key.upper(), raising=False)
            else:
                monkeypatch.setenv(key.upper(), str(value))
        clear_settings_cache()
        try:
            return get_settings()
        except ValidationError:
            # Invalid values are left for the code under test to report
            return None
    return _configure


# =============================================================================
# Book Fixtures
# =============================================================================

ATTRIBUTION = "*Originally published at <https://example.com/{slug}> by Jane Doe. License: MIT.*"


@pytest.fixture
def book_factory(tmp_path):
    """
    Factory writing a book tree (book.toml, src/SUMMARY.md, chapters).

    Usage:
        book_dir = book_factory(["intro.md", "nested/deep.md"])
    """
    def _create_book(chapters, summary=None, attributed=True, name="book"):
        book_dir = tmp_path / name
        src = book_dir / "src"
        src.mkdir(parents=True)

        (book_dir / "book.toml").write_text('[book]\ntitle = "Test Book"\nsrc = "src"\n')

        lines = ["# Summary", ""]
        for chapter in chapters:
            title = Path(chapter).stem.replace("-", " ").title()
            lines.append(f"- [{title}]({chapter})")

            path = src / chapter
            path.parent.mkdir(parents=True, exist_ok=True)
            body = f"# {title}\n\nSome text about {title}.\n"
            if attributed:
                body += "\n---\n\n" + ATTRIBUTION.format(slug=Path(chapter).stem) + "\n"
            path.write_text(body)

        (src / "SUMMARY.md").write_text(summary if summary is not None else "\n".join(lines) + "\n")
        return book_dir
    return _create_book


@pytest.fixture
def sample_book(book_factory):
    """A three-chapter book."""
    return book_factory(["introduction.md", "ownership.md", "advanced/macros.md"])


FAKE_MDBOOK = textwrap.dedent('''
    """Stand-in for mdbook: renders one HTML page per SUMMARY.md link."""
    import os
    import re
    import sys
    from pathlib import Path

    args = sys.argv[1:]
    if os.environ.get("FAKE_MDBOOK_FAIL"):
        print("ERROR: Summary parsing failed", file=sys.stderr)
        sys.exit(101)
    skip = os.environ.get("FAKE_MDBOOK_SKIP")

    dest = Path(args[args.index("--dest-dir") + 1])
    book = Path(args[-1])
    summary = (book / "src" / "SUMMARY.md").read_text()

    dest.mkdir(parents=True, exist_ok=True)
    for target in re.findall(r"\\]\\(([^)]+)\\)", summary):
        if target == skip:
            continue
        page = dest / (target[:-3] + ".html")
        if page.name.lower() == "readme.html":
            page = page.with_name("index.html")
        page.parent.mkdir(parents=True, exist_ok=True)
        page.write_text("<html><body>" + target + "</body></html>")
    (dest / "index.html").write_text("<html><body>index</body></html>")
    (dest / "print.html").write_text("<html><body>print</body></html>")
    print("INFO Book building has started", file=sys.stderr)
''')


@pytest.fixture
def fake_mdbook(tmp_path, configure):
    """Point MDBOOK_COMMAND at a Python stand-in renderer and return settings."""
    script = tmp_path / "fake_mdbook.py"
    script.write_text(FAKE_MDBOOK)
    return configure(mdbook_command=f'"{sys.executable}" "{script}"')


# =============================================================================
# Git Fixtures
# =============================================================================

def git(*args, cwd):
    """Run git for test setup and return stdout."""
    env = {
        **os.environ,
        "GIT_AUTHOR_NAME": "Test Author",
        "GIT_AUTHOR_EMAIL": "author@example.com",
        "GIT_COMMITTER_NAME": "Test Author",
        "GIT_COMMITTER_EMAIL": "author@example.com",
    }
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
        env=env,
    )
    return result.stdout.strip()


@pytest.fixture
def git_source_repo(tmp_path):
    """A source repository with one commit; returns its path."""
    repo = tmp_path / "source"
    repo.mkdir()
    git("init", "-q", cwd=repo)
    (repo / "README.md").write_text("# Source\n")
    (repo / ".gitignore").write_text("out/\n")
    git("add", "-A", cwd=repo)
    git("commit", "-q", "--no-gpg-sign", "-m", "Initial commit", cwd=repo)
    return repo


@pytest.fixture
def bare_remote(tmp_path):
    """An empty bare repository standing in for the hosting remote."""
    remote = tmp_path / "remote.git"
    git("init", "-q", "--bare", str(remote), cwd=tmp_path)
    return remote
