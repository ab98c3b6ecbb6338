"""
Rust Anthology - Book Builder

Renders the book with mdBook and writes a redirect page at the output root.

Steps (each fatal on failure):
1. Load the SUMMARY.md manifest
2. Check every referenced chapter exists
3. Run `mdbook build --dest-dir <out>/<subdir>`
4. Write <out>/index.html redirecting to <subdir>/index.html
5. Check a page was rendered for every chapter

Output layout:
    out/
        index.html      Redirect
        1/              Rendered book

Usage:
    builder = BookBuilder()
    result = builder.build()
"""

import shlex
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from book.documents import DocumentError, DocumentLoader
from book.manifest import ManifestError, find_source_dir, load_manifest
from book.models import Manifest
from config.settings import get_settings
from config.logging import get_logger


logger = get_logger(__name__)


class BuildError(Exception):
    """Raised when a build step fails."""


@dataclass
class BuildResult:
    """Result of a book build."""

    success: bool = True
    chapters_expected: int = 0
    chapters_rendered: int = 0
    drafts: int = 0
    words: int = 0
    unattributed: list[str] = field(default_factory=list)

    book_dir: Optional[Path] = None
    redirect_path: Optional[Path] = None

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def add_error(self, message: str) -> None:
        """Add an error and mark the build as failed."""
        self.errors.append(message)
        self.success = False


class BookBuilder:
    """
    Builds the static book site.

    Rendering is delegated to mdBook; this class only checks the inputs,
    runs the renderer, and adds the root redirect.
    """

    REDIRECT_TEMPLATE = "redirect.html"
    REDIRECT_FILE = "index.html"

    def __init__(
        self,
        book_dir: Optional[Path] = None,
        output_dir: Optional[Path] = None,
        templates_dir: Optional[Path] = None,
    ):
        """
        Initialize the builder.

        Args:
            book_dir: Directory containing book.toml (default: settings)
            output_dir: Output root (default: settings, "out")
            templates_dir: Directory containing the redirect template
        """
        self.settings = get_settings()

        self.book_dir = (book_dir or self.settings.get_book_path()).resolve()
        self.output_dir = (output_dir or self.settings.get_output_path()).resolve()
        self.book_output_dir = self.output_dir / self.settings.book_subdirectory

        self.templates_dir = templates_dir or self.settings.get_templates_path()
        self.jinja_env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(["html", "xml"]),
            keep_trailing_newline=True,
        )

    def build(self) -> BuildResult:
        """
        Build the book.

        Returns:
            BuildResult with statistics; success is False on any failure
        """
        result = BuildResult()

        logger.info(
            "Starting book build",
            extra={
                "book_dir": str(self.book_dir),
                "output_dir": str(self.output_dir),
            },
        )

        try:
            manifest = load_manifest(self.book_dir)
            result.chapters_expected = len(manifest)
            result.drafts = len(manifest.drafts)

            self._check_documents(manifest, result)
            self._setup_output_dir()
            self._render()
            result.book_dir = self.book_output_dir

            result.redirect_path = self._write_redirect()
            result.chapters_rendered = self._verify_output(manifest)

        except (BuildError, DocumentError, ManifestError) as e:
            logger.error(f"Build failed: {e}")
            result.add_error(str(e))
        except OSError as e:
            logger.exception(f"Filesystem error during build: {e}")
            result.add_error(f"Filesystem error: {e}")

        result.completed_at = datetime.now(timezone.utc)

        logger.info(
            "Book build complete",
            extra={
                "success": result.success,
                "chapters": result.chapters_rendered,
                "drafts": result.drafts,
                "words": result.words,
                "unattributed": len(result.unattributed),
                "duration_seconds": result.duration_seconds,
            },
        )

        return result

    # =========================================================================
    # Build Steps
    # =========================================================================

    def _check_documents(self, manifest: Manifest, result: BuildResult) -> None:
        """Fail if the manifest references missing chapters; warn on missing attributions."""
        loader = DocumentLoader(find_source_dir(self.book_dir))
        documents = loader.load_all(manifest)

        if not documents.complete:
            raise BuildError(
                f"{len(documents.missing)} chapter(s) missing from the book sources: "
                + ", ".join(documents.missing)
            )

        for document in documents.unattributed:
            logger.warning(f"Chapter has no attribution footer: {document.path}")
            result.unattributed.append(document.path)
            result.warnings.append(f"No attribution: {document.path}")

        result.words = sum(document.word_count for document in documents.documents)
        logger.info(f"Checked {len(documents.documents)} chapters ({result.words} words)")

    def _setup_output_dir(self) -> None:
        """Create the output root. Existing contents are left in place."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Output directory ready: {self.output_dir}")

    def _render(self) -> None:
        """
        Run the renderer.

        Raises:
            BuildError: If the renderer is missing, times out, or fails
        """
        command = self._render_command()
        logger.info(f"Rendering book: {' '.join(command)}")

        try:
            process = subprocess.run(
                command,
                cwd=self.book_dir,
                capture_output=True,
                text=True,
                timeout=self.settings.render_timeout_seconds,
            )
        except FileNotFoundError as e:
            raise BuildError(f"Book renderer not found: {command[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise BuildError(
                f"Book renderer timed out after {self.settings.render_timeout_seconds}s"
            ) from e

        for line in (process.stdout + process.stderr).splitlines():
            if line.strip():
                logger.debug(f"renderer: {line}")

        if process.returncode != 0:
            output = process.stderr.strip() or process.stdout.strip()
            raise BuildError(
                f"Book renderer exited with status {process.returncode}"
                + (f": {output}" if output else "")
            )

    def _render_command(self) -> list[str]:
        return [
            *shlex.split(self.settings.mdbook_command),
            "build",
            "--dest-dir",
            str(self.book_output_dir),
            str(self.book_dir),
        ]

    def _write_redirect(self) -> Path:
        """Write the root page that forwards to the rendered book."""
        template = self.jinja_env.get_template(self.REDIRECT_TEMPLATE)

        html = template.render(
            target=f"{self.settings.book_subdirectory}/index.html",
            title=self.settings.book_title,
        )

        output_path = self.output_dir / self.REDIRECT_FILE
        output_path.write_text(html, encoding="utf-8")

        logger.debug(f"Wrote redirect: {output_path}")
        return output_path

    def _verify_output(self, manifest: Manifest) -> int:
        """
        Check the renderer produced a page for every chapter.

        Returns:
            Number of rendered chapter pages

        Raises:
            BuildError: If any chapter page is missing
        """
        expected = manifest.get_output_paths()
        missing = [path for path in expected if not (self.book_output_dir / path).is_file()]

        if missing:
            raise BuildError(
                f"Renderer did not produce {len(missing)} chapter page(s): " + ", ".join(missing)
            )

        return len(expected)


# =============================================================================
# CLI Entry Point
# =============================================================================

def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for building the book.

    Usage:
        python -m publishing.builder [--book-dir DIR] [--output-dir DIR]
    """
    import argparse

    from config.logging import LogContext, setup_logging
    from startup import check_toolchain, validate_settings

    parser = argparse.ArgumentParser(description="Build the book with mdBook")
    parser.add_argument("--book-dir", type=str, help="Directory containing book.toml")
    parser.add_argument("--output-dir", type=str, help="Build output root")
    args = parser.parse_args(argv)

    settings_valid, settings_errors = validate_settings()
    if not settings_valid:
        print("\nBuild FAILED: invalid settings")
        for error in settings_errors:
            print(f"  - {error}")
        return 1

    setup_logging()

    with LogContext(step="build"):
        startup = check_toolchain(require_git=False)
        if not startup.success:
            print("\nBuild FAILED")
            for error in startup.errors:
                print(f"  - {error}")
            return 1

        builder = BookBuilder(
            book_dir=Path(args.book_dir) if args.book_dir else None,
            output_dir=Path(args.output_dir) if args.output_dir else None,
        )
        result = builder.build()

    print(f"\nBuild {'completed' if result.success else 'FAILED'}")
    print(f"  Chapters rendered: {result.chapters_rendered}/{result.chapters_expected}")
    print(f"  Draft chapters: {result.drafts}")
    print(f"  Words: {result.words}")
    print(f"  Duration: {result.duration_seconds:.1f}s")

    if result.errors:
        print(f"\nErrors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  - {error}")

    if result.warnings:
        print(f"\nWarnings ({len(result.warnings)}):")
        for warning in result.warnings[:5]:
            print(f"  - {warning}")

    return 0 if result.success else 1


if __name__ == "__main__":
    import sys
    sys.exit(main())
