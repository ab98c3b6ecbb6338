"""
Rust Anthology - Table of Contents Manifest

Parses the mdBook SUMMARY.md into a Manifest.

Supported structure:
    # Summary

    [Preface](preface.md)

    # Part I: Foundations

    - [Ownership](ownership.md)
        - [Borrowing](borrowing.md)
    - [Unfinished chapter]()

    ---

    [Contributors](contributors.md)

Prefix and suffix chapters are bare links outside the list, part headers are
headings after the summary title, and `---` separators are ignored. The
renderer remains the authority on whether the summary is valid; this parser
only needs enough structure to know which documents the book references.
"""

import re
import tomllib
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

from book.models import Manifest, ManifestEntry
from config.logging import get_logger


logger = get_logger(__name__)


SUMMARY_FILE = "SUMMARY.md"
BOOK_CONFIG_FILE = "book.toml"
DEFAULT_SOURCE_DIR = "src"

# Regex patterns
HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
# Link text may hold balanced brackets, e.g. [The `[T]` slice](slices.md)
LINK_TEXT = r"\[((?:[^\[\]]|\[[^\[\]]*\])+)\]"
LIST_LINK_PATTERN = re.compile(r"^(\s*)[-*+]\s+" + LINK_TEXT + r"\(([^)]*)\)\s*$")
LIST_ITEM_PATTERN = re.compile(r"^(\s*)[-*+]\s+(.+?)\s*$")
BARE_LINK_PATTERN = re.compile(r"^" + LINK_TEXT + r"\(([^)]*)\)\s*$")
SEPARATOR_PATTERN = re.compile(r"^\s{0,3}([-*_])(\s*\1){2,}\s*$")
COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)


class ManifestError(Exception):
    """Raised when the book configuration or summary cannot be read."""


def find_source_dir(book_dir: Path) -> Path:
    """
    Locate the book source directory.

    Reads `[book] src` from book.toml when present, otherwise falls back to
    mdBook's default `src`.

    Raises:
        ManifestError: If book.toml exists but is not valid TOML
    """
    config_path = book_dir / BOOK_CONFIG_FILE
    source = DEFAULT_SOURCE_DIR

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ManifestError(f"Invalid {BOOK_CONFIG_FILE}: {e}") from e
        source = config.get("book", {}).get("src", DEFAULT_SOURCE_DIR)

    return book_dir / source


def load_manifest(book_dir: Path) -> Manifest:
    """
    Load and parse SUMMARY.md for the book rooted at book_dir.

    Args:
        book_dir: Directory containing book.toml

    Returns:
        Parsed Manifest

    Raises:
        ManifestError: If the summary file is missing or unreadable
    """
    summary_path = find_source_dir(book_dir) / SUMMARY_FILE

    if not summary_path.is_file():
        raise ManifestError(f"Table of contents not found: {summary_path}")

    try:
        content = summary_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Cannot read {summary_path}: {e}") from e

    manifest = parse_summary(content)

    logger.debug(
        f"Loaded manifest: {len(manifest)} chapters",
        extra={"summary": str(summary_path), "drafts": len(manifest.drafts)},
    )

    return manifest


def parse_summary(content: str) -> Manifest:
    """
    Parse SUMMARY.md content into a Manifest, preserving order and nesting.

    Args:
        content: Raw SUMMARY.md content

    Returns:
        Manifest with entries in reading order
    """
    manifest = Manifest()
    content = COMMENT_PATTERN.sub("", content)

    # Stack of (indent width, entry) for the current list nesting
    entry_stack: list[tuple[int, ManifestEntry]] = []
    seen_title = False
    seen_list = False
    current_part = None

    for line in content.splitlines():
        if not line.strip():
            continue

        heading = HEADING_PATTERN.match(line.strip())
        if heading and not line.startswith((" ", "\t")):
            if not seen_title and not manifest.entries:
                manifest.title = heading.group(2)
            else:
                current_part = heading.group(2)
                manifest.parts.append(current_part)
                entry_stack = []
            seen_title = True
            continue

        if SEPARATOR_PATTERN.match(line):
            entry_stack = []
            continue

        link = LIST_LINK_PATTERN.match(line)
        if link:
            indent = _indent_width(link.group(1))
            entry = ManifestEntry(
                title=link.group(2).strip(),
                path=_normalize_path(link.group(3)),
                part=current_part,
            )
            _add_entry(manifest, entry_stack, entry, indent)
            seen_list = True
            continue

        bare = BARE_LINK_PATTERN.match(line.strip())
        if bare and not line.startswith((" ", "\t")):
            # Prefix chapter before the list, suffix chapter after it
            entry = ManifestEntry(
                title=bare.group(1).strip(),
                path=_normalize_path(bare.group(2)),
                part=current_part if not seen_list else None,
                numbered=False,
            )
            manifest.entries.append(entry)
            entry_stack = []
            continue

        item = LIST_ITEM_PATTERN.match(line)
        if item:
            logger.warning(f"Ignoring summary list item without a link: {item.group(2)!r}")
            continue

        logger.debug(f"Ignoring summary line: {line.strip()!r}")

    return manifest


def _add_entry(
    manifest: Manifest,
    entry_stack: list[tuple[int, ManifestEntry]],
    entry: ManifestEntry,
    indent: int,
) -> None:
    """Attach an entry to its parent based on list indentation."""
    while entry_stack and entry_stack[-1][0] >= indent:
        entry_stack.pop()

    entry.level = len(entry_stack)

    if entry_stack:
        entry_stack[-1][1].children.append(entry)
    else:
        manifest.entries.append(entry)

    entry_stack.append((indent, entry))


def _indent_width(indent: str) -> int:
    return len(indent.replace("\t", "    "))


def _normalize_path(raw: str) -> Optional[str]:
    """Normalize a link target to a POSIX path relative to the source dir."""
    path = unquote(raw.strip())
    if not path:
        return None
    while path.startswith("./"):
        path = path[2:]
    return path


__all__ = [
    "ManifestError",
    "find_source_dir",
    "load_manifest",
    "parse_summary",
    "SUMMARY_FILE",
]
