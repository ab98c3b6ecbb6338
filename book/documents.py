"""
Rust Anthology - Chapter Documents

Loads the chapters referenced by the manifest and extracts their title and
source attribution footer.

Every article in the anthology is reprinted from somewhere else, so each
chapter is expected to end with a footer after a thematic break, e.g.:

    ---

    *Originally published at <https://example.com/post> by Jane Doe.
    License: CC-BY-4.0.*

Missing footers are reported, never fatal.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import markdown

from book.models import Attribution, Document, Manifest, ManifestEntry
from config.logging import get_logger


logger = get_logger(__name__)


# Regex patterns
THEMATIC_BREAK_PATTERN = re.compile(r"^ {0,3}([-*_])(?: *\1){2,} *$", re.MULTILINE)
ATTRIBUTION_HINT_PATTERN = re.compile(
    r"\b(author|written by|originally|published|reprinted|licen[cs]e[ds]?|copyright|source)\b"
    r"|https?://",
    re.IGNORECASE,
)
LINK_PATTERN = re.compile(r"\[[^\]]*\]\((https?://[^)\s]+)\)|<(https?://[^>\s]+)>|(https?://[^\s)>\]]+)")
URL_TRAILING_PUNCTUATION = ".,;:!?"
LICENSE_PATTERN = re.compile(
    r"(?:\blicen[cs]e\s*:\s*|\blicen[cs]ed under\s+(?:the\s+)?)(.+?)\s*(?:\.(?=\s|\*|_|$)|[*_]|$)",
    re.IGNORECASE | re.MULTILINE,
)


class DocumentError(Exception):
    """Raised when a chapter file exists but cannot be read."""


@dataclass
class DocumentSet:
    """Documents loaded for a manifest, plus any paths that could not be read."""

    documents: list[Document] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing

    @property
    def unattributed(self) -> list[Document]:
        return [doc for doc in self.documents if not doc.is_attributed]


class DocumentLoader:
    """
    Reads chapter documents from the book source directory.

    Titles come from the first level-1 heading, found with Python-Markdown's
    toc extension so that headings inside code blocks are not mistaken for
    the title.
    """

    def __init__(self, source_dir: Path):
        """
        Initialize the loader.

        Args:
            source_dir: Book source directory (the one containing SUMMARY.md)
        """
        self.source_dir = source_dir
        self.md = markdown.Markdown(extensions=["extra", "toc"])

    def load_all(self, manifest: Manifest) -> DocumentSet:
        """
        Load every document referenced by the manifest.

        Args:
            manifest: Parsed table of contents

        Returns:
            DocumentSet with loaded documents and missing paths
        """
        result = DocumentSet()

        for entry in manifest.chapters:
            document = self.load(entry)
            if document is None:
                result.missing.append(entry.path)
            else:
                result.documents.append(document)

        return result

    def load(self, entry: ManifestEntry) -> Optional[Document]:
        """
        Load one document.

        Returns:
            The Document, or None if the file does not exist

        Raises:
            DocumentError: If the file cannot be read or is not UTF-8
        """
        if entry.is_draft:
            return None

        path = self.source_dir / entry.path
        if not path.is_file():
            logger.error(f"Chapter not found: {entry.path}", extra={"title": entry.title})
            return None

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise DocumentError(
                f"Chapter is not valid UTF-8: {entry.path} ({e.reason} at byte {e.start})"
            ) from e
        except OSError as e:
            raise DocumentError(f"Cannot read chapter {entry.path}: {e.strerror or e}") from e

        body, attribution = self.split_attribution(text)

        return Document(
            path=entry.path,
            title=self.extract_title(text) or entry.title,
            body=body,
            attribution=attribution,
        )

    def extract_title(self, text: str) -> Optional[str]:
        """Return the text of the first level-1 heading, if any."""
        self.md.reset()
        self.md.convert(text)
        for token in self._flatten(self.md.toc_tokens):
            if token["level"] == 1:
                return token["name"]
        return None

    @staticmethod
    def split_attribution(text: str) -> tuple[str, Optional[Attribution]]:
        """
        Split a chapter into body and attribution footer.

        The footer is the text after the last thematic break, kept only if it
        looks like an attribution (mentions an author, license, or URL).

        Returns:
            Tuple of (body, attribution or None)
        """
        breaks = [
            match for match in THEMATIC_BREAK_PATTERN.finditer(text)
            if not _is_setext_underline(text, match)
        ]
        if not breaks:
            return text.strip(), None

        last = breaks[-1]
        body = text[: last.start()].strip()
        footer = text[last.end():].strip()

        if not body or not footer or not ATTRIBUTION_HINT_PATTERN.search(footer):
            return text.strip(), None

        source_url = None
        link = LINK_PATTERN.search(footer)
        if link:
            source_url, angle_url, bare_url = link.groups()
            source_url = source_url or angle_url or bare_url.rstrip(URL_TRAILING_PUNCTUATION)

        license_name = None
        license_match = LICENSE_PATTERN.search(footer)
        if license_match:
            license_name = license_match.group(1).strip()

        return body, Attribution(text=footer, source_url=source_url, license=license_name)

    @classmethod
    def _flatten(cls, tokens: list[dict]) -> list[dict]:
        flat = []
        for token in tokens:
            flat.append(token)
            flat.extend(cls._flatten(token.get("children", [])))
        return flat


def _is_setext_underline(text: str, match: re.Match) -> bool:
    """A `---` line directly under a paragraph line is a heading underline, not a break."""
    if match.group(1) != "-":
        return False
    preceding = text[: match.start()]
    if not preceding.endswith("\n"):
        return False
    previous_line = preceding[:-1].rsplit("\n", 1)[-1]
    return bool(previous_line.strip())


__all__ = [
    "DocumentError",
    "DocumentLoader",
    "DocumentSet",
]
