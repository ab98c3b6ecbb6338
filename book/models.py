"""
Rust Anthology - Book Models

Dataclasses describing the book sources: the table of contents manifest
parsed from SUMMARY.md and the chapter documents it references.

These are plain value objects. Parsing lives in book.manifest and
book.documents.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterator, Optional


# =============================================================================
# Documents
# =============================================================================

@dataclass
class Attribution:
    """Source attribution footer at the end of a chapter."""

    text: str
    source_url: Optional[str] = None
    license: Optional[str] = None


@dataclass
class Document:
    """A single curated chapter."""

    path: str  # Relative to the book source directory, POSIX separators
    title: str
    body: str
    attribution: Optional[Attribution] = None

    @property
    def is_attributed(self) -> bool:
        return self.attribution is not None

    @property
    def word_count(self) -> int:
        return len(self.body.split())


# =============================================================================
# Manifest
# =============================================================================

@dataclass
class ManifestEntry:
    """
    A chapter reference in the table of contents.

    Entries with no path are draft chapters: mdBook lists them in the
    sidebar but renders no page for them.
    """

    title: str
    path: Optional[str] = None
    level: int = 0
    children: list["ManifestEntry"] = field(default_factory=list)
    part: Optional[str] = None  # Title of the enclosing part header
    numbered: bool = True  # False for prefix/suffix chapters

    @property
    def is_draft(self) -> bool:
        return not self.path

    @property
    def output_path(self) -> Optional[str]:
        """
        Relative path of the rendered page inside the book output.

        mdBook swaps the .md extension for .html and renders README.md
        files as index.html.
        """
        if not self.path:
            return None
        source = PurePosixPath(self.path)
        if source.name.lower() == "readme.md":
            return str(source.with_name("index.html"))
        return str(source.with_suffix(".html"))

    def walk(self) -> Iterator["ManifestEntry"]:
        """Yield this entry and all nested entries depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class Manifest:
    """Ordered book structure parsed from SUMMARY.md."""

    title: str = "Summary"
    entries: list[ManifestEntry] = field(default_factory=list)
    parts: list[str] = field(default_factory=list)

    def walk(self) -> Iterator[ManifestEntry]:
        """Yield every entry in reading order."""
        for entry in self.entries:
            yield from entry.walk()

    @property
    def chapters(self) -> list[ManifestEntry]:
        """Entries that reference a source file, in reading order."""
        return [entry for entry in self.walk() if not entry.is_draft]

    @property
    def drafts(self) -> list[ManifestEntry]:
        return [entry for entry in self.walk() if entry.is_draft]

    def get_all_paths(self) -> list[str]:
        """Source paths referenced by the manifest, in order, without duplicates."""
        seen: set[str] = set()
        paths = []
        for entry in self.chapters:
            if entry.path not in seen:
                seen.add(entry.path)
                paths.append(entry.path)
        return paths

    def get_output_paths(self) -> list[str]:
        """Rendered page paths expected in the book output, in order."""
        seen: set[str] = set()
        paths = []
        for entry in self.chapters:
            output = entry.output_path
            if output and output not in seen:
                seen.add(output)
                paths.append(output)
        return paths

    def __len__(self) -> int:
        return len(self.get_all_paths())
