"""
Rust Anthology - Book Package

Models and loaders for the book sources: the SUMMARY.md table of contents
and the chapter documents it references.

Modules:
    models: Document, Attribution, Manifest, ManifestEntry
    manifest: SUMMARY.md parsing
    documents: Chapter loading and attribution footers

Usage:
    from book import load_manifest, DocumentLoader, find_source_dir

    manifest = load_manifest(Path("."))
    documents = DocumentLoader(find_source_dir(Path("."))).load_all(manifest)
"""

from book.models import Attribution, Document, Manifest, ManifestEntry
from book.manifest import ManifestError, find_source_dir, load_manifest, parse_summary
from book.documents import DocumentError, DocumentLoader, DocumentSet

__all__ = [
    "Attribution",
    "Document",
    "Manifest",
    "ManifestEntry",
    "ManifestError",
    "find_source_dir",
    "load_manifest",
    "parse_summary",
    "DocumentError",
    "DocumentLoader",
    "DocumentSet",
]
