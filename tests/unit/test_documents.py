"""
Rust Anthology - Document Loading Unit Tests

Tests for chapter titles and attribution footers.
"""

from unittest.mock import patch

import pytest

from book.documents import DocumentError, DocumentLoader
from book.manifest import load_manifest
from book.models import ManifestEntry


@pytest.fixture
def loader(tmp_path):
    return DocumentLoader(tmp_path)


# =============================================================================
# Test Titles
# =============================================================================

class TestExtractTitle:
    """Tests for DocumentLoader.extract_title()."""

    def test_first_h1(self, loader):
        assert loader.extract_title("# Fearless Concurrency\n\nText\n") == "Fearless Concurrency"

    def test_skips_lower_levels(self, loader):
        text = "## Background\n\n# The Real Title\n"
        assert loader.extract_title(text) == "The Real Title"

    def test_ignores_headings_in_code(self, loader):
        text = "```\n# not a heading\n```\n\n# Actual Title\n"
        assert loader.extract_title(text) == "Actual Title"

    def test_no_title(self, loader):
        assert loader.extract_title("Just a paragraph.\n") is None

    def test_loader_reusable(self, loader):
        loader.extract_title("# First\n")
        assert loader.extract_title("# Second\n") == "Second"


# =============================================================================
# Test Attribution
# =============================================================================

class TestSplitAttribution:
    """Tests for DocumentLoader.split_attribution()."""

    def test_footer_with_link_and_license(self):
        text = (
            "# Title\n\nBody text.\n\n---\n\n"
            "*Originally published at [the blog](https://example.com/post) "
            "by Jane Doe. License: CC-BY-4.0.*\n"
        )
        body, attribution = DocumentLoader.split_attribution(text)

        assert body == "# Title\n\nBody text."
        assert attribution is not None
        assert attribution.source_url == "https://example.com/post"
        assert attribution.license == "CC-BY-4.0"
        assert "Jane Doe" in attribution.text

    def test_autolink(self):
        text = "Body\n\n***\n\nSource: <https://example.org/a>\n"
        _, attribution = DocumentLoader.split_attribution(text)
        assert attribution.source_url == "https://example.org/a"

    def test_licensed_under(self):
        text = "Body\n\n___\n\nWritten by Sam, licensed under the MIT license.\n"
        _, attribution = DocumentLoader.split_attribution(text)

        assert attribution.license == "MIT license"
        assert attribution.source_url is None

    def test_no_thematic_break(self):
        body, attribution = DocumentLoader.split_attribution("# Title\n\nBody\n")
        assert attribution is None
        assert body == "# Title\n\nBody"

    def test_break_without_attribution_text(self):
        text = "# Title\n\nPart one.\n\n---\n\nPart two continues the story.\n"
        body, attribution = DocumentLoader.split_attribution(text)

        assert attribution is None
        assert "Part two" in body

    def test_uses_last_break(self):
        text = "Intro\n\n---\n\nMiddle\n\n---\n\nAuthor: Alex\n"
        body, attribution = DocumentLoader.split_attribution(text)

        assert "Middle" in body
        assert attribution.text == "Author: Alex"

    def test_setext_underline_is_not_a_break(self):
        text = "# Title\n\nIntro.\n\nConclusion\n----------\n\nSource code is at the end.\n"
        body, attribution = DocumentLoader.split_attribution(text)

        assert attribution is None
        assert "Conclusion" in body

    def test_break_after_setext_heading_still_found(self):
        text = "Conclusion\n----------\n\nWrap up.\n\n---\n\nAuthor: Alex\n"
        body, attribution = DocumentLoader.split_attribution(text)

        assert attribution.text == "Author: Alex"
        assert body.endswith("Wrap up.")

    @pytest.mark.parametrize("punctuation", [".", ",", ";", ":", ").", "!"])
    def test_bare_url_trailing_punctuation(self, punctuation):
        text = f"Body\n\n---\n\nOriginally published, see https://x.org/y{punctuation}\n"
        _, attribution = DocumentLoader.split_attribution(text)
        assert attribution.source_url == "https://x.org/y"


# =============================================================================
# Test Loading
# =============================================================================

class TestLoadAll:
    """Tests for DocumentLoader.load_all()."""

    def test_loads_every_chapter(self, sample_book):
        manifest = load_manifest(sample_book)
        documents = DocumentLoader(sample_book / "src").load_all(manifest)

        assert documents.complete
        assert [doc.path for doc in documents.documents] == [
            "introduction.md", "ownership.md", "advanced/macros.md",
        ]
        assert documents.documents[0].title == "Introduction"
        assert documents.unattributed == []

    def test_reports_missing(self, sample_book):
        (sample_book / "src" / "ownership.md").unlink()
        documents = DocumentLoader(sample_book / "src").load_all(load_manifest(sample_book))

        assert not documents.complete
        assert documents.missing == ["ownership.md"]
        assert len(documents.documents) == 2

    def test_reports_unattributed(self, book_factory):
        book_dir = book_factory(["plain.md"], attributed=False)
        documents = DocumentLoader(book_dir / "src").load_all(load_manifest(book_dir))

        assert [doc.path for doc in documents.unattributed] == ["plain.md"]

    def test_title_falls_back_to_manifest(self, tmp_path):
        (tmp_path / "untitled.md").write_text("No heading here.\n")
        document = DocumentLoader(tmp_path).load(ManifestEntry(title="From TOC", path="untitled.md"))

        assert document.title == "From TOC"
        assert document.word_count == 3

    def test_undecodable_chapter_raises(self, tmp_path):
        (tmp_path / "broken.md").write_bytes(b"# Own\n\n\xff\xfe bad\n")

        with pytest.raises(DocumentError, match="broken.md"):
            DocumentLoader(tmp_path).load(ManifestEntry(title="Broken", path="broken.md"))

    def test_unreadable_chapter_raises(self, tmp_path):
        (tmp_path / "locked.md").write_text("# Locked\n")

        with patch("pathlib.Path.read_text", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(DocumentError, match="Cannot read chapter locked.md: Permission denied"):
                DocumentLoader(tmp_path).load(ManifestEntry(title="Locked", path="locked.md"))

    def test_draft_not_loaded(self, loader):
        assert loader.load(ManifestEntry(title="Draft")) is None
