"""
Rust Anthology - Publishing Package

Builds the book with mdBook and publishes it to the hosting branch.

Modules:
    builder: mdBook rendering plus the root redirect page
    publisher: Precondition-gated force-push of the build output
    git: git CLI wrapper used by the publisher
    templates: Jinja2 templates (redirect page)

Usage:
    from publishing import BookBuilder, PagesPublisher

    # Render the book into out/
    result = BookBuilder().build()

    # Push out/ to gh-pages (CI only)
    if result.success:
        PagesPublisher().publish()
"""

from publishing.builder import BookBuilder, BuildError, BuildResult
from publishing.publisher import PagesPublisher, PublishResult, PublishStatus

__all__ = [
    "BookBuilder",
    "BuildError",
    "BuildResult",
    "PagesPublisher",
    "PublishResult",
    "PublishStatus",
]
