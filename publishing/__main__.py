"""
Rust Anthology - Build and Publish

Runs the builder and then the publisher, the same sequence CI runs.
The publisher is not started when the build fails.

Usage:
    python -m publishing [--dry-run]
"""

import argparse
import sys
from typing import Optional

from publishing import builder, publisher


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Build the book and publish it")
    parser.add_argument("--dry-run", action="store_true", help="Commit but do not push")
    args = parser.parse_args(argv)

    status = builder.main([])
    if status != 0:
        return status

    return publisher.main(["--dry-run"] if args.dry_run else [])


if __name__ == "__main__":
    sys.exit(main())
