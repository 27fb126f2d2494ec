"""Utility functions for prismblog.

Filesystem helpers used by the writer, the asset copier and the repository
synchronizer.

Key functions:
    remove_tree: Remove a file or directory tree, ignoring a missing path.
    empty_dir: Ensure a directory exists and is empty.
    page_filename: Map a document slug to its output file name.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

_SLUG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._~-]*$")


def remove_tree(path: Path) -> None:
    """Remove a file or directory tree.

    A path that does not exist is not an error.

    Args:
        path: File or directory to remove.
    """
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        pass


def empty_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all of its contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    path.mkdir(parents=True, exist_ok=True)
    for item in path.iterdir():
        remove_tree(item)


def page_filename(slug: str) -> str:
    """Return the output file name for a document slug.

    Args:
        slug: Document uid.

    Returns:
        ``<slug>.html``.

    Raises:
        ValueError: If the slug could escape the output directory or is empty.

    Examples:
        >>> page_filename("first-post")
        'first-post.html'
    """
    if not slug or not _SLUG_RE.match(slug) or ".." in slug:
        raise ValueError(f"Unsafe page slug: {slug!r}")
    return f"{slug}.html"
