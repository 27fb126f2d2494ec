"""Persistence of rendered pages.

Pages are formatted for readability before they are written so that the
deploy repository's history shows meaningful diffs.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from .html_utils import format_html


def write_html(path: Path, html: str) -> Path:
    """Format and write an HTML document, creating parent directories.

    Args:
        path: Target file.
        html: Rendered markup.

    Returns:
        The written path.

    Raises:
        OSError: On permission or disk space problems.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_html(html), encoding="utf-8")
    return path


async def write_html_async(path: Path, html: str) -> Path:
    """Run write_html in a worker thread so the event loop keeps scheduling siblings."""
    return await asyncio.to_thread(write_html, path, html)
