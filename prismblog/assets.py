"""Static asset copying for prismblog.

Everything under the project's ``public`` directory (stylesheets, images,
favicon, CNAME...) is copied as is into the output directory, next to the
rendered pages.

Key components:
- AssetPipeline: Copies public assets into the output directory.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

# Never copied into the deploy working copy.
IGNORED_NAMES = {".git", ".DS_Store", "Thumbs.db"}


class AssetPipeline:
    """Copies the public assets of a project into the output directory.

    Attributes:
        public_dir (Path): Directory containing source assets.
        output_dir (Path): Directory where assets are written.
    """

    def __init__(self, public_dir: Path, output_dir: Path):
        self.public_dir = public_dir
        self.output_dir = output_dir

    def run(self) -> list[Path]:
        """Copy every asset, preserving the directory layout.

        A missing public directory is not an error; there is simply nothing
        to copy.

        Returns:
            Destination paths of the copied files.

        Raises:
            OSError: If a file cannot be copied.
        """
        if not self.public_dir.exists():
            logger.warning("No public directory at %s; skipping assets.", self.public_dir)
            return []

        copied: list[Path] = []
        for item in sorted(self.public_dir.rglob("*")):
            rel = item.relative_to(self.public_dir)
            if item.is_dir() or any(part in IGNORED_NAMES for part in rel.parts):
                continue
            dest = self.output_dir / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, dest)
            copied.append(dest)
        return copied

    async def run_async(self) -> list[Path]:
        return await asyncio.to_thread(self.run)
