"""Deploy repository synchronisation for prismblog.

The static site is published by committing it to a git repository used
purely as a deployment target (for example a GitHub Pages repository).
This module keeps a local working copy of that repository: it clones it,
empties it while keeping its ``.git`` directory, and commits and pushes the
regenerated files.

Git is driven through asyncio subprocesses so that a generation run can
await it like any other I/O.

Key classes:
- Repository: Clone, clean, diff, commit and push one working copy.
- CommitOutcome: What commit_and_push did.

Functions:
- preserved_metadata: Context manager moving ``.git`` aside and always back.
- commit_message: Message used for automatic commits.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import SyncError
from .utils import empty_dir, remove_tree

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

METADATA_DIR = ".git"
COMMIT_PREFIX = "Auto commit - "


@dataclass(frozen=True)
class CommitOutcome:
    """Result of Repository.commit_and_push.

    Attributes:
        changed: Whether the working tree differed from the last commit.
        committed: Whether a commit was created.
        pushed: Whether the push succeeded.
        message: Commit message, when a commit was created.
    """

    changed: bool
    committed: bool = False
    pushed: bool = False
    message: str | None = None


def commit_message(now: datetime | None = None) -> str:
    """Return the automatic commit message for a timestamp (UTC by default)."""
    now = now or datetime.now(timezone.utc)
    return f"{COMMIT_PREFIX}{now.isoformat(timespec='seconds')}"


@contextmanager
def preserved_metadata(work_dir: Path, name: str = METADATA_DIR) -> Iterator[Path]:
    """Move a working copy's metadata directory aside for the duration of a block.

    The directory is moved into a temporary holding directory next to the
    working copy and moved back when the block exits, whether it succeeded
    or raised. The working copy is recreated first if the block removed it.

    Args:
        work_dir: The working copy.
        name: Metadata directory name.

    Yields:
        The temporary location of the metadata directory.
    """
    metadata = work_dir / name
    holding = Path(tempfile.mkdtemp(prefix=".prismblog-", dir=work_dir.parent))
    stashed = holding / name
    try:
        shutil.move(str(metadata), str(stashed))
    except BaseException:
        holding.rmdir()
        raise
    try:
        yield stashed
    finally:
        work_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(str(stashed), str(metadata))
        holding.rmdir()


class Repository:
    """Local working copy of a remote deploy repository.

    Attributes:
        work_dir: Path of the working copy.
        remote_url: URL the working copy is cloned from.
        remote: Remote name pushed to.
        branch: Branch pushed to.
        author_name: Optional commit author name.
        author_email: Optional commit author email.
    """

    def __init__(
        self,
        work_dir: Path,
        remote_url: str,
        remote: str = "origin",
        branch: str = "master",
        author_name: str = "",
        author_email: str = "",
        git_bin: str | None = None,
    ):
        self.work_dir = work_dir
        self.remote_url = remote_url
        self.remote = remote
        self.branch = branch
        self.author_name = author_name
        self.author_email = author_email
        self._git_bin = git_bin

    @classmethod
    def from_settings(cls, settings: Settings) -> Repository:
        return cls(
            settings.output_dir,
            settings.deploy_repo,
            remote=settings.deploy_remote,
            branch=settings.deploy_branch,
            author_name=settings.git_author_name,
            author_email=settings.git_author_email,
        )

    def _find_git(self) -> str:
        if self._git_bin is None:
            self._git_bin = shutil.which("git")
        if not self._git_bin:
            raise SyncError("git executable not found in PATH")
        return self._git_bin

    def _config_args(self) -> list[str]:
        args: list[str] = []
        if self.author_name:
            args.extend(["-c", f"user.name={self.author_name}"])
        if self.author_email:
            args.extend(["-c", f"user.email={self.author_email}"])
        return args

    async def _git(self, *args: str, cwd: Path | None = None) -> str:
        """Run a git command and return its standard output.

        Raises:
            SyncError: If git cannot be started or exits with a non-zero status.
        """
        cmd = [self._find_git(), *self._config_args(), *args]
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(cwd) if cwd else None,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SyncError(
                f"Could not run git {args[0]}: {exc}", command=list(args), original_error=exc
            ) from exc
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip()
            raise SyncError(
                f"git {args[0]} failed ({proc.returncode}): {err}",
                command=list(args),
                stderr=err,
            )
        return stdout.decode("utf-8", errors="replace")

    async def clone(self) -> None:
        """Replace the working copy with a fresh clone of the remote.

        Raises:
            SyncError: If no remote is configured or the clone fails.
        """
        if not self.remote_url:
            raise SyncError("No deploy repository configured")
        logger.info("Cloning repository...")
        await asyncio.to_thread(self._prepare_work_dir)
        args = ["clone", "--origin", self.remote]
        heads = await self._git("ls-remote", "--heads", self.remote_url, self.branch)
        if heads.strip():
            args.extend(["--branch", self.branch])
        await self._git(*args, self.remote_url, str(self.work_dir))
        logger.info("Successfully cloned repository.")

    def _prepare_work_dir(self) -> None:
        try:
            remove_tree(self.work_dir)
            self.work_dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SyncError(
                f"Could not prepare {self.work_dir}: {exc}", original_error=exc
            ) from exc

    async def clean(self) -> None:
        """Empty the working copy, keeping its ``.git`` directory.

        Raises:
            SyncError: If the working copy has no metadata or cannot be emptied.
        """
        logger.info("Cleaning deploy directory...")
        await asyncio.to_thread(self.clean_sync)
        logger.info("Successfully cleaned deploy directory.")

    def clean_sync(self) -> None:
        if not (self.work_dir / METADATA_DIR).is_dir():
            raise SyncError(f"{self.work_dir} is not a git working copy")
        try:
            with preserved_metadata(self.work_dir):
                empty_dir(self.work_dir)
        except OSError as exc:
            raise SyncError(
                f"Could not clean deploy directory: {exc}", original_error=exc
            ) from exc

    async def diff(self) -> str:
        """Describe how the working tree differs from the last commit.

        Untracked files are included, so newly generated pages count as
        changes.

        Returns:
            Porcelain status lines; empty when nothing changed.
        """
        return await self._git(
            "status", "--porcelain", "--untracked-files=all", cwd=self.work_dir
        )

    async def add(self, pattern: str = ".") -> None:
        await self._git("add", "--all", pattern, cwd=self.work_dir)

    async def commit(self, message: str) -> None:
        await self._git("commit", "-m", message, cwd=self.work_dir)

    async def push(self) -> None:
        await self._git("push", self.remote, f"HEAD:{self.branch}", cwd=self.work_dir)

    async def commit_and_push(self, now: datetime | None = None) -> CommitOutcome:
        """Commit every change and push it, or do nothing when the tree is clean.

        A push failure is logged and reported in the outcome; the local
        commit is kept.

        Returns:
            CommitOutcome describing what happened.

        Raises:
            SyncError: If staging or committing fails.
        """
        logger.info("Checking diff...")
        changes = await self.diff()
        if not changes.strip():
            logger.info("No changes in repo.")
            return CommitOutcome(changed=False)

        logger.info("Files have changed:\n%s", changes.rstrip())
        await self.add()
        logger.info("Files staged.")
        message = commit_message(now)
        await self.commit(message)
        logger.info("Successfully committed changes to git.")
        try:
            await self.push()
        except SyncError as exc:
            logger.error("Could not push to git: %s", exc)
            return CommitOutcome(changed=True, committed=True, pushed=False, message=message)
        logger.info("Successfully pushed changes.")
        return CommitOutcome(changed=True, committed=True, pushed=True, message=message)
