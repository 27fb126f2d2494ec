"""Static site generation for prismblog.

This module contains the coordinator that regenerates the whole static site
and publishes it. A run goes through these stages:

    IDLE -> CLONING -> CLEANING -> FETCHING -> RENDERING -> ASSET_COPY
         -> COMMITTING -> DONE | FAILED

The stages up to FETCHING are strictly sequential and any failure in them
aborts the run. RENDERING fans out into N+2 concurrent tasks (the homepage,
one task per post, the public asset copy). Each task settles the shared
GenerationState when it finishes, successfully or not, and the completion
check runs again after every settlement. Commit starts once, when the check
first passes.

Key classes:
- GenerationState: Completion tracker for the fan-out phase.
- SiteGenerator: The coordinator.
- GenerationResult: What a run produced.

Key functions:
- is_complete: Pure completion check over a GenerationState.
- generate_site: Build every collaborator from Settings and run once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from .assets import AssetPipeline
from .gitsync import CommitOutcome, Repository
from .prismic import Document, PrismicClient, make_link_resolver
from .templates import TemplateEngine
from .utils import page_filename
from .writer import write_html_async

if TYPE_CHECKING:
    from .config import Settings
    from .protocols import ContentSource, DeployRepository, PageRenderer

logger = logging.getLogger(__name__)

HOMEPAGE_FILENAME = "index.html"

Writer = Callable[[Path, str], Awaitable[Path]]


class Stage(str, Enum):
    IDLE = "idle"
    CLONING = "cloning"
    CLEANING = "cleaning"
    FETCHING = "fetching"
    RENDERING = "rendering"
    ASSET_COPY = "asset_copy"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskFailure:
    """A fan-out task that finished with an error.

    Attributes:
        kind: ``homepage``, ``page`` or ``assets``.
        name: Output file name or task label.
        error: Error message.
    """

    kind: str
    name: str
    error: str


@dataclass
class GenerationState:
    """Completion tracker for one run.

    Attributes:
        homepage_written: The homepage file was written.
        pending_pages: Slugs of posts not yet settled.
        assets_copied: Public assets were copied.
        failures: Tasks that settled with an error.
    """

    homepage_written: bool = False
    pending_pages: set[str] = field(default_factory=set)
    assets_copied: bool = False
    failures: list[TaskFailure] = field(default_factory=list)

    def has_failed(self, kind: str) -> bool:
        return any(f.kind == kind for f in self.failures)


def is_complete(state: GenerationState) -> bool:
    """Return True once every fan-out task has settled.

    A task that failed counts as settled, so a failed write can never hold
    the commit barrier closed.
    """
    homepage_settled = state.homepage_written or state.has_failed("homepage")
    assets_settled = state.assets_copied or state.has_failed("assets")
    return homepage_settled and not state.pending_pages and assets_settled


@dataclass
class GenerationResult:
    """Result of a generation run.

    Attributes:
        stage: Final stage (DONE unless the run raised).
        pages: Paths of every page file written.
        failures: Fan-out tasks that failed.
        outcome: What the commit step did; None when it was skipped.
    """

    stage: Stage
    pages: list[Path]
    failures: list[TaskFailure]
    outcome: CommitOutcome | None

    @property
    def ok(self) -> bool:
        return (
            self.stage is Stage.DONE
            and not self.failures
            and (self.outcome is None or not self.outcome.committed or self.outcome.pushed)
        )


class SiteGenerator:
    """Regenerates the static site in a deploy working copy and publishes it.

    Attributes:
        content: CMS query interface.
        renderer: Page renderer.
        repository: Deploy working copy.
        output_dir: Directory pages are written to (the working copy).
        assets: Public asset copier.
        document_type: CMS type of the posts.
        stage: Current stage.
        history: Every stage entered, in order.
        state: GenerationState of the fan-out phase, once it started.
    """

    def __init__(
        self,
        content: ContentSource,
        renderer: PageRenderer,
        repository: DeployRepository,
        output_dir: Path,
        assets: AssetPipeline,
        document_type: str = "blog",
        writer: Writer = write_html_async,
    ):
        self.content = content
        self.renderer = renderer
        self.repository = repository
        self.output_dir = output_dir
        self.assets = assets
        self.document_type = document_type
        self.writer = writer
        self.stage = Stage.IDLE
        self.history: list[Stage] = [Stage.IDLE]
        self.state: GenerationState | None = None
        self._barrier: asyncio.Event | None = None
        self._pages: list[Path] = []

    def _enter(self, stage: Stage) -> None:
        logger.debug("Generation stage: %s -> %s", self.stage.value, stage.value)
        self.stage = stage
        self.history.append(stage)

    async def run(self) -> GenerationResult:
        """Run one full generation.

        Returns:
            GenerationResult of the run.

        Raises:
            PrismblogError: If connecting, cloning, cleaning, fetching or
                committing fails. The run is then in the FAILED stage.
        """
        try:
            await self.content.connect()
            self._enter(Stage.CLONING)
            await self.repository.clone()
            self._enter(Stage.CLEANING)
            await self.repository.clean()
            self._enter(Stage.FETCHING)
            documents = await self._fetch()
        except Exception as exc:
            logger.error("Generation failed while %s: %s", self.stage.value, exc)
            self._enter(Stage.FAILED)
            raise

        await self._render_all(documents)

        self._enter(Stage.COMMITTING)
        assert self.state is not None
        outcome: CommitOutcome | None = None
        if self.state.failures:
            logger.error(
                "%d task(s) failed; not committing a partial site.",
                len(self.state.failures),
            )
        else:
            try:
                outcome = await self.repository.commit_and_push()
            except Exception as exc:
                logger.error("Could not commit changes: %s", exc)
                self._enter(Stage.FAILED)
                raise
        self._enter(Stage.DONE)
        return GenerationResult(
            stage=self.stage,
            pages=list(self._pages),
            failures=list(self.state.failures),
            outcome=outcome,
        )

    async def _fetch(self) -> list[Document]:
        logger.info("Fetching blog posts...")
        documents = await self.content.query_by_type(self.document_type)
        logger.info("Successfully fetched %d blog posts.", len(documents))
        return documents

    async def _render_all(self, documents: list[Document]) -> None:
        """Fan out the homepage, post and asset tasks and wait for the barrier."""
        posts: dict[str, Document] = {}
        for document in documents:
            if not document.uid:
                logger.warning("Skipping document %s without a uid.", document.id)
                continue
            posts.setdefault(document.uid, document)

        self.state = GenerationState(pending_pages=set(posts))
        self._barrier = asyncio.Event()
        self._enter(Stage.RENDERING)

        tasks = [asyncio.create_task(self._create_homepage(documents))]
        tasks.extend(asyncio.create_task(self._create_post(doc)) for doc in posts.values())
        tasks.append(asyncio.create_task(self._copy_assets()))

        await self._barrier.wait()
        await asyncio.gather(*tasks)

    def _settle(
        self,
        kind: str,
        name: str,
        error: Exception | None = None,
        path: Path | None = None,
    ) -> None:
        """Record one task's completion and re-check the barrier.

        This is the only place GenerationState changes. It runs on the event
        loop thread, between awaits, so updates never interleave.
        """
        state = self.state
        assert state is not None and self._barrier is not None
        if kind == "homepage":
            state.homepage_written = error is None
        elif kind == "page":
            state.pending_pages.discard(name)
        elif kind == "assets":
            state.assets_copied = error is None
        if error is not None:
            state.failures.append(TaskFailure(kind, name, str(error)))
        if path is not None:
            self._pages.append(path)

        if is_complete(state):
            if not self._barrier.is_set():
                self._barrier.set()
        elif (
            self.stage is Stage.RENDERING
            and not state.pending_pages
            and (state.homepage_written or state.has_failed("homepage"))
        ):
            self._enter(Stage.ASSET_COPY)

    async def _create_homepage(self, documents: Iterable[Document]) -> None:
        logger.info("Creating the homepage...")
        try:
            html = self.renderer.render_homepage(documents)
            path = await self.writer(self.output_dir / HOMEPAGE_FILENAME, html)
        except Exception as exc:
            logger.error("Unable to create the homepage: %s", exc)
            self._settle("homepage", HOMEPAGE_FILENAME, error=exc)
            return
        logger.info("Homepage file was saved.")
        self._settle("homepage", HOMEPAGE_FILENAME, path=path)

    async def _create_post(self, document: Document) -> None:
        uid = document.uid or ""
        logger.info("Creating blog page %s", uid)
        try:
            target = self.output_dir / page_filename(uid)
            html = self.renderer.render_post(document)
            path = await self.writer(target, html)
        except Exception as exc:
            logger.error("Unable to create blog page %s: %s", uid, exc)
            self._settle("page", uid, error=exc)
            return
        logger.info("%s file was saved.", uid)
        self._settle("page", uid, path=path)

    async def _copy_assets(self) -> None:
        logger.info("Copying public assets...")
        try:
            await self.assets.run_async()
        except Exception as exc:
            logger.error("Could not copy public assets: %s", exc)
            self._settle("assets", "public", error=exc)
            return
        logger.info("Copied all public assets successfully!")
        self._settle("assets", "public")


async def generate_site(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GenerationResult:
    """Regenerate and publish the whole site once.

    Args:
        settings: Loaded configuration.
        transport: Optional httpx transport for the CMS client.

    Returns:
        GenerationResult of the run.
    """
    resolver = make_link_resolver(settings.document_type)
    async with PrismicClient(
        settings.api_endpoint,
        access_token=settings.access_token,
        timeout=settings.api_timeout,
        transport=transport,
    ) as client:
        generator = SiteGenerator(
            client,
            TemplateEngine.from_settings(settings, resolver=resolver),
            Repository.from_settings(settings),
            settings.output_dir,
            AssetPipeline(settings.public_dir, settings.output_dir),
            document_type=settings.document_type,
        )
        return await generator.run()
