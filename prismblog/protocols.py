"""Protocol definitions for prismblog.

The generation coordinator and the live server depend on these interfaces
rather than on the concrete Prismic client, Jinja engine, git working copy
or S3 archive, so each collaborator can be replaced by a fake in tests.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .gitsync import CommitOutcome
    from .prismic import Document, LinkResolver


@runtime_checkable
class ContentSource(Protocol):
    """Protocol for querying the CMS."""

    @abstractmethod
    async def connect(self) -> str:
        """Open the connection and return the ref queries run against."""
        ...

    @abstractmethod
    async def query_by_type(self, doc_type: str, ref: str | None = None) -> list[Document]:
        """Return every document of a type."""
        ...

    @abstractmethod
    async def get_by_uid(
        self, doc_type: str, uid: str, ref: str | None = None
    ) -> Document | None:
        """Return the document with a uid, or None."""
        ...

    @abstractmethod
    async def get_by_id(self, doc_id: str, ref: str | None = None) -> Document | None:
        """Return the document with an id, or None."""
        ...

    @abstractmethod
    async def preview_session(
        self, token: str, resolver: LinkResolver, default_url: str
    ) -> str:
        """Resolve a preview token to a URL."""
        ...


@runtime_checkable
class PageRenderer(Protocol):
    """Protocol for rendering the site's pages to HTML strings."""

    @abstractmethod
    def render_homepage(self, documents: Iterable[Document]) -> str:
        ...

    @abstractmethod
    def render_post(self, document: Document) -> str:
        ...


@runtime_checkable
class DeployRepository(Protocol):
    """Protocol for the working copy a generation run writes into."""

    @abstractmethod
    async def clone(self) -> None:
        ...

    @abstractmethod
    async def clean(self) -> None:
        ...

    @abstractmethod
    async def commit_and_push(self, now: datetime | None = None) -> CommitOutcome:
        ...


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for archiving raw payloads."""

    @abstractmethod
    def put(self, key: str, body: bytes, content_type: str) -> None:
        """Store ``body`` under ``key``."""
        ...
