"""Prismic CMS client for prismblog.

Talks to the Prismic REST API v2 with an httpx AsyncClient. The API is
queried in two steps: the endpoint root returns the available refs (content
releases), then ``documents/search`` is queried against one ref with a
predicate.

Key classes:
- Document: Immutable record of one CMS document.
- PrismicClient: Async query interface (by type, uid, id, preview session).

Functions:
- link_resolver: Map a document or link field to its URL path on the site.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import httpx

from .errors import FetchError

logger = logging.getLogger(__name__)

PREVIEW_COOKIE = "io.prismic.preview"
PAGE_SIZE = 100

LinkResolver = Callable[[Any], str]


@dataclass(frozen=True)
class Document:
    """A document returned by the CMS.

    The ``data`` mapping follows the schema defined in Prismic and is not
    validated here.
    """

    id: str
    uid: str | None
    type: str
    data: Mapping[str, Any] = field(default_factory=dict)
    tags: tuple[str, ...] = ()
    lang: str = ""
    href: str = ""
    first_publication_date: str | None = None
    last_publication_date: str | None = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Document:
        if not isinstance(payload, Mapping) or not payload.get("id"):
            raise FetchError("Prismic search result without an id")
        return cls(
            id=str(payload["id"]),
            uid=payload.get("uid"),
            type=str(payload.get("type", "")),
            data=payload.get("data") or {},
            tags=tuple(payload.get("tags") or ()),
            lang=str(payload.get("lang") or ""),
            href=str(payload.get("href") or ""),
            first_publication_date=payload.get("first_publication_date"),
            last_publication_date=payload.get("last_publication_date"),
        )


def make_link_resolver(post_type: str = "blog") -> LinkResolver:
    """Build a resolver mapping documents or link fields to site paths.

    Posts of ``post_type`` live at ``/<uid>``; anything else resolves to the
    homepage.
    """

    def resolve(target: Any) -> str:
        if isinstance(target, Mapping):
            doc_type, uid = target.get("type"), target.get("uid")
        else:
            doc_type, uid = getattr(target, "type", None), getattr(target, "uid", None)
        if doc_type == post_type and uid:
            return f"/{uid}"
        return "/"

    return resolve


link_resolver = make_link_resolver()


def at(path: str, value: str) -> str:
    """Build an ``at`` predicate, e.g. ``[[at(document.type, "blog")]]``."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'[[at({path}, "{escaped}")]]'


class PrismicClient:
    """Async client for one Prismic repository.

    Attributes:
        endpoint: API v2 endpoint, e.g. ``https://repo.cdn.prismic.io/api/v2``.
        access_token: Optional access token sent with every request.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        endpoint: str,
        access_token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not endpoint:
            raise FetchError("No Prismic API endpoint configured")
        self.endpoint = endpoint.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._master_ref: str | None = None

    async def __aenter__(self) -> PrismicClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            )
        return self._client

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        params = dict(params or {})
        if self.access_token:
            params["access_token"] = self.access_token
        try:
            resp = await self._get_client().get(url, params=params)
        except httpx.HTTPError as exc:
            raise FetchError(
                f"Could not reach Prismic API: {exc}", url=url, original_error=exc
            ) from exc
        if resp.status_code >= 400:
            detail = resp.text.strip()[:200]
            raise FetchError(
                f"Prismic API returned {resp.status_code} for {url}: {detail}",
                url=url,
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(
                f"Prismic API returned an unreadable body for {url}",
                url=url,
                status_code=resp.status_code,
                original_error=exc,
            ) from exc

    async def connect(self) -> str:
        """Read the repository's master ref.

        Returns:
            The master ref, cached for the lifetime of the client.
        """
        if self._master_ref is None:
            logger.info("Initialising Prismic API...")
            payload = await self._get_json(self.endpoint)
            refs = payload.get("refs") if isinstance(payload, dict) else None
            master = next(
                (r.get("ref") for r in refs or [] if r.get("isMasterRef")), None
            )
            if not master:
                raise FetchError("Prismic API did not return a master ref", url=self.endpoint)
            self._master_ref = master
            logger.info("Successfully initialised Prismic API.")
        return self._master_ref

    async def query(
        self,
        predicate: str,
        ref: str | None = None,
        orderings: str | None = None,
    ) -> list[Document]:
        """Run one search query and return the first page of results."""
        params: dict[str, Any] = {
            "ref": ref or await self.connect(),
            "q": predicate,
            "pageSize": PAGE_SIZE,
        }
        if orderings:
            params["orderings"] = orderings
        payload = await self._get_json(f"{self.endpoint}/documents/search", params)
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise FetchError("Prismic search response has no results list")
        return [Document.from_api(item) for item in results]

    async def query_by_type(self, doc_type: str, ref: str | None = None) -> list[Document]:
        """Return every document of a custom type, newest first."""
        return await self.query(
            at("document.type", doc_type),
            ref=ref,
            orderings="[document.first_publication_date desc]",
        )

    async def get_by_uid(
        self, doc_type: str, uid: str, ref: str | None = None
    ) -> Document | None:
        results = await self.query(at(f"my.{doc_type}.uid", uid), ref=ref)
        return results[0] if results else None

    async def get_by_id(self, doc_id: str, ref: str | None = None) -> Document | None:
        results = await self.query(at("document.id", doc_id), ref=ref)
        return results[0] if results else None

    async def preview_session(
        self, token: str, resolver: LinkResolver, default_url: str
    ) -> str:
        """Resolve a preview token to the URL of the previewed document.

        Args:
            token: Preview token; a URL on the repository's Prismic host.
            resolver: Link resolver used to build the document URL.
            default_url: URL returned when the preview has no main document.

        Returns:
            The URL to redirect the previewing editor to.
        """
        if not self._is_repository_url(token):
            raise FetchError("Preview token does not belong to this repository", url=token)
        payload = await self._get_json(token)
        main_document = payload.get("mainDocument") if isinstance(payload, dict) else None
        if not main_document:
            return default_url
        document = await self.get_by_id(main_document, ref=token)
        if document is None:
            return default_url
        return resolver(document)

    def _is_repository_url(self, url: str) -> bool:
        parsed = urlparse(url)
        host = parsed.hostname or ""
        repository = (urlparse(self.endpoint).hostname or "").split(".")[0]
        return (
            parsed.scheme == "https"
            and bool(repository)
            and host.startswith(f"{repository}.")
            and host.endswith(".prismic.io")
        )
