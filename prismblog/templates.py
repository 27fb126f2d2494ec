"""Template rendering engine for prismblog.

This module uses Jinja2 to render the homepage and blog post templates.
Templates are looked up in the project's ``views`` directory first and in the
default views bundled with the package second, so a project only needs to
override the templates it wants to change.

Key classes:
- PageDescriptor: Per-render page metadata (title, canonical URL, locale, flags).
- TemplateEngine: Renders named templates and exposes rich text helpers to them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    Template,
    TemplateNotFound,
    TemplateSyntaxError,
    select_autoescape,
)

from .collections import DocumentCollection
from .errors import RenderError
from .html_utils import excerpt, join_root_url
from .prismic import Document, LinkResolver, link_resolver
from .richtext import as_html, as_text, link_url

if TYPE_CHECKING:
    from .config import Settings

HOMEPAGE_TEMPLATE = "homepage"
POST_TEMPLATE = "blog"


@dataclass(frozen=True)
class PageDescriptor:
    """Metadata for one rendered page.

    Attributes:
        document: The document being rendered, or None for the homepage.
        title: Page title.
        canonical_url: Absolute (or root-relative) URL of the page.
        lang: Value of the ``<html lang>`` attribute.
        body_id: ``id`` attribute of the ``<body>`` element.
        display_nav: Whether the template shows the navigation bar.
    """

    document: Document | None
    title: str
    canonical_url: str
    lang: str
    body_id: str
    display_nav: bool = False


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        views_dir: Project template directory.
        site_title: Title used for every page.
        site_url: Public base URL for canonical links.
        lang: Default page language.
        endpoint: Prismic API endpoint, exposed to templates as ``ctx.endpoint``.
        resolver: Link resolver used for documents and link fields.
        env: Jinja2 environment.
    """

    def __init__(
        self,
        views_dir: Path,
        site_title: str = "",
        site_url: str = "",
        lang: str = "",
        endpoint: str = "",
        resolver: LinkResolver = link_resolver,
    ):
        self.views_dir = views_dir
        self.site_title = site_title
        self.site_url = site_url
        self.lang = lang
        self.endpoint = endpoint
        self.resolver = resolver
        self.env = Environment(
            loader=ChoiceLoader(
                [
                    FileSystemLoader(str(views_dir)),
                    PackageLoader("prismblog", "views"),
                ]
            ),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            enable_async=False,
        )
        self._install_globals()

    @classmethod
    def from_settings(
        cls, settings: Settings, resolver: LinkResolver = link_resolver
    ) -> TemplateEngine:
        return cls(
            settings.views_dir,
            site_title=settings.site_title,
            site_url=settings.site_url,
            lang=settings.lang,
            endpoint=settings.api_endpoint,
            resolver=resolver,
        )

    def _install_globals(self) -> None:
        """Install rich text helpers in the Jinja environment."""
        self.env.globals["as_html"] = lambda field: as_html(field, self.resolver)
        self.env.globals["as_text"] = as_text
        self.env.globals["link_url"] = lambda link: link_url(link, self.resolver)
        self.env.globals["url_for"] = self.url_for
        self.env.globals["excerpt"] = excerpt
        self.env.filters["excerpt"] = excerpt

    def url_for(self, target: Any) -> str:
        """Return the root-relative URL of a document, link field or path."""
        if isinstance(target, str):
            return target if target.startswith("/") else f"/{target}"
        return self.resolver(target)

    def homepage_descriptor(self) -> PageDescriptor:
        return PageDescriptor(
            document=None,
            title=self.site_title,
            canonical_url=join_root_url(self.site_url, "/"),
            lang=self.lang,
            body_id="homepage",
        )

    def post_descriptor(self, document: Document) -> PageDescriptor:
        title = as_text(document.data.get("title")) if document.data else ""
        if title and self.site_title:
            title = f"{title} | {self.site_title}"
        return PageDescriptor(
            document=document,
            title=title or self.site_title,
            canonical_url=join_root_url(self.site_url, self.resolver(document)),
            lang=self.lang,
            body_id="blog-page",
            display_nav=True,
        )

    def render(
        self,
        template_name: str,
        descriptor: PageDescriptor,
        documents: Iterable[Document] | None = None,
    ) -> str:
        """Render a named template.

        Args:
            template_name: Template name without extension (``homepage``, ``blog``).
            descriptor: Page metadata; its document is exposed as ``document``
                and ``post``.
            documents: Optional list of documents, exposed as ``posts``.

        Returns:
            Rendered HTML string.

        Raises:
            RenderError: If the template is missing or fails to render.
        """
        context = {
            "page_info": descriptor,
            "document": descriptor.document,
            "post": descriptor.document,
            "posts": DocumentCollection(documents or []),
            "ctx": {"endpoint": self.endpoint, "link_resolver": self.resolver},
        }
        template = self._resolve_template(template_name)
        try:
            return template.render(**context)
        except TemplateSyntaxError as exc:
            raise RenderError(
                template_name,
                f"Template syntax error on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except Exception as exc:
            raise RenderError(template_name, _format_error_message(exc), exc) from exc

    def render_homepage(self, documents: Iterable[Document]) -> str:
        return self.render(HOMEPAGE_TEMPLATE, self.homepage_descriptor(), documents)

    def render_post(self, document: Document) -> str:
        return self.render(POST_TEMPLATE, self.post_descriptor(document))

    def _resolve_template(self, name: str) -> Template:
        """Resolve a template name to a Jinja2 Template.

        Args:
            name: Template name with or without extension.

        Returns:
            Jinja2 Template object.

        Raises:
            RenderError: If no candidate exists or the template does not parse.
        """
        candidates = [f"{name}.html.jinja", f"{name}.jinja", f"{name}.html", name]
        for candidate in candidates:
            try:
                return self.env.get_template(candidate)
            except TemplateNotFound:
                continue
            except TemplateSyntaxError as exc:
                raise RenderError(
                    name,
                    f"Template syntax error on line {exc.lineno}: {exc.message}",
                    exc,
                ) from exc
        raise RenderError(name, "Template not found")


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"
