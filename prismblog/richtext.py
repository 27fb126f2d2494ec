"""Prismic structured text serialisation for prismblog templates.

Prismic stores rich text as a list of blocks, each with a ``type``, a
``text`` and a list of ``spans`` (character ranges carrying formatting or
hyperlinks). This module turns those blocks into HTML or plain text and
resolves link fields.

Functions:
    as_text: Join the text of every block.
    as_html: Serialise blocks to Markup-safe HTML.
    link_url: Resolve a link field (document, web or media) to a URL.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from markupsafe import Markup

from .html_utils import escape_html
from .prismic import LinkResolver, link_resolver

BLOCK_TAGS = {
    "heading1": "h1",
    "heading2": "h2",
    "heading3": "h3",
    "heading4": "h4",
    "heading5": "h5",
    "heading6": "h6",
    "paragraph": "p",
    "preformatted": "pre",
    "list-item": "li",
    "o-list-item": "li",
}

LIST_TAGS = {"list-item": "ul", "o-list-item": "ol"}


def as_text(field: Any, separator: str = " ") -> str:
    """Return the plain text of a rich text or title field.

    Args:
        field: List of blocks, a plain string, or None.
        separator: String placed between blocks.

    Returns:
        The concatenated text of every block that has text.
    """
    if not field:
        return ""
    if isinstance(field, str):
        return field
    return separator.join(
        block.get("text", "") for block in field if isinstance(block, Mapping) and block.get("text")
    )


def as_html(field: Any, resolver: LinkResolver = link_resolver) -> Markup:
    """Serialise a rich text field to HTML.

    Consecutive list items are grouped into one ``<ul>`` or ``<ol>``.
    Unknown block types are skipped.

    Args:
        field: List of Prismic blocks.
        resolver: Link resolver for hyperlinks pointing at documents.

    Returns:
        Markup-safe HTML string.
    """
    if not field:
        return Markup("")
    if isinstance(field, str):
        return Markup(escape_html(field))

    parts: list[str] = []
    open_list: str | None = None
    for block in field:
        if not isinstance(block, Mapping):
            continue
        block_type = block.get("type", "")
        wanted = LIST_TAGS.get(block_type)
        if open_list and wanted != open_list:
            parts.append(f"</{open_list}>")
            open_list = None
        if wanted and open_list is None:
            parts.append(f"<{wanted}>")
            open_list = wanted
        parts.append(_render_block(block, resolver))
    if open_list:
        parts.append(f"</{open_list}>")
    return Markup("".join(parts))


def link_url(link: Any, resolver: LinkResolver = link_resolver) -> str:
    """Resolve a Prismic link field to a URL.

    Document links go through the link resolver; web and media links carry
    their own URL. Broken or empty links resolve to an empty string.
    """
    if not isinstance(link, Mapping):
        return ""
    link_type = link.get("link_type")
    if link_type == "Document":
        if link.get("isBroken"):
            return ""
        return resolver(link)
    return str(link.get("url") or "")


def _render_block(block: Mapping[str, Any], resolver: LinkResolver) -> str:
    block_type = block.get("type", "")
    if block_type == "image":
        return _render_image(block, resolver)
    if block_type == "embed":
        return _render_embed(block)
    tag = BLOCK_TAGS.get(block_type)
    if tag is None:
        return ""
    text = str(block.get("text") or "")
    inner = _render_spans(text, block.get("spans") or [], resolver, keep_newlines=tag == "pre")
    return f"<{tag}>{inner}</{tag}>"


def _render_image(block: Mapping[str, Any], resolver: LinkResolver) -> str:
    src = escape_html(str(block.get("url") or ""))
    alt = escape_html(str(block.get("alt") or ""))
    img = f'<img src="{src}" alt="{alt}" />'
    href = link_url(block.get("linkTo"), resolver)
    if href:
        img = f'<a href="{escape_html(href)}">{img}</a>'
    return f'<p class="block-img">{img}</p>'


def _render_embed(block: Mapping[str, Any]) -> str:
    oembed = block.get("oembed") or {}
    # Embed markup comes from the oEmbed provider via the CMS and is kept as is.
    return (
        f'<div data-oembed="{escape_html(str(oembed.get("embed_url") or ""))}" '
        f'data-oembed-type="{escape_html(str(oembed.get("type") or ""))}" '
        f'data-oembed-provider="{escape_html(str(oembed.get("provider_name") or ""))}">'
        f'{oembed.get("html") or ""}</div>'
    )


def _render_spans(
    text: str,
    spans: Sequence[Mapping[str, Any]],
    resolver: LinkResolver,
    keep_newlines: bool = False,
) -> str:
    """Apply span formatting to text.

    Text is cut at every span boundary; each segment is wrapped by all spans
    covering it, outermost (earliest, longest) first.
    """
    length = len(text)
    ranges = []
    for span in spans:
        start = max(0, min(int(span.get("start", 0)), length))
        end = max(0, min(int(span.get("end", 0)), length))
        if end > start:
            ranges.append((start, end, span))
    ranges.sort(key=lambda r: (r[0], -r[1]))

    bounds = sorted({0, length, *(r[0] for r in ranges), *(r[1] for r in ranges)})
    out: list[str] = []
    for start, end in zip(bounds, bounds[1:]):
        chunk = escape_html(text[start:end])
        if not keep_newlines:
            chunk = chunk.replace("\n", "<br />")
        covering = [span for s, e, span in ranges if s <= start and e >= end]
        for span in reversed(covering):
            chunk = _wrap_span(span, chunk, resolver)
        out.append(chunk)
    return "".join(out)


def _wrap_span(span: Mapping[str, Any], chunk: str, resolver: LinkResolver) -> str:
    span_type = span.get("type")
    data = span.get("data") or {}
    if span_type == "strong":
        return f"<strong>{chunk}</strong>"
    if span_type == "em":
        return f"<em>{chunk}</em>"
    if span_type == "hyperlink":
        href = escape_html(link_url(data, resolver))
        target = ' target="_blank" rel="noopener"' if data.get("target") else ""
        return f'<a href="{href}"{target}>{chunk}</a>'
    if span_type == "label":
        return f'<span class="{escape_html(str(data.get("label") or ""))}">{chunk}</span>'
    return chunk
