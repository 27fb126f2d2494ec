"""HTML utility functions for prismblog.

This module provides the HTML string helpers shared by the renderer and the
file writer.

Functions:
    escape_html: Escape special HTML characters in a string.
    join_root_url: Join a base URL with a path.
    format_html: Re-indent markup for human readability.
    excerpt: Shorten plain text to a word boundary.
"""

from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import PageElement, Tag

BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "dd", "div", "dl",
        "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2",
        "h3", "h4", "h5", "h6", "head", "header", "hr", "html", "li", "link",
        "main", "meta", "nav", "ol", "p", "pre", "script", "section", "style",
        "table", "tbody", "td", "tfoot", "th", "thead", "title", "tr", "ul",
    }
)
VERBATIM_TAGS = frozenset({"pre", "script", "style"})


def escape_html(text: str) -> str:
    """Escape ``&``, ``<``, ``>`` and double quotes for text and attribute values.

    Examples:
        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def join_root_url(root_url: str, path: str) -> str:
    """Join a site root URL and a path without doubling the slash.

    Returns the path alone when there is no root URL.

    Examples:
        >>> join_root_url('https://example.com/', 'about')
        'https://example.com/about'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def format_html(html: str) -> str:
    """Re-indent an HTML document so the written files are easy to diff.

    Block elements start on their own line, indented one space per level.
    Inline elements and the text around them stay on one line, so the
    rendered text is unchanged. ``pre``, ``script`` and ``style`` are
    written verbatim.

    Args:
        html: Rendered markup.

    Returns:
        Re-indented markup ending with a newline.

    Examples:
        >>> format_html("<div><p>Hello <b>world</b>!</p></div>")
        '<div>\\n <p>Hello <b>world</b>!</p>\\n</div>\\n'
    """
    soup = BeautifulSoup(html, "html.parser")
    lines: list[str] = []
    _format_nodes(soup.contents, 0, lines)
    return "\n".join(lines) + "\n"


def _is_block(node: PageElement) -> bool:
    return isinstance(node, Tag) and node.name in BLOCK_TAGS


def _markup(node: PageElement) -> str:
    if isinstance(node, Tag):
        return node.decode()
    return node.output_ready()


def _open_tag(tag: Tag) -> str:
    parts = [tag.name]
    for key, value in tag.attrs.items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        parts.append(f'{key}="{escape_html(str(value))}"')
    return f"<{' '.join(parts)}>"


def _format_nodes(nodes: list[PageElement], depth: int, lines: list[str]) -> None:
    indent = " " * depth
    run: list[PageElement] = []

    def flush() -> None:
        text = "".join(_markup(n) for n in run).strip()
        if text:
            lines.append(indent + text)
        run.clear()

    for node in nodes:
        if not _is_block(node):
            run.append(node)
            continue
        flush()
        if node.name in VERBATIM_TAGS or not any(_is_block(c) for c in node.children):
            lines.append(indent + node.decode())
        else:
            lines.append(indent + _open_tag(node))
            _format_nodes(node.contents, depth + 1, lines)
            lines.append(f"{indent}</{node.name}>")
    flush()


def excerpt(text: str, limit: int = 200, suffix: str = "...") -> str:
    """Shorten text to at most ``limit`` characters, cutting on a word boundary.

    Examples:
        >>> excerpt("one two three", limit=8)
        'one two...'
    """
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    cut = collapsed[:limit]
    if " " in cut and not collapsed[limit].isspace():
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,;:.") + suffix
