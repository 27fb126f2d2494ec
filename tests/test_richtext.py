from markupsafe import Markup

from prismblog.richtext import as_html, as_text, link_url


def block(kind, text="", spans=None, **extra):
    return {"type": kind, "text": text, "spans": spans or [], **extra}


def test_as_text_joins_blocks():
    field = [block("heading1", "Title"), block("paragraph", "Body"), block("image", url="x")]
    assert as_text(field) == "Title Body"
    assert as_text(field, separator="\n") == "Title\nBody"
    assert as_text(None) == ""
    assert as_text("plain") == "plain"


def test_as_html_blocks_and_escaping():
    html = as_html([block("heading2", "A <b>"), block("paragraph", "line\nbreak")])
    assert isinstance(html, Markup)
    assert html == "<h2>A &lt;b&gt;</h2><p>line<br />break</p>"
    assert as_html([block("preformatted", "a\nb")]) == "<pre>a\nb</pre>"
    assert as_html([]) == ""
    assert as_html([block("mystery", "x")]) == ""


def test_list_items_are_grouped():
    field = [
        block("list-item", "one"),
        block("list-item", "two"),
        block("o-list-item", "first"),
        block("paragraph", "after"),
    ]
    assert as_html(field) == (
        "<ul><li>one</li><li>two</li></ul><ol><li>first</li></ol><p>after</p>"
    )


def test_overlapping_spans_nest_correctly():
    spans = [
        {"start": 0, "end": 9, "type": "strong"},
        {"start": 6, "end": 13, "type": "em"},
    ]
    html = as_html([block("paragraph", "Hello world!!", spans)])
    assert html == "<p><strong>Hello </strong><strong><em>wor</em></strong><em>ld!!</em></p>"


def test_hyperlinks_resolve_documents_and_web_links():
    spans = [
        {"start": 0, "end": 4, "type": "hyperlink", "data": {"link_type": "Document", "type": "blog", "uid": "other"}},
        {"start": 5, "end": 8, "type": "hyperlink", "data": {"link_type": "Web", "url": "https://x.org", "target": "_blank"}},
    ]
    html = as_html([block("paragraph", "this one", spans)])
    assert '<a href="/other">this</a>' in html
    assert '<a href="https://x.org" target="_blank" rel="noopener">one</a>' in html


def test_images_embeds_and_labels():
    image = block("image", url="https://img/x.png", alt='a "cat"')
    assert as_html([image]) == '<p class="block-img"><img src="https://img/x.png" alt="a &quot;cat&quot;" /></p>'
    embed = block("embed", oembed={"embed_url": "https://yt/1", "type": "video", "provider_name": "YouTube", "html": "<iframe></iframe>"})
    assert "<iframe></iframe>" in as_html([embed])
    labelled = block("paragraph", "code", [{"start": 0, "end": 4, "type": "label", "data": {"label": "inline"}}])
    assert as_html([labelled]) == '<p><span class="inline">code</span></p>'


def test_link_url():
    assert link_url({"link_type": "Web", "url": "https://a.b"}) == "https://a.b"
    assert link_url({"link_type": "Media", "url": "https://cdn/f.pdf"}) == "https://cdn/f.pdf"
    assert link_url({"link_type": "Document", "type": "blog", "uid": "p", "isBroken": True}) == ""
    assert link_url({"link_type": "Any"}) == ""
    assert link_url(None) == ""
