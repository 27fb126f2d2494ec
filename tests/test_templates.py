import pytest

from prismblog.errors import RenderError
from prismblog.prismic import Document
from prismblog.templates import TemplateEngine


def post(uid="first-post", title="First post"):
    return Document(
        id=f"id-{uid}",
        uid=uid,
        type="blog",
        data={
            "title": [{"type": "heading1", "text": title, "spans": []}],
            "body": [{"type": "paragraph", "text": "Some <body> text", "spans": []}],
        },
        first_publication_date="2024-01-01T10:00:00+0000",
    )


def make_engine(tmp_path, **kwargs):
    views = tmp_path / "views"
    views.mkdir(exist_ok=True)
    return TemplateEngine(
        views,
        site_title=kwargs.get("site_title", "My blog"),
        site_url=kwargs.get("site_url", "https://me.github.io"),
        lang="fr",
    )


def test_default_views_render_homepage_and_post(tmp_path):
    engine = make_engine(tmp_path)
    home = engine.render_homepage([post(), post("second-post", "Second")])
    assert '<html lang="fr">' in home
    assert 'id="homepage"' in home
    assert '<a href="/first-post">First post</a>' in home
    assert '<a href="/second-post">Second</a>' in home
    assert 'href="https://me.github.io/"' in home

    page = engine.render_post(post())
    assert "<title>First post | My blog</title>" in page
    assert 'id="blog-page"' in page
    assert "<p>Some &lt;body&gt; text</p>" in page
    assert 'rel="canonical" href="https://me.github.io/first-post"' in page
    assert "<nav>" in page


def test_project_views_override_defaults(tmp_path):
    engine = make_engine(tmp_path)
    (tmp_path / "views" / "blog.html.jinja").write_text(
        "{{ page_info.title }}|{{ as_text(post.data.title) }}|{{ url_for(post) }}",
        encoding="utf-8",
    )
    assert engine.render_post(post()) == "First post | My blog|First post|/first-post"


def test_descriptors(tmp_path):
    engine = make_engine(tmp_path, site_url="")
    home = engine.homepage_descriptor()
    assert home.document is None
    assert home.title == "My blog"
    assert home.canonical_url == "/"
    assert home.display_nav is False
    page = engine.post_descriptor(post())
    assert page.display_nav is True
    assert page.canonical_url == "/first-post"
    untitled = engine.post_descriptor(Document(id="x", uid="x", type="blog"))
    assert untitled.title == "My blog"


def test_missing_template_raises_render_error(tmp_path):
    engine = make_engine(tmp_path)
    with pytest.raises(RenderError) as excinfo:
        engine.render("nope", engine.homepage_descriptor())
    assert excinfo.value.template_name == "nope"


def test_template_errors_raise_render_error(tmp_path):
    engine = make_engine(tmp_path)
    views = tmp_path / "views"
    (views / "broken.html.jinja").write_text("{% if %}", encoding="utf-8")
    (views / "failing.html.jinja").write_text("{{ post.data.title.nope.deeper }}", encoding="utf-8")
    with pytest.raises(RenderError, match="syntax error"):
        engine.render("broken", engine.homepage_descriptor())
    with pytest.raises(RenderError, match="Undefined variable"):
        engine.render("failing", engine.post_descriptor(post()))
