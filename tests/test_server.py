import pytest
from botocore.exceptions import ClientError

from prismblog.config import load_config
from prismblog.errors import FetchError
from prismblog.prismic import PREVIEW_COOKIE, Document
from prismblog.server import create_app
from prismblog.webhook import WebhookArchive

POSTS = [
    Document(
        id="W1",
        uid="first-post",
        type="blog",
        data={
            "title": [{"type": "heading1", "text": "First post", "spans": []}],
            "body": [{"type": "paragraph", "text": "Hello from the first post.", "spans": []}],
        },
    ),
    Document(
        id="W2",
        uid="second-post",
        type="blog",
        data={"title": [{"type": "heading1", "text": "Second post", "spans": []}]},
    ),
]


class FakeContent:
    def __init__(self, log, fail=False):
        self.log = log
        self.fail = fail

    def _check(self):
        if self.fail:
            raise FetchError("Prismic API returned 503")

    async def connect(self):
        return "master"

    async def query_by_type(self, doc_type, ref=None):
        self.log.append(("query_by_type", doc_type, ref))
        self._check()
        return list(POSTS)

    async def get_by_uid(self, doc_type, uid, ref=None):
        self.log.append(("get_by_uid", uid, ref))
        self._check()
        return next((d for d in POSTS if d.uid == uid), None)

    async def get_by_id(self, doc_id, ref=None):
        self.log.append(("get_by_id", doc_id, ref))
        self._check()
        return next((d for d in POSTS if d.id == doc_id), None)

    async def preview_session(self, token, resolver, default_url):
        self.log.append(("preview_session", token))
        self._check()
        return resolver(POSTS[0])

    async def aclose(self):
        self.log.append(("aclose",))


class FakeStore:
    def __init__(self, error=None):
        self.objects = {}
        self.error = error

    def put(self, key, body, content_type):
        if self.error is not None:
            raise self.error
        self.objects[key] = (body, content_type)


@pytest.fixture
def project(tmp_path):
    public = tmp_path / "public"
    (public / "stylesheets").mkdir(parents=True)
    (public / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")
    (public / "stylesheets" / "style.css").write_text("body{}", encoding="utf-8")
    return tmp_path


def make_client(project, fail=False, archive=None, environ=None):
    settings = load_config(
        project,
        environ={
            "PRISMIC_API_ENDPOINT": "https://blog.cdn.prismic.io/api/v2",
            "PRISMIC_WEBHOOK_SECRET": "s3cret",
            **(environ or {}),
        },
    )
    log = []
    app = create_app(settings, content_factory=lambda: FakeContent(log, fail=fail), archive=archive)
    app.testing = True
    return app.test_client(), log


def test_homepage_lists_posts(project):
    client, log = make_client(project)
    response = client.get("/")
    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert 'href="/first-post"' in body
    assert "Second post" in body
    assert log == [("query_by_type", "blog", None), ("aclose",)]


def test_post_page_and_missing_post(project):
    client, log = make_client(project)
    response = client.get("/first-post")
    assert response.status_code == 200
    assert "Hello from the first post." in response.get_data(as_text=True)

    response = client.get("/no-such-post")
    assert response.status_code == 404
    assert response.get_data(as_text=True) == "404 not found"


def test_cms_errors_become_500(project):
    client, _ = make_client(project, fail=True)
    response = client.get("/")
    assert response.status_code == 500
    assert "Prismic API returned 503" in response.get_data(as_text=True)
    assert client.get("/first-post").status_code == 500


def test_redirect_by_id(project):
    client, _ = make_client(project)
    response = client.get("/id/W2")
    assert response.status_code == 301
    assert response.headers["Location"].endswith("/second-post")
    assert client.get("/id/unknown").status_code == 404


def test_preview_sets_cookie_and_later_queries_use_it(project):
    client, log = make_client(project)
    token = "https://blog.prismic.io/previews/abc"

    assert client.get("/preview").status_code == 400

    response = client.get("/preview", query_string={"token": token})
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/first-post")
    cookie = response.headers["Set-Cookie"]
    assert cookie.startswith(f"{PREVIEW_COOKIE}=")
    assert "Max-Age=1800" in cookie
    assert "HttpOnly" not in cookie

    log.clear()
    client.get("/", headers={"Cookie": f"{PREVIEW_COOKIE}={token}"})
    assert ("query_by_type", "blog", token) in log


def test_preview_failure(project):
    client, _ = make_client(project, fail=True)
    response = client.get("/preview", query_string={"token": "https://blog.prismic.io/p"})
    assert response.status_code == 500
    assert response.get_data(as_text=True).startswith("Error 500 in preview:")


def test_public_files_are_served(project):
    client, log = make_client(project)
    response = client.get("/robots.txt")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "User-agent: *\n"
    response.close()
    response = client.get("/stylesheets/style.css")
    assert response.status_code == 200
    response.close()
    assert client.get("/stylesheets/missing.css").status_code == 404
    assert log == []


def test_webhook_archives_payload(project):
    store = FakeStore()
    client, _ = make_client(project, archive=WebhookArchive(store))
    response = client.post("/prismic-webhook", json={"type": "api-update", "secret": "s3cret"})
    assert response.status_code == 200
    assert response.get_json() == {"status": "OK"}
    [(key, (body, content_type))] = store.objects.items()
    assert key.endswith(".json")
    assert b'"api-update"' in body
    assert content_type == "application/json"


def test_webhook_secret_from_query_string(project):
    store = FakeStore()
    client, _ = make_client(project, archive=WebhookArchive(store))
    response = client.post("/prismic-webhook?secret=s3cret", data=b"{}")
    assert response.status_code == 200
    assert len(store.objects) == 1


def test_webhook_rejects_wrong_secret(project):
    store = FakeStore()
    client, _ = make_client(project, archive=WebhookArchive(store))
    response = client.post("/prismic-webhook", json={"secret": "guess"})
    assert response.status_code == 401
    assert response.get_json() == {"error": "Invalid webhook secret"}
    assert store.objects == {}


def test_webhook_storage_error_still_acknowledged(project, caplog):
    error = ClientError({"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject")
    client, _ = make_client(project, archive=WebhookArchive(FakeStore(error=error)))
    response = client.post("/prismic-webhook", json={"secret": "s3cret"})
    assert response.status_code == 200
    assert response.get_json() == {"status": "OK"}
    assert "Could not archive webhook payload" in caplog.text


def test_webhook_without_bucket(project):
    client, _ = make_client(project)
    response = client.post("/prismic-webhook", json={"secret": "s3cret"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "No webhook bucket configured"}


def test_webhook_acknowledges_any_storage_failure(project):
    class BrokenStore:
        def put(self, key, body, content_type):
            raise RuntimeError("disk quota exceeded")

    client, _ = make_client(project, archive=WebhookArchive(BrokenStore()))
    response = client.post("/prismic-webhook", json={"secret": "s3cret"})
    assert response.status_code == 200
    assert response.get_json() == {"status": "OK"}
