"""Live server for prismblog.

Renders pages on demand straight from the CMS, which is what editors use to
preview content before the static site is regenerated:

- ``GET /`` homepage, ``GET /<uid>`` a post, ``GET /id/<id>`` redirect by id.
- ``GET /preview?token=`` starts a Prismic preview session and stores the
  preview ref in a cookie; later requests query that ref.
- ``POST /prismic-webhook`` archives publication webhooks.
- Files from the project's public directory are served as is.

Key functions:
- create_app: Build the Flask application for a Settings object.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from flask import Flask, Response, jsonify, redirect, request, send_from_directory

from .errors import FetchError, RenderError
from .prismic import PREVIEW_COOKIE, PrismicClient, make_link_resolver
from .templates import TemplateEngine
from .webhook import S3BlobStore, WebhookArchive, secret_matches

if TYPE_CHECKING:
    from .config import Settings
    from .protocols import ContentSource

logger = logging.getLogger(__name__)

PREVIEW_MAX_AGE = 30 * 60

T = TypeVar("T")
ContentFactory = Callable[[], "ContentSource"]


def create_app(
    settings: Settings,
    content_factory: ContentFactory | None = None,
    archive: WebhookArchive | None = None,
) -> Flask:
    """Build the live server application.

    Args:
        settings: Loaded configuration.
        content_factory: Builds a CMS client per request; defaults to a
            PrismicClient for the configured endpoint.
        archive: Webhook archive; defaults to S3 when a bucket is configured.

    Returns:
        Flask application.
    """
    app = Flask(__name__, static_folder=None)
    resolver = make_link_resolver(settings.document_type)
    engine = TemplateEngine.from_settings(settings, resolver=resolver)

    if content_factory is None:

        def content_factory() -> ContentSource:
            return PrismicClient(
                settings.api_endpoint,
                access_token=settings.access_token,
                timeout=settings.api_timeout,
            )

    if archive is None and settings.webhook_bucket:
        archive = WebhookArchive(S3BlobStore(settings.webhook_bucket))

    def run_query(fn: Callable[[Any], Awaitable[T]]) -> T:
        """Run a coroutine against a fresh CMS client on a private event loop."""

        async def runner() -> T:
            client = content_factory()
            try:
                return await fn(client)
            finally:
                close = getattr(client, "aclose", None)
                if close is not None:
                    await close()

        return asyncio.run(runner())

    def preview_ref() -> str | None:
        return request.cookies.get(PREVIEW_COOKIE) or None

    def server_error(exc: Exception) -> Response:
        logger.error("Request %s failed: %s", request.path, exc)
        return Response(f"Error 500: {exc}", status=500, mimetype="text/plain")

    @app.get("/")
    def homepage():
        ref = preview_ref()
        try:
            posts = run_query(lambda c: c.query_by_type(settings.document_type, ref=ref))
            return engine.render_homepage(posts)
        except (FetchError, RenderError) as exc:
            return server_error(exc)

    @app.get("/preview")
    def preview():
        token = request.args.get("token")
        if not token:
            return Response("Missing token from querystring", status=400, mimetype="text/plain")
        try:
            url = run_query(lambda c: c.preview_session(token, resolver, "/"))
        except FetchError as exc:
            return Response(f"Error 500 in preview: {exc}", status=500, mimetype="text/plain")
        response = redirect(url, code=302)
        response.set_cookie(
            PREVIEW_COOKIE,
            token,
            max_age=PREVIEW_MAX_AGE,
            path="/",
            httponly=False,
        )
        return response

    @app.get("/id/<doc_id>")
    def by_id(doc_id: str):
        try:
            document = run_query(lambda c: c.get_by_id(doc_id, ref=preview_ref()))
        except FetchError as exc:
            return server_error(exc)
        if document is None:
            return Response("404 not found", status=404, mimetype="text/plain")
        return redirect(resolver(document), code=301)

    @app.get("/<uid>")
    def post(uid: str):
        public_file = settings.public_dir / uid
        if public_file.is_file():
            return send_from_directory(settings.public_dir, uid)
        ref = preview_ref()
        try:
            document = run_query(lambda c: c.get_by_uid(settings.document_type, uid, ref=ref))
            if document is None:
                return Response("404 not found", status=404, mimetype="text/plain")
            return engine.render_post(document)
        except (FetchError, RenderError) as exc:
            return server_error(exc)

    @app.get("/<path:filename>")
    def public_asset(filename: str):
        return send_from_directory(settings.public_dir, filename)

    @app.post("/prismic-webhook")
    def prismic_webhook():
        payload = request.get_json(silent=True)
        provided = request.args.get("secret")
        if provided is None and isinstance(payload, dict):
            provided = payload.get("secret")
        if not secret_matches(settings.webhook_secret, provided):
            logger.warning("Rejected webhook call with an invalid secret.")
            return jsonify(error="Invalid webhook secret"), 401
        if archive is None:
            return jsonify(error="No webhook bucket configured"), 500
        archive.archive(request.get_data())
        return jsonify(status="OK")

    return app


def serve(settings: Settings) -> None:  # pragma: no cover - integration path
    app = create_app(settings)
    print(f"Point your browser to: http://localhost:{settings.port}")
    app.run(port=settings.port)
