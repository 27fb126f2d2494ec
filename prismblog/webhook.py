"""Prismic webhook archiving.

Every webhook call Prismic makes after a publication is stored verbatim in an
S3 bucket, keyed by year, month and timestamp, so past publications can be
inspected or replayed later.

Key classes:
- S3BlobStore: BlobStore backed by boto3.
- WebhookArchive: Builds keys and stores payloads, logging storage errors.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

if TYPE_CHECKING:
    from .protocols import BlobStore

logger = logging.getLogger(__name__)


def archive_key(now: datetime) -> str:
    """Return the object key for a payload received at ``now``.

    Examples:
        >>> archive_key(datetime(2024, 3, 5, tzinfo=timezone.utc))
        '2024/03/1709596800000.json'
    """
    return f"{now:%Y}/{now:%m}/{int(now.timestamp() * 1000)}.json"


def secret_matches(expected: str, provided: str | None) -> bool:
    """Compare a provided webhook secret with the configured one in constant time.

    An unconfigured secret never matches.
    """
    if not expected or provided is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


class S3BlobStore:
    """BlobStore writing objects to one S3 bucket.

    The boto3 client is created on first use so that constructing the store
    does not require AWS credentials.
    """

    def __init__(self, bucket: str, client: Any | None = None):
        self.bucket = bucket
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("s3")
        return self._client

    def put(self, key: str, body: bytes, content_type: str) -> None:
        self._get_client().put_object(
            Bucket=self.bucket, Key=key, Body=body, ContentType=content_type
        )


class WebhookArchive:
    """Stores raw webhook payloads."""

    def __init__(self, store: BlobStore):
        self.store = store

    def archive(self, body: bytes, now: datetime | None = None) -> str | None:
        """Store a payload.

        Storage errors are logged and not raised: Prismic only needs to know
        the call was received.

        Args:
            body: Raw request body.
            now: Reception time; defaults to the current UTC time.

        Returns:
            The object key, or None if storing failed.
        """
        key = archive_key(now or datetime.now(timezone.utc))
        try:
            self.store.put(key, body, "application/json")
        except (BotoCoreError, ClientError) as exc:
            logger.error("Could not archive webhook payload to %s: %s", key, exc)
            return None
        except Exception:
            logger.exception("Could not archive webhook payload to %s", key)
            return None
        logger.info("Archived webhook payload to %s", key)
        return key
