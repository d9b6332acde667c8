"""
S3 object store adapter for product images.

Writes are awaited to completion: ``put`` returns only once the object store
acknowledged the object, and raises ``ArtifactStoreFailure`` otherwise. The
blocking boto3 call runs in a worker thread.

Settings:
- S3_BUCKET_NAME, S3_REGION
- S3_ENDPOINT_URL (optional, S3-compatible stores)
- S3_PREFIX (key prefix, no leading slash)
- S3_PUBLIC_BASE_URL (optional, base of the public locator)
- S3_TIMEOUT_SECONDS
"""

from __future__ import annotations

import asyncio
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from agritrack.config import Settings, get_settings
from agritrack.errors import ArtifactStoreFailure
from agritrack.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
PUBLIC_READ_ACL = "public-read"

_CONTENT_TYPE_RE = re.compile(r"^[\w!#$&^.+-]+/[\w!#$&^.+-]+(\s*;.*)?$")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


@dataclass(frozen=True)
class StoredArtifact:
    key: str
    url: str
    size: int
    content_type: str


def safe_object_name(original_name: Optional[str]) -> str:
    """Reduce a client-supplied filename to a safe key segment."""
    name = (original_name or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_NAME_CHARS.sub("-", name).strip(".-")
    return name[:120] or "upload"


def build_object_key(prefix: str, original_name: Optional[str], now: Optional[datetime] = None) -> str:
    """Upload time plus a random suffix keeps same-name uploads apart."""
    now = now or datetime.now(timezone.utc)
    stamp = int(now.timestamp() * 1000)
    name = f"{stamp}-{uuid.uuid4().hex[:8]}-{safe_object_name(original_name)}"
    prefix = prefix.strip("/")
    return f"{prefix}/{name}" if prefix else name


class ArtifactStore:
    """S3-backed store for opaque byte buffers with public-read locators."""

    def __init__(
        self,
        bucket: str,
        region: str,
        *,
        prefix: str = "",
        public_base_url: Optional[str] = None,
        client: Any = None,
        endpoint_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        if client is None:
            client = boto3.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint_url,
                config=Config(
                    connect_timeout=timeout_seconds,
                    read_timeout=timeout_seconds,
                    retries={"total_max_attempts": 1},
                ),
            )
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArtifactStore":
        return cls(
            bucket=settings.s3_bucket_name,
            region=settings.s3_region,
            prefix=settings.s3_prefix,
            public_base_url=settings.s3_public_base_url,
            endpoint_url=settings.s3_endpoint_url,
            timeout_seconds=settings.s3_timeout_seconds,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def put(
        self,
        data: bytes,
        content_type: Optional[str],
        original_name: Optional[str],
    ) -> StoredArtifact:
        """
        Store ``data`` under a fresh key with a public-read grant.

        Returns only after the store confirmed the write.

        Raises:
            ArtifactStoreFailure: the write did not complete
        """
        ct = (content_type or "").strip() or DEFAULT_CONTENT_TYPE
        if len(ct) > 255 or not _CONTENT_TYPE_RE.match(ct):
            logger.warning("Rejecting malformed content type; storing as binary", extra={"content_type": ct[:80]})
            ct = DEFAULT_CONTENT_TYPE

        key = build_object_key(self.prefix, original_name)
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": ct,
            "ACL": PUBLIC_READ_ACL,
        }
        try:
            await asyncio.to_thread(self.client.put_object, **params)
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Object store write failed: %s",
                e,
                extra={"bucket": self.bucket, "key": key},
            )
            raise ArtifactStoreFailure()

        logger.info(
            "Stored artifact",
            extra={"bucket": self.bucket, "key": key, "size": len(data)},
        )
        return StoredArtifact(key=key, url=self.public_url(key), size=len(data), content_type=ct)


_artifact_store: Optional[ArtifactStore] = None


def init_artifact_store(store: Optional[ArtifactStore] = None) -> ArtifactStore:
    """Create the process-wide store. Called once at startup."""
    global _artifact_store
    _artifact_store = store or ArtifactStore.from_settings(get_settings())
    return _artifact_store


def close_artifact_store() -> None:
    global _artifact_store
    _artifact_store = None


def get_artifact_store() -> ArtifactStore:
    """Dependency returning the process-wide store."""
    if _artifact_store is None:
        raise RuntimeError("Artifact store is not initialized; call init_artifact_store() first")
    return _artifact_store
