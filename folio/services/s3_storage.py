"""
Asset storage - Folio Pipeline Engine
folio/services/s3_storage.py

Durable storage for uploaded documents and sourced assets (logos, generated
images). Remote assets are copied into the bucket under a content-hash key so
that storing the same bytes twice yields the same object.
"""
import asyncio
import boto3
import hashlib
import logging
import mimetypes
from functools import lru_cache
from typing import Optional, Tuple
from urllib.parse import urlparse

import httpx
from botocore.exceptions import BotoCoreError, ClientError

from folio.config import settings
from folio.core.exceptions import CollaboratorError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 30.0


class S3StorageService:
    def __init__(self, s3_client=None, bucket_name: Optional[str] = None):
        if s3_client is None:
            credentials = {}
            if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
                credentials = {
                    "aws_access_key_id": settings.AWS_ACCESS_KEY_ID.get_secret_value(),
                    "aws_secret_access_key": settings.AWS_SECRET_ACCESS_KEY.get_secret_value(),
                }
            s3_client = boto3.client("s3", region_name=settings.AWS_REGION, **credentials)
        self.s3_client = s3_client
        self.bucket_name = bucket_name or settings.S3_BUCKET
        logger.info(f"S3 Storage initialized with bucket: {self.bucket_name}")

    def _calculate_hash(self, content: bytes) -> str:
        """Calculate SHA256 hash of content"""
        return hashlib.sha256(content).hexdigest()

    def public_url(self, s3_key: str) -> str:
        base = settings.S3_PUBLIC_BASE_URL
        if base:
            return f"{base.rstrip('/')}/{s3_key}"
        return f"https://{self.bucket_name}.s3.{settings.AWS_REGION}.amazonaws.com/{s3_key}"

    # ------------------------------------------------------------------
    # Blocking primitives (run via asyncio.to_thread)
    # ------------------------------------------------------------------

    def check_exists(self, s3_key: str) -> bool:
        """Check if a file exists in S3"""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=s3_key)
            return True
        except ClientError:
            return False

    def get_object_bytes(self, bucket: str, s3_key: str) -> bytes:
        response = self.s3_client.get_object(Bucket=bucket, Key=s3_key)
        return response["Body"].read()

    def put_bytes(self, content: bytes, s3_key: str, content_type: str) -> str:
        self.s3_client.put_object(
            Bucket=self.bucket_name,
            Key=s3_key,
            Body=content,
            ContentType=content_type,
            Metadata={"content_hash": self._calculate_hash(content)},
        )
        logger.info("Uploaded to S3", extra={"s3_key": s3_key, "bytes": len(content)})
        return s3_key

    def store_content(self, content: bytes, prefix: str, content_type: str) -> Tuple[str, str]:
        """Store bytes under {prefix}/{sha256}{ext}; skip the upload if present."""
        extension = mimetypes.guess_extension(content_type or "") or ""
        s3_key = f"{prefix.strip('/')}/{self._calculate_hash(content)}{extension}"
        if not self.check_exists(s3_key):
            self.put_bytes(content, s3_key, content_type)
        return s3_key, self.public_url(s3_key)

    # ------------------------------------------------------------------
    # Async collaborator surface
    # ------------------------------------------------------------------

    async def fetch_document(self, url: str) -> bytes:
        """Download an uploaded document from s3:// or http(s)://."""
        parsed = urlparse(url)
        try:
            if parsed.scheme == "s3":
                return await asyncio.to_thread(
                    self.get_object_bytes, parsed.netloc, parsed.path.lstrip("/")
                )
            async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS) as client:
                response = await client.get(url, follow_redirects=True)
                response.raise_for_status()
                return response.content
        except (ClientError, BotoCoreError, httpx.HTTPError) as e:
            logger.error(f"Failed to fetch document {url}: {e}")
            raise CollaboratorError("storage", f"document download failed: {e}") from e

    async def store_bytes(self, content: bytes, prefix: str, content_type: str) -> str:
        """Persist bytes and return the public URL."""
        try:
            _, url = await asyncio.to_thread(self.store_content, content, prefix, content_type)
            return url
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed: {e}")
            raise CollaboratorError("storage", f"upload failed: {e}") from e

    async def store_remote_asset(self, source_url: str, prefix: str) -> str:
        """Copy a remote asset (provider CDN, model output) into the bucket."""
        try:
            async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS) as client:
                response = await client.get(source_url, follow_redirects=True)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise CollaboratorError("storage", f"asset download failed: {e}") from e

        content_type = response.headers.get("content-type", "application/octet-stream")
        content_type = content_type.split(";")[0].strip()
        return await self.store_bytes(response.content, prefix, content_type)


@lru_cache
def get_storage() -> S3StorageService:
    return S3StorageService()
