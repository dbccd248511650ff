"""S3-compatible blob store (Cloudflare R2, MinIO, AWS S3) backed by boto3."""
import asyncio
from typing import Any, Optional
from urllib.parse import quote, unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import Settings
from ..exceptions import BlobStoreError
from ..logging import get_logger
from .blob_store import BlobStore, DeleteOutcome

logger = get_logger(__name__)

MISSING_ERROR_CODES = {"NoSuchKey", "NotFound", "404"}


class S3BlobStore(BlobStore):
    """Blob store backed by an S3 bucket.

    Locators are the public URLs handed to the playback client. A locator is
    mapped back to an object key by stripping ``public_base_url`` (or the
    ``s3://bucket/`` / path-style endpoint prefix).
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        region: str = "auto",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
        presign_expires_seconds: int = 900,
        client: Any = None,
    ):
        self.bucket = bucket
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.presign_expires_seconds = presign_expires_seconds
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3BlobStore":
        return cls(
            bucket=settings.blob_bucket,
            endpoint_url=settings.blob_endpoint_url,
            region=settings.blob_region,
            access_key_id=settings.blob_access_key_id,
            secret_access_key=settings.blob_secret_access_key,
            public_base_url=settings.blob_public_base_url,
            presign_expires_seconds=settings.presign_expires_seconds,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                region_name=self.region,
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
                config=Config(signature_version="s3v4", retries={"max_attempts": 3, "mode": "standard"}),
            )
        return self._client

    def key_for(self, locator: str) -> Optional[str]:
        """Object key behind ``locator``, or None when it points elsewhere."""
        if locator.startswith(f"s3://{self.bucket}/"):
            return locator[len(f"s3://{self.bucket}/"):] or None

        if self.public_base_url and locator.startswith(self.public_base_url + "/"):
            return unquote(locator[len(self.public_base_url) + 1:].split("?", 1)[0]) or None

        if self.endpoint_url and locator.startswith(f"{self.endpoint_url}/{self.bucket}/"):
            prefix = f"{self.endpoint_url}/{self.bucket}/"
            return unquote(locator[len(prefix):].split("?", 1)[0]) or None

        if self.public_base_url is None and self.endpoint_url is None:
            # Plain AWS virtual-hosted URL: https://<bucket>.s3.<region>.amazonaws.com/<key>
            parsed = urlparse(locator)
            if parsed.hostname and parsed.hostname.startswith(f"{self.bucket}.s3"):
                return unquote(parsed.path.lstrip("/")) or None

        return None

    def public_url(self, key: str) -> str:
        quoted = quote(key)
        if self.public_base_url:
            return f"{self.public_base_url}/{quoted}"
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket}/{quoted}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quoted}"

    async def delete(self, locator: str) -> DeleteOutcome:
        key = self.key_for(locator)
        if key is None:
            logger.warning("blob_locator_outside_bucket", locator=locator, bucket=self.bucket)
            return DeleteOutcome.SKIPPED

        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in MISSING_ERROR_CODES:
                logger.info("blob_already_missing", key=key)
                return DeleteOutcome.MISSING
            logger.error("blob_delete_failed", key=key, error_code=code, error=str(e))
            raise BlobStoreError(locator, f"{code or 'ClientError'}: {e}")
        except BotoCoreError as e:
            logger.error("blob_delete_failed", key=key, error=str(e))
            raise BlobStoreError(locator, str(e))

        logger.info("blob_deleted", key=key)
        return DeleteOutcome.DELETED

    async def put(self, key: str, body: bytes, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("blob_put_failed", key=key, error=str(e))
            raise BlobStoreError(self.public_url(key), str(e))

        logger.info("blob_stored", key=key, size=len(body), content_type=content_type)
        return self.public_url(key)

    async def presign_upload(self, key: str, content_type: str) -> str:
        try:
            return await asyncio.to_thread(
                self.client.generate_presigned_url,
                "put_object",
                Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=self.presign_expires_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("blob_presign_failed", key=key, error=str(e))
            raise BlobStoreError(self.public_url(key), str(e))
