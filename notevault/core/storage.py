"""S3-compatible object storage for note files (MinIO or AWS S3)."""
import os
from typing import BinaryIO
from uuid import uuid4

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from notevault.core.config import settings
from notevault.core.logging import get_logger

logger = get_logger(__name__)


class StorageService:
    """Uploads note files and issues time-limited download links."""

    def __init__(
        self,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        bucket: str | None = None,
        secure: bool | None = None,
        public_endpoint: str | None = None,
    ):
        self.endpoint = endpoint or settings.storage_endpoint
        self.access_key = access_key or settings.storage_access_key
        self.secret_key = secret_key or settings.storage_secret_key
        self.bucket = bucket or settings.storage_bucket_name
        self.secure = settings.storage_secure if secure is None else secure
        # Endpoint reachable from browsers; signed URLs are rewritten to it
        self.public_endpoint = public_endpoint or settings.storage_public_endpoint

        protocol = "https" if self.secure else "http"
        self.endpoint_url = f"{protocol}://{self.endpoint}"
        self.public_endpoint_url = f"{protocol}://{self.public_endpoint}"

        self._client = None

    @property
    def client(self):
        """Lazy-loaded S3 client."""
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                config=Config(signature_version="s3v4"),
                region_name="us-east-1",
            )
            self._ensure_bucket()
        return self._client

    def _ensure_bucket(self) -> None:
        try:
            self._client.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code in ("404", "NoSuchBucket"):
                logger.info("Creating storage bucket", bucket=self.bucket)
                self._client.create_bucket(Bucket=self.bucket)
            else:
                logger.error("Storage bucket check failed", bucket=self.bucket, error=str(e))
                raise

    def upload_file(
        self,
        file_data: BinaryIO,
        filename: str,
        content_type: str = "application/octet-stream",
        folder: str = "notes",
    ) -> str:
        """
        Upload a file and return its object key.

        Args:
            file_data: File content (binary stream)
            filename: Original file name, only the extension is kept
            content_type: MIME type
            folder: Key prefix

        Returns:
            Object key (path inside the bucket)
        """
        ext = os.path.splitext(filename)[1].lower() if "." in filename else ""
        object_key = f"{folder}/{uuid4().hex}{ext}"

        self.client.upload_fileobj(
            file_data,
            self.bucket,
            object_key,
            ExtraArgs={"ContentType": content_type},
        )
        logger.info("File uploaded", object_key=object_key, content_type=content_type)
        return object_key

    def get_presigned_url(
        self,
        object_key: str,
        expires_in: int | None = None,
        download_name: str | None = None,
        use_public_endpoint: bool = True,
    ) -> str:
        """
        Create a presigned GET URL.

        When ``download_name`` is given the response is served as an
        attachment under that file name.
        """
        params = {"Bucket": self.bucket, "Key": object_key}
        if download_name:
            params["ResponseContentDisposition"] = f'attachment; filename="{download_name}"'

        url = self.client.generate_presigned_url(
            ClientMethod="get_object",
            Params=params,
            ExpiresIn=expires_in or settings.download_url_expire_seconds,
        )
        if use_public_endpoint and self.endpoint != self.public_endpoint:
            url = url.replace(self.endpoint_url, self.public_endpoint_url)
        return url

    def file_exists(self, object_key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=object_key)
            return True
        except ClientError:
            return False


_storage_service: StorageService | None = None


def get_storage_service() -> StorageService:
    """Return the process-wide storage service."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
