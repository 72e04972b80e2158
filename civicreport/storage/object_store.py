"""
Object storage for report photos
Issues pre-signed upload URLs against an S3-compatible endpoint (MinIO in development)
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from civicreport.core.config import Settings, settings as default_settings
from civicreport.core.constants import DEFAULT_UPLOAD_CONTENT_TYPE, UPLOAD_CONTENT_TYPES
from civicreport.core.exceptions import InternalError, InvalidInputError

logger = logging.getLogger(__name__)


@dataclass
class UploadTicket:
    """Pre-signed URL plus the key the client must reference in its report."""
    upload_url: str
    file_key: str
    content_type: str
    expires_in_seconds: int

    def to_dict(self) -> Dict[str, Any]:
        return {"uploadUrl": self.upload_url, "fileKey": self.file_key}


class ObjectStore:
    """
    Thin wrapper over a boto3 S3 client.

    The API never touches photo bytes; clients PUT directly to the
    pre-signed URL and then reference the returned key.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        """
        Initialize the object store.

        Args:
            settings: Application settings (endpoint, credentials, bucket)
            client: Pre-built boto3 S3 client, mainly for tests
        """
        self.settings = settings or default_settings
        self.bucket = self.settings.s3_bucket
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.settings.s3_service_url or None,
                aws_access_key_id=self.settings.s3_access_key,
                aws_secret_access_key=self.settings.s3_secret_key,
                region_name=self.settings.s3_region,
                config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
            logger.info(f"S3 client initialized for {self.settings.s3_service_url}")
        return self._client

    def create_upload_ticket(self, user_id: uuid.UUID, content_type: Optional[str] = None) -> UploadTicket:
        """
        Issue a time-limited PUT URL for a new key under the user's prefix.

        Raises:
            InvalidInputError: content type other than JPEG or PNG
            InternalError: the S3 client failed to sign the request
        """
        content_type = content_type or DEFAULT_UPLOAD_CONTENT_TYPE
        extension = UPLOAD_CONTENT_TYPES.get(content_type)
        if extension is None:
            raise InvalidInputError("invalid_content_type")

        file_key = build_file_key(user_id, extension)
        expires_in = self.settings.upload_url_expiry_minutes * 60

        try:
            upload_url = self.client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket, "Key": file_key, "ContentType": content_type},
                ExpiresIn=expires_in,
                HttpMethod="PUT",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to sign upload URL for {file_key}: {e}")
            raise InternalError("upload_url_failed") from e

        return UploadTicket(
            upload_url=upload_url,
            file_key=file_key,
            content_type=content_type,
            expires_in_seconds=expires_in,
        )

    def public_url(self, file_key: str) -> str:
        """Public URL of a key: ``{base}/{bucket}/{key}``. The key is not checked for existence."""
        base = self.settings.s3_public_url_base.rstrip("/")
        return f"{base}/{self.bucket}/{file_key}"


def build_file_key(user_id: uuid.UUID, extension: str) -> str:
    """Unique object key namespaced by user id."""
    return f"{user_id}/{uuid.uuid4().hex}.{extension}"


_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
    """Shared object store instance (boto3 clients are thread safe)."""
    global _store
    if _store is None:
        _store = ObjectStore()
    return _store
