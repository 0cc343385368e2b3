# utils/storage.py

import logging
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from core.config import (
    S3_BUCKET_NAME, S3_ENDPOINT_URL, S3_PUBLIC_URL, S3_REGION,
    S3_ACCESS_KEY_ID, S3_SECRET_ACCESS_KEY,
)

logger = logging.getLogger(__name__)


class ObjectStorage:
    def __init__(self, bucket_name: str, region: str, endpoint_url: str | None = None,
                 public_url: str = "", access_key: str | None = None, secret_key: str | None = None) -> None:
        self.bucket_name = bucket_name
        self.region = region
        self.public_url = public_url.rstrip("/")
        self.client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )

    def url_for(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    def upload_bytes(self, key: str, data: bytes, content_type: str, metadata: dict | None = None) -> str:
        self.client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentType=content_type,
            Metadata=metadata or {},
        )
        return self.url_for(key)

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise
        return True

    def delete(self, key: str) -> bool:
        if not self.exists(key):
            logger.warning("Object %s does not exist in bucket %s", key, self.bucket_name)
            return False
        self.client.delete_object(Bucket=self.bucket_name, Key=key)
        return True


@lru_cache(maxsize=1)
def get_storage() -> ObjectStorage | None:
    """Shared storage client, or None when no bucket is configured."""
    if not S3_BUCKET_NAME:
        logger.warning("Object storage not configured, image uploads are disabled.")
        return None
    return ObjectStorage(
        bucket_name=S3_BUCKET_NAME,
        region=S3_REGION,
        endpoint_url=S3_ENDPOINT_URL,
        public_url=S3_PUBLIC_URL,
        access_key=S3_ACCESS_KEY_ID,
        secret_key=S3_SECRET_ACCESS_KEY,
    )
