import boto3
from botocore.exceptions import BotoCoreError, ClientError

from portrait_studio.storage.base import BlobStore, normalize_path

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def s3_client(settings):
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint or None,
        region_name=settings.s3_region or None,
        aws_access_key_id=settings.aws_access_key_id or None,
        aws_secret_access_key=settings.aws_secret_access_key or None,
    )


def _is_missing(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in _MISSING_CODES


class S3BlobStore(BlobStore):
    """S3 / Cloudflare R2 bucket. Bucket errors surface as OSError like local disk errors."""

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def put(self, path: str, content: bytes, content_type: str | None = None) -> str:
        key = normalize_path(path)
        params = {"Bucket": self.bucket, "Key": key, "Body": content}
        if content_type:
            params["ContentType"] = content_type
        try:
            self.client.put_object(**params)
        except (BotoCoreError, ClientError) as e:
            raise OSError(f"S3 put failed for {key}: {e}") from e
        return key

    def get(self, path: str) -> bytes | None:
        key = normalize_path(path)
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
            return obj["Body"].read()
        except ClientError as e:
            if _is_missing(e):
                return None
            raise OSError(f"S3 get failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise OSError(f"S3 get failed for {key}: {e}") from e

    def delete(self, path: str) -> None:
        key = normalize_path(path)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise OSError(f"S3 delete failed for {key}: {e}") from e

    def exists(self, path: str) -> bool:
        key = normalize_path(path)
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_missing(e):
                return False
            raise OSError(f"S3 head failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise OSError(f"S3 head failed for {key}: {e}") from e
        return True
