"""AWS S3 (and S3-compatible) multipart storage provider."""
from typing import Optional, Any
import anyio
from functools import partial

from botocore.exceptions import BotoCoreError, NoCredentialsError, PartialCredentialsError

from core.logging_config import get_logger
from ..config import StorageConfig
from ..models import MultipartUpload
from ..exceptions import (
    StorageError,
    NotFoundError,
    PermissionDeniedError,
    TransientError,
    ConfigurationError,
)

logger = get_logger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchUpload", "NoSuchBucket", "404"}
_DENIED_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
    "403",
}
_TRANSIENT_CODES = {
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "SlowDown",
    "ServiceUnavailable",
    "InternalError",
    "500",
    "503",
}


class S3Provider:
    """AWS S3 storage provider."""

    def __init__(
        self,
        client: Any,  # boto3 S3 client
        config: StorageConfig
    ):
        """Initialize S3 provider.

        Args:
            client: Boto3 S3 client instance
            config: Storage configuration
        """
        self.client = client
        self.config = config
        self.bucket = config.bucket
        self.region = config.region or "us-east-1"

    async def multipart_upload_start(
        self,
        key: str,
        content_type: Optional[str] = None,
        *,
        bucket: Optional[str] = None,
    ) -> MultipartUpload:
        """Start multipart upload."""
        bucket = bucket or self.bucket
        try:
            args = {"Bucket": bucket, "Key": key}
            if content_type:
                args["ContentType"] = content_type

            # boto3 is synchronous; keep the event loop free
            response = await anyio.to_thread.run_sync(
                partial(self.client.create_multipart_upload, **args)
            )
        except Exception as e:
            self._handle_exception(e, f"start multipart upload {key}")

        logger.debug("S3 multipart upload created", key=key, upload_id=response["UploadId"])
        return MultipartUpload(
            bucket=response.get("Bucket", bucket),
            key=response.get("Key", key),
            upload_id=response["UploadId"],
            content_type=content_type,
        )

    async def multipart_upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        data: bytes,
        *,
        bucket: Optional[str] = None,
    ) -> str:
        """Upload part in multipart upload."""
        try:
            response = await anyio.to_thread.run_sync(
                partial(
                    self.client.upload_part,
                    Bucket=bucket or self.bucket,
                    Key=key,
                    UploadId=upload_id,
                    PartNumber=part_number,
                    ContentLength=len(data),
                    Body=data
                )
            )
        except Exception as e:
            self._handle_exception(e, f"upload part {part_number}")
        return response["ETag"]

    async def multipart_upload_complete(
        self,
        upload_id: str,
        key: str,
        parts: list[dict],
        *,
        bucket: Optional[str] = None,
    ) -> str:
        """Complete multipart upload and return the object location."""
        bucket = bucket or self.bucket
        try:
            response = await anyio.to_thread.run_sync(
                partial(
                    self.client.complete_multipart_upload,
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": parts}
                )
            )
        except Exception as e:
            self._handle_exception(e, f"complete multipart upload {key}")

        return response.get("Location") or self.public_url(key) or f"s3://{bucket}/{key}"

    async def multipart_upload_abort(
        self,
        upload_id: str,
        key: str,
        *,
        bucket: Optional[str] = None,
    ) -> None:
        """Abort multipart upload."""
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.abort_multipart_upload,
                    Bucket=bucket or self.bucket,
                    Key=key,
                    UploadId=upload_id,
                )
            )
        except Exception as e:
            self._handle_exception(e, f"abort multipart upload {key}")

    def public_url(self, key: str) -> Optional[str]:
        """Get public/CDN URL for file."""
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{key.lstrip('/')}"
        return None

    async def health_check(self) -> bool:
        """Check S3 connectivity."""
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.head_bucket,
                    Bucket=self.bucket
                )
            )
            logger.info("S3 health check passed")
            return True
        except Exception as e:
            logger.error("S3 health check failed", error=str(e))
            return False

    async def close(self) -> None:
        close = getattr(self.client, "close", None)
        if callable(close):
            await anyio.to_thread.run_sync(close)

    def _handle_exception(self, e: Exception, operation: str) -> None:
        """Map S3 exceptions to storage exceptions."""
        if isinstance(e, (NoCredentialsError, PartialCredentialsError)):
            raise PermissionDeniedError(f"Missing credentials: {operation}") from e

        error_code = str(getattr(e, "response", {}).get("Error", {}).get("Code", ""))

        if error_code in _NOT_FOUND_CODES:
            raise NotFoundError(f"Not found: {operation}") from e
        elif error_code in _DENIED_CODES:
            raise PermissionDeniedError(f"Access denied: {operation}") from e
        elif error_code in _TRANSIENT_CODES or (not error_code and isinstance(e, BotoCoreError)):
            raise TransientError(f"Transient error: {operation}: {e}") from e
        else:
            raise StorageError(f"S3 error during {operation}: {e}") from e


async def build_s3_provider(config: StorageConfig) -> S3Provider:
    """Build S3 storage provider.

    Args:
        config: Storage configuration

    Returns:
        Configured S3 provider instance
    """
    if not config.bucket:
        raise ConfigurationError("S3 bucket name is required")

    try:
        import boto3
        from botocore.config import Config as BotoConfig
    except ImportError:
        raise ConfigurationError("boto3 is required for S3 storage")

    # Part retries are handled by the upload service; the SDK makes one attempt
    boto_config = BotoConfig(
        region_name=config.region,
        signature_version="s3v4",
        retries={
            "total_max_attempts": 1,
            "mode": "standard"
        },
        connect_timeout=config.timeout,
        read_timeout=config.timeout
    )

    session_args = {}
    if config.aws_access_key_id and config.aws_secret_access_key:
        session_args.update({
            "aws_access_key_id": config.aws_access_key_id,
            "aws_secret_access_key": config.aws_secret_access_key
        })
    session = boto3.session.Session(region_name=config.region, **session_args)
    if session.get_credentials() is None:
        raise ConfigurationError("No AWS credentials available")

    client_args = {"config": boto_config}
    if config.endpoint:
        client_args["endpoint_url"] = config.endpoint
        client_args["use_ssl"] = config.enable_ssl

    client = session.client("s3", **client_args)

    provider = S3Provider(client, config)

    if not await provider.health_check():
        raise ConfigurationError("Failed to connect to S3")

    return provider
