"""Local file system storage provider implementation.

Emulates the S3 multipart protocol: every upload gets a staging directory
under ``<base>/.uploads/<upload_id>/`` holding one file per part, and the
parts are concatenated into the final object on completion.
"""
import hashlib
import shutil
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
import anyio

from core.logging_config import get_logger
from ..config import StorageConfig
from ..models import MultipartUpload
from ..exceptions import (
    StorageError,
    NotFoundError,
    ConfigurationError,
)

logger = get_logger(__name__)

_STAGING_DIR = ".uploads"
_KEY_FILE = "key"
_ASSEMBLY_FILE = "assembled"


class LocalProvider:
    """Local file system storage provider."""

    def __init__(self, config: StorageConfig):
        """Initialize local storage provider.

        Args:
            config: Storage configuration
        """
        self.config = config
        self.bucket = config.bucket
        self.base_path = Path(config.local_base_path).resolve()

        # Ensure base path exists
        self.base_path.mkdir(parents=True, exist_ok=True)

    def public_url(self, key: str) -> Optional[str]:
        """Get public URL for file."""
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{key.lstrip('/')}"
        return None

    async def health_check(self) -> bool:
        """Check local storage accessibility."""
        try:
            test_file = self.base_path / ".health_check"
            test_file.touch()
            test_file.unlink()
            logger.info("Local storage health check passed")
            return True
        except OSError as e:
            logger.error("Local storage health check failed", error=str(e))
            return False

    async def close(self) -> None:
        return None

    async def multipart_upload_start(
        self,
        key: str,
        content_type: Optional[str] = None,
        *,
        bucket: Optional[str] = None,
    ) -> MultipartUpload:
        """Start multipart upload (creates a staging directory)."""
        # Fail early on keys escaping the base directory
        self._safe_path(key)
        upload_id = uuid.uuid4().hex
        staging = self._staging_path(upload_id)
        await aiofiles.os.makedirs(staging, exist_ok=False)
        async with aiofiles.open(staging / _KEY_FILE, "w") as f:
            await f.write(key)
        return MultipartUpload(
            bucket=bucket or self.bucket,
            key=key,
            upload_id=upload_id,
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
        """Upload part (one file per part number, overwritten on retry)."""
        staging = await self._existing_staging(upload_id, key)
        async with aiofiles.open(staging / self._part_name(part_number), "wb") as f:
            await f.write(data)
        return hashlib.md5(data).hexdigest()

    async def multipart_upload_complete(
        self,
        upload_id: str,
        key: str,
        parts: list[dict],
        *,
        bucket: Optional[str] = None,
    ) -> str:
        """Complete multipart upload (concatenate parts into the final file)."""
        staging = await self._existing_staging(upload_id, key)
        numbers = [int(p["PartNumber"]) for p in parts]
        if not numbers or numbers != list(range(1, len(numbers) + 1)):
            raise StorageError(f"Invalid part order for upload {upload_id}: {numbers}")

        final_path = self._safe_path(key)

        # Assembled inside staging, so a rejected part never reaches the final key
        assembled = staging / _ASSEMBLY_FILE
        async with aiofiles.open(assembled, "wb") as out:
            for part in parts:
                part_path = staging / self._part_name(int(part["PartNumber"]))
                if not await aiofiles.os.path.exists(part_path):
                    raise StorageError(f"Missing part #{part['PartNumber']} for upload {upload_id}")
                async with aiofiles.open(part_path, "rb") as src:
                    chunk = await src.read()
                if hashlib.md5(chunk).hexdigest() != str(part["ETag"]).strip('"'):
                    raise StorageError(f"ETag mismatch for part #{part['PartNumber']}")
                await out.write(chunk)

        await aiofiles.os.makedirs(final_path.parent, exist_ok=True)
        await aiofiles.os.replace(assembled, final_path)
        await anyio.to_thread.run_sync(shutil.rmtree, staging)
        return self.public_url(key) or str(final_path)

    async def multipart_upload_abort(
        self,
        upload_id: str,
        key: str,
        *,
        bucket: Optional[str] = None,
    ) -> None:
        """Abort multipart upload (discard staged parts)."""
        staging = await self._existing_staging(upload_id, key)
        await anyio.to_thread.run_sync(shutil.rmtree, staging)

    # Helper methods
    @staticmethod
    def _part_name(part_number: int) -> str:
        return f"{part_number:05d}.part"

    def _staging_path(self, upload_id: str) -> Path:
        if not upload_id.isalnum():
            raise NotFoundError(f"Unknown upload: {upload_id}")
        return self.base_path / _STAGING_DIR / upload_id

    async def _existing_staging(self, upload_id: str, key: str) -> Path:
        staging = self._staging_path(upload_id)
        key_file = staging / _KEY_FILE
        if not await aiofiles.os.path.exists(key_file):
            raise NotFoundError(f"No such upload {upload_id} for key {key}")
        async with aiofiles.open(key_file, "r") as f:
            if await f.read() != key:
                raise NotFoundError(f"No such upload {upload_id} for key {key}")
        return staging

    def _safe_path(self, key: str) -> Path:
        """Build safe path preventing directory traversal."""
        clean_key = key.lstrip("/")
        path = (self.base_path / clean_key).resolve()
        try:
            path.relative_to(self.base_path)
        except ValueError:
            raise StorageError(f"Invalid path: {key}")
        if path == self.base_path or _STAGING_DIR in path.relative_to(self.base_path).parts:
            raise StorageError(f"Invalid path: {key}")
        return path


async def build_local_provider(config: StorageConfig) -> LocalProvider:
    """Build local storage provider.

    Args:
        config: Storage configuration

    Returns:
        Configured local provider instance
    """
    provider = LocalProvider(config)

    if not await provider.health_check():
        raise ConfigurationError("Failed to access local storage")

    return provider
