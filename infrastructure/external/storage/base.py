"""Storage provider protocol definitions."""
from typing import Protocol, Optional, runtime_checkable

from .models import MultipartUpload


@runtime_checkable
class MultipartStorageProvider(Protocol):
    """Object storage offering the multipart upload protocol."""

    bucket: Optional[str]

    async def multipart_upload_start(
        self,
        key: str,
        content_type: Optional[str] = None,
        *,
        bucket: Optional[str] = None,
    ) -> MultipartUpload:
        """Start multipart upload."""
        ...

    async def multipart_upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        data: bytes,
        *,
        bucket: Optional[str] = None,
    ) -> str:
        """Upload part in multipart upload, returning its ETag."""
        ...

    async def multipart_upload_complete(
        self,
        upload_id: str,
        key: str,
        parts: list[dict],
        *,
        bucket: Optional[str] = None,
    ) -> str:
        """Complete multipart upload, returning the object location."""
        ...

    async def multipart_upload_abort(
        self,
        upload_id: str,
        key: str,
        *,
        bucket: Optional[str] = None,
    ) -> None:
        """Abort multipart upload and discard stored parts."""
        ...

    def public_url(self, key: str) -> Optional[str]:
        """Get public/CDN URL for file."""
        ...

    async def health_check(self) -> bool:
        """Check storage connectivity and permissions."""
        ...

    async def close(self) -> None:
        """Release client resources."""
        ...
