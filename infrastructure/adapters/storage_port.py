"""Infrastructure adapter that implements the application MultipartStoragePort
by delegating to the concrete storage provider and translating models and
errors.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Optional, Sequence

from application.ports.storage import (
    MultipartStoragePort,
    PermanentStorageError,
    StorageBackendError,
    StorageInfo,
    TransientStorageError,
)
from domain.upload import CompletedPart, UploadSession
from infrastructure.external.storage import (
    ConfigurationError,
    MultipartStorageProvider,
    NotFoundError,
    PermissionDeniedError,
)

_PERMANENT = (PermissionDeniedError, NotFoundError, ConfigurationError)


@contextmanager
def _translate_errors(operation: str):
    try:
        yield
    except StorageBackendError:
        raise
    except _PERMANENT as exc:
        raise PermanentStorageError(str(exc), operation=operation) from exc
    except Exception as exc:
        raise TransientStorageError(str(exc), operation=operation) from exc


class StorageProviderPortAdapter(MultipartStoragePort):
    def __init__(self, provider: MultipartStorageProvider):
        self.provider = provider

    def info(self) -> StorageInfo:
        cfg = getattr(self.provider, "config", None)
        stype = getattr(cfg, "type", None)
        bucket = getattr(cfg, "bucket", None)
        region = getattr(cfg, "region", None)
        return StorageInfo(type=str(stype) if stype is not None else "", bucket=bucket, region=region)

    async def initiate_upload(
        self,
        bucket: Optional[str],
        key: str,
        content_type: Optional[str] = None,
    ) -> UploadSession:
        with _translate_errors("initiate"):
            upload = await self.provider.multipart_upload_start(key, content_type, bucket=bucket)
        return UploadSession(
            bucket=upload.bucket,
            key=upload.key,
            upload_id=upload.upload_id,
            content_type=upload.content_type or content_type,
        )

    async def upload_part(self, session: UploadSession, part_number: int, data: bytes) -> str:
        with _translate_errors("upload_part"):
            return await self.provider.multipart_upload_part(
                session.key,
                session.upload_id,
                part_number,
                data,
                bucket=session.bucket,
            )

    async def complete_upload(self, session: UploadSession, parts: Sequence[CompletedPart]) -> str:
        with _translate_errors("complete"):
            return await self.provider.multipart_upload_complete(
                session.upload_id,
                session.key,
                [p.as_dict() for p in parts],
                bucket=session.bucket,
            )

    async def abort_upload(self, session: UploadSession) -> None:
        with _translate_errors("abort"):
            await self.provider.multipart_upload_abort(session.upload_id, session.key, bucket=session.bucket)
