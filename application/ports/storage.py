"""Application-owned storage port abstraction (hexagonal architecture).

Defines the multipart capability set needed by the upload use case so that
the application layer does not depend on infrastructure details. Any
object store offering equivalent operations satisfies the contract.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, runtime_checkable

from domain.upload import CompletedPart, UploadSession


class StorageBackendError(Exception):
    """Error raised by a storage backend, classified for retry decisions."""

    retryable: bool = True

    def __init__(self, message: str, *, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class TransientStorageError(StorageBackendError):
    retryable = True


class PermanentStorageError(StorageBackendError):
    """Retrying cannot help (bad credentials, missing bucket, ...)."""

    retryable = False


@dataclass
class StorageInfo:
    type: str
    bucket: Optional[str]
    region: Optional[str]


@runtime_checkable
class MultipartStoragePort(Protocol):
    def info(self) -> StorageInfo: ...

    async def initiate_upload(
        self,
        bucket: Optional[str],
        key: str,
        content_type: Optional[str] = None,
    ) -> UploadSession: ...

    async def upload_part(self, session: UploadSession, part_number: int, data: bytes) -> str: ...

    async def complete_upload(self, session: UploadSession, parts: Sequence[CompletedPart]) -> str: ...

    async def abort_upload(self, session: UploadSession) -> None: ...
