"""In-memory storage port used by the upload tests."""
from __future__ import annotations

from collections import Counter
from typing import Optional, Sequence

import anyio

from application.ports.storage import (
    MultipartStoragePort,
    PermanentStorageError,
    StorageInfo,
    TransientStorageError,
)
from application.services.part_uploader import PartUploader
from application.services.upload_service import UploadOrchestrator
from domain.upload import CompletedPart, UploadSession

ALWAYS = 10**6
MiB = 1024 * 1024


class FakeStorage(MultipartStoragePort):
    """Records every call; part failures are scripted per part number."""

    def __init__(
        self,
        *,
        etags: Optional[dict[int, str]] = None,
        part_failures: Optional[dict[int, int]] = None,
        part_error: type = TransientStorageError,
        fail_initiate: bool = False,
        fail_complete: bool = False,
        fail_abort: bool = False,
        hang_on_part: Optional[int] = None,
    ):
        self.etags = etags or {}
        self.part_failures = dict(part_failures or {})
        self.part_error = part_error
        self.fail_initiate = fail_initiate
        self.fail_complete = fail_complete
        self.fail_abort = fail_abort
        self.hang_on_part = hang_on_part
        self.calls: list[tuple] = []
        self.part_attempts: Counter = Counter()
        self._sessions = 0

    def info(self) -> StorageInfo:
        return StorageInfo(type="fake", bucket="test-bucket", region=None)

    def calls_of(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def initiate_upload(self, bucket, key, content_type=None) -> UploadSession:
        self.calls.append(("initiate", bucket, key, content_type))
        if self.fail_initiate:
            raise PermanentStorageError("access denied", operation="initiate")
        self._sessions += 1
        return UploadSession(bucket=bucket, key=key, upload_id=f"upload-{self._sessions}", content_type=content_type)

    async def upload_part(self, session: UploadSession, part_number: int, data: bytes) -> str:
        self.calls.append(("upload_part", session.upload_id, part_number, len(data)))
        self.part_attempts[part_number] += 1
        if self.hang_on_part == part_number:
            await anyio.sleep(30)
        remaining = self.part_failures.get(part_number, 0)
        if remaining > 0:
            self.part_failures[part_number] = remaining - 1
            raise self.part_error(f"part {part_number} rejected", operation="upload_part")
        return self.etags.get(part_number, f"etag-{part_number}")

    async def complete_upload(self, session: UploadSession, parts: Sequence[CompletedPart]) -> str:
        self.calls.append(("complete", session.upload_id, [(p.part_number, p.etag) for p in parts]))
        if self.fail_complete:
            raise TransientStorageError("internal error", operation="complete")
        return f"https://{session.bucket}.example.com/{session.key}"

    async def abort_upload(self, session: UploadSession) -> None:
        self.calls.append(("abort", session.upload_id))
        if self.fail_abort:
            raise TransientStorageError("abort rejected", operation="abort")


def make_orchestrator(storage: MultipartStoragePort, *, max_part_size: int = 5 * MiB, max_retries: int = 3, **kwargs) -> UploadOrchestrator:
    return UploadOrchestrator(
        storage,
        bucket="test-bucket",
        max_part_size=max_part_size,
        part_uploader=PartUploader(storage, max_retries),
        **{
            "content_type_sniffer": lambda data: "image/png",
            "clock": lambda: "2024-01-02T03:04:05Z",
            **kwargs,
        },
    )
