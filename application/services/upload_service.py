"""Application layer orchestration of multipart uploads (application/services)."""
from __future__ import annotations

from typing import Callable, Optional, Sequence

import anyio

from application.ports.storage import MultipartStoragePort
from application.services.part_uploader import PartUploader, PartUploadFailed
from application.utils.storage import build_object_key, rfc3339_now, sniff_content_type
from core.logging_config import get_logger
from domain.upload import (
    BatchResult,
    UploadOutcome,
    UploadPhase,
    UploadRequest,
    UploadSession,
    UploadState,
    UploadStateMachine,
    plan_parts,
)

logger = get_logger(__name__)


class UploadOrchestrator:
    """Drives initiate -> parts -> complete (or abort) for each submitted file.

    Files of a batch and parts of a file are processed one after another.
    The first failing file ends the batch; objects already stored for
    earlier files of the same batch are kept.
    """

    def __init__(
        self,
        storage: MultipartStoragePort,
        *,
        bucket: Optional[str],
        max_part_size: int,
        part_uploader: Optional[PartUploader] = None,
        key_prefix: str = "media",
        content_type_sniffer: Callable[[bytes], str] = sniff_content_type,
        clock: Callable[[], str] = rfc3339_now,
    ):
        if max_part_size <= 0:
            raise ValueError(f"max_part_size must be positive, got {max_part_size}")
        self._storage = storage
        self._uploader = part_uploader or PartUploader(storage)
        self._sniff = content_type_sniffer
        self._clock = clock
        self.bucket = bucket
        self.max_part_size = max_part_size
        self.key_prefix = key_prefix

    # ------------------------------------------------------------------
    # Single file
    # ------------------------------------------------------------------
    async def upload_file(self, request: UploadRequest, *, timestamp: Optional[str] = None) -> UploadOutcome:
        key = build_object_key(self.key_prefix, request.name, timestamp or self._clock())

        try:
            # Stored type comes from the bytes, not from the client header
            content_type = self._sniff(request.content)
            session = await self._storage.initiate_upload(self.bucket, key, content_type)
        except Exception as exc:
            logger.error("multipart_upload_initiate_failed", file=request.name, key=key, error=str(exc))
            return UploadOutcome.failure(request.name, UploadPhase.CREATE_SESSION, "Failed to create multipart upload")

        machine = UploadStateMachine()
        logger.info(
            "multipart_upload_initiated",
            file=request.name,
            key=session.key,
            upload_id=session.upload_id,
            content_type=content_type,
            size=request.size,
        )

        plan = plan_parts(request.size, self.max_part_size)
        machine.advance(UploadState.PARTS_IN_FLIGHT)
        try:
            for span in plan:
                part = await self._uploader.upload_part(session, span.part_number, span.slice(request.content))
                session.record(part)
        except PartUploadFailed as exc:
            await self._abort(session, machine)
            return UploadOutcome.failure(
                request.name,
                UploadPhase.UPLOAD_PART,
                f"Failed to upload part #{exc.part_number}, multipart upload aborted",
            )
        except BaseException:
            # Cancelled or crashed mid-transfer: release the backend session first
            with anyio.CancelScope(shield=True):
                await self._abort(session, machine)
            raise

        try:
            location = await self._storage.complete_upload(session, list(session.completed_parts))
        except Exception as exc:
            # No compensating abort; the backend expires stale sessions on its own
            logger.error(
                "multipart_upload_complete_failed",
                file=request.name,
                upload_id=session.upload_id,
                parts=len(session.completed_parts),
                error=str(exc),
            )
            return UploadOutcome.failure(request.name, UploadPhase.COMPLETE, "Failed to complete multipart upload")

        machine.advance(UploadState.COMPLETED)
        logger.info(
            "multipart_upload_completed",
            file=request.name,
            upload_id=session.upload_id,
            parts=len(session.completed_parts),
            location=location,
        )
        return UploadOutcome.success(request.name, location)

    async def _abort(self, session: UploadSession, machine: UploadStateMachine) -> None:
        machine.advance(UploadState.ABORTING)
        logger.info("multipart_upload_aborting", key=session.key, upload_id=session.upload_id)
        try:
            await self._storage.abort_upload(session)
        except Exception as exc:
            logger.error(
                "multipart_abort_failed",
                key=session.key,
                upload_id=session.upload_id,
                error=str(exc),
            )
        machine.advance(UploadState.ABORTED)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------
    async def upload_batch(self, requests: Sequence[UploadRequest]) -> BatchResult:
        timestamp = self._clock()
        outcomes: list[UploadOutcome] = []
        for request in requests:
            outcome = await self.upload_file(request, timestamp=timestamp)
            if not outcome.ok:
                if outcomes:
                    logger.warning(
                        "upload_batch_partially_stored",
                        failed_file=request.name,
                        stored=[o.location for o in outcomes],
                    )
                return BatchResult(outcomes=tuple(outcomes), failure=outcome)
            outcomes.append(outcome)
        return BatchResult(outcomes=tuple(outcomes))

