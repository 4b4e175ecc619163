"""文件上传路由：多文件表单 -> 校验 -> 分片上传到对象存储。"""
from __future__ import annotations

import os
from typing import BinaryIO

import anyio
from fastapi import APIRouter, Depends, File, UploadFile

from api.dependencies import OrchestratorFactory, get_orchestrator_factory, get_upload_policy
from application.dto import UploadResponseDTO
from core.logging_config import get_logger
from core.response import Response as ApiResponse, success_response
from domain.common.exceptions import UploadFailedException, UploadValidationException
from domain.upload import UploadedFileInfo, UploadPhase, UploadRequest, ValidationPolicy, find_violation

logger = get_logger(__name__)

router = APIRouter(tags=["文件上传"])


def _buffer_size(buffer: BinaryIO) -> int:
    buffer.seek(0, os.SEEK_END)
    size = buffer.tell()
    buffer.seek(0)
    return size


async def _describe_upload(file: UploadFile) -> UploadedFileInfo:
    """Size and declared type of a form file, without reading its bytes."""
    size = file.size
    if size is None:
        size = await anyio.to_thread.run_sync(_buffer_size, file.file)
    return UploadedFileInfo(
        name=file.filename or "upload.bin",
        size=size,
        declared_content_type=file.content_type or "",
    )


async def _read_upload(file: UploadFile) -> UploadRequest:
    filename = file.filename or "upload.bin"
    try:
        content = await file.read()
    except Exception as exc:
        logger.error("upload_read_failed", file=filename, error=str(exc))
        raise UploadFailedException("Failed to read file", phase=UploadPhase.READ_FILE.value, filename=filename) from exc
    return UploadRequest.from_bytes(filename, content, file.content_type)


def _reject_violation(files, policy: ValidationPolicy) -> None:
    violation = find_violation(files, policy)
    if violation is not None:
        rejected, reason = violation
        raise UploadValidationException(reason, filename=rejected.name)


@router.post(
    "/upload",
    summary="多文件分片上传",
    response_model=ApiResponse[UploadResponseDTO],
)
async def upload_files(
    files: list[UploadFile] = File(..., description="要上传的文件（可多个）"),
    policy: ValidationPolicy = Depends(get_upload_policy),
    orchestrator_factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    """按提交顺序逐个上传；任一文件失败则整批返回失败（已完成的对象不回滚）。"""
    _reject_violation([await _describe_upload(f) for f in files], policy)

    requests = [await _read_upload(f) for f in files]
    # Declared sizes are client supplied; the read bytes get the same checks
    _reject_violation(requests, policy)

    orchestrator = orchestrator_factory()
    result = await orchestrator.upload_batch(requests)
    if not result.ok:
        failure = result.failure
        raise UploadFailedException(failure.message, phase=failure.phase.value, filename=failure.name)

    return success_response(data=UploadResponseDTO(paths=result.locations), message="Files uploaded")
