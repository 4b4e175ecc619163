"""
API依赖项 - 存储后端与上传服务装配
"""
from functools import lru_cache
from typing import Callable

from application.ports.storage import MultipartStoragePort
from application.services.part_uploader import PartUploader
from application.services.upload_service import UploadOrchestrator
from core.config import settings
from domain.common.exceptions import StorageCredentialsException
from domain.upload import ValidationPolicy
from infrastructure.adapters.storage_port import StorageProviderPortAdapter
from infrastructure.external.storage import (
    MultipartStorageProvider,
    get_storage_client,
    get_storage_config,
    get_storage_init_error,
)

OrchestratorFactory = Callable[[], UploadOrchestrator]


@lru_cache
def get_upload_policy() -> ValidationPolicy:
    """上传校验策略，启动后只读"""
    u = settings.upload
    return ValidationPolicy(
        max_file_size=u.max_file_size,
        allowed_content_types=frozenset(u.allowed_content_types),
    )


def get_storage_provider() -> MultipartStorageProvider:
    """获取已初始化的存储后端；未初始化时视为凭据/连接阶段失败"""
    client = get_storage_client()
    if client is None:
        reason = get_storage_init_error()
        raise StorageCredentialsException(
            f"Storage backend unavailable: {reason}" if reason else "Storage backend unavailable"
        )
    return client


def build_upload_orchestrator(storage: MultipartStoragePort) -> UploadOrchestrator:
    u = settings.upload
    uploader = PartUploader(
        storage,
        u.max_retries,
        backoff_seconds=u.retry_backoff_seconds,
        retry_permanent_errors=u.retry_permanent_errors,
    )
    return UploadOrchestrator(
        storage,
        bucket=get_storage_config().bucket,
        max_part_size=u.max_part_size,
        part_uploader=uploader,
        key_prefix=u.key_prefix,
    )


async def get_orchestrator_factory() -> OrchestratorFactory:
    """延迟装配上传服务，保证文件校验先于任何存储访问"""
    def _factory() -> UploadOrchestrator:
        return build_upload_orchestrator(StorageProviderPortAdapter(get_storage_provider()))
    return _factory
