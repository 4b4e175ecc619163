"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class UploadValidationException(BusinessException):
    """上传文件不满足大小/类型策略，未发起任何存储调用。"""

    def __init__(self, message: str, *, filename: Optional[str] = None):
        details = {"phase": "validation"}
        if filename:
            details["file"] = filename
        super().__init__(
            code=BusinessCode.UPLOAD_REJECTED,
            message=message,
            error_type="UploadValidationError",
            details=details,
            field="files",
        )


class UploadFailedException(BusinessException):
    """某个文件在分片上传流程的某一阶段失败，整批请求随之失败。"""

    def __init__(self, message: str, *, phase: str, filename: Optional[str] = None):
        details = {"phase": phase}
        if filename:
            details["file"] = filename
        super().__init__(
            code=BusinessCode.STORAGE_ERROR,
            message=message,
            error_type="UploadFailed",
            details=details,
        )


class StorageCredentialsException(BusinessException):
    """存储后端未初始化（凭据缺失、桶未配置或无法连通）。"""

    def __init__(self, message: str = "Storage backend unavailable"):
        super().__init__(
            code=BusinessCode.STORAGE_UNAVAILABLE,
            message=message,
            error_type="StorageCredentialsError",
            details={"phase": "credentials"},
        )


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )
