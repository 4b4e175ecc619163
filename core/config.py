"""
配置文件 - 项目配置管理
"""
import json
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MiB = 1024 * 1024


def _parse_str_list(v):
    """允许 JSON 字符串或逗号分隔字符串两种格式。"""
    if isinstance(v, (list, tuple, set, frozenset)):
        return list(v)
    if isinstance(v, str):
        s = v.strip()
        if s.startswith("[") and s.endswith("]"):
            try:
                arr = json.loads(s)
            except ValueError:
                arr = None
            if isinstance(arr, list):
                return arr
        return [item.strip() for item in s.split(",") if item.strip()]
    return v


class StorageSettings(BaseModel):
    type: str = "local"  # local, s3
    bucket: Optional[str] = None
    region: Optional[str] = None
    endpoint: Optional[str] = None
    public_base_url: Optional[str] = None
    # S3 specific
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    # Local storage specific
    local_base_path: str = "/tmp/storage"
    # Advanced settings
    timeout: int = 30
    enable_ssl: bool = True


class UploadSettings(BaseModel):
    max_part_size: int = 5 * MiB
    max_retries: int = 3
    max_file_size: int = 5 * MiB
    allowed_content_types: list[str] = Field(default_factory=lambda: ["image/jpeg", "image/png"])
    key_prefix: str = "media"
    # 0 表示失败后立即重试
    retry_backoff_seconds: float = 0.0
    retry_permanent_errors: bool = True

    @field_validator("allowed_content_types", mode="before")
    @classmethod
    def _parse_allowed_content_types(cls, v):
        return _parse_str_list(v)

    @field_validator("max_part_size", "max_retries")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Multipart Upload Relay")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # 分组配置：Storage/Upload 采用嵌套模型（STORAGE__BUCKET、UPLOAD__MAX_PART_SIZE）
    storage: StorageSettings = Field(default_factory=StorageSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)

    # CORS配置
    CORS_ORIGINS: list = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        return _parse_str_list(v)


settings = Settings()
