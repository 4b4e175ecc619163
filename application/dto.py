"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from pydantic import BaseModel, Field


class UploadResponseDTO(BaseModel):
    """批量上传结果：与请求中文件顺序一致的对象地址"""
    paths: list[str] = Field(default_factory=list, description="对象存储中的最终地址")


class HealthDTO(BaseModel):
    status: str
    storage: str
