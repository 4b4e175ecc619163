"""Storage data transfer objects."""
from typing import Optional
from pydantic import BaseModel


class MultipartUpload(BaseModel):
    """Multipart upload session as issued by the provider."""
    bucket: Optional[str] = None
    key: str
    upload_id: str
    content_type: Optional[str] = None
