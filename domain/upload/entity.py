"""Domain values describing a multipart transfer of one submitted file."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException


class UploadPhase(str, Enum):
    """Phase of the upload pipeline a failure is attributed to."""

    VALIDATION = "validation"
    CREDENTIALS = "credentials"
    READ_FILE = "read-file"
    CREATE_SESSION = "create-session"
    UPLOAD_PART = "upload-part"
    COMPLETE = "complete"


@dataclass(frozen=True)
class UploadRequest:
    """One logical file received from the client."""

    name: str
    content: bytes
    size: int
    declared_content_type: str = ""

    def __post_init__(self) -> None:
        if self.size < 0:
            raise DomainValidationException(
                "文件大小不能为负数",
                field="size",
                details={"size": self.size},
            )

    @classmethod
    def from_bytes(cls, name: str, content: bytes, declared_content_type: Optional[str] = None) -> "UploadRequest":
        return cls(
            name=name,
            content=content,
            size=len(content),
            declared_content_type=declared_content_type or "",
        )


@dataclass(frozen=True)
class UploadedFileInfo:
    """Form metadata of a submitted file, known before its bytes are read."""

    name: str
    size: int
    declared_content_type: str = ""


@dataclass(frozen=True)
class ValidationPolicy:
    max_file_size: int
    allowed_content_types: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class PartSpan:
    """A contiguous byte range of the payload sent as one part."""

    part_number: int
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def slice(self, data: bytes) -> bytes:
        return data[self.offset:self.end]


PartPlan = tuple[PartSpan, ...]


@dataclass(frozen=True)
class CompletedPart:
    part_number: int
    etag: str

    def as_dict(self) -> dict:
        """Shape expected by S3-compatible ``CompleteMultipartUpload``."""
        return {"PartNumber": self.part_number, "ETag": self.etag}


@dataclass
class UploadSession:
    """Handle of one in-progress multipart upload issued by the backend."""

    bucket: Optional[str]
    key: str
    upload_id: str
    content_type: Optional[str] = None
    completed_parts: list[CompletedPart] = field(default_factory=list)

    def record(self, part: CompletedPart) -> None:
        expected = len(self.completed_parts) + 1
        if part.part_number != expected:
            raise DomainValidationException(
                "分片序号不连续",
                field="part_number",
                details={"expected": expected, "got": part.part_number},
            )
        self.completed_parts.append(part)


@dataclass(frozen=True)
class UploadOutcome:
    """Result of transferring one file: a location, or a message and phase."""

    name: str
    location: Optional[str] = None
    message: Optional[str] = None
    phase: Optional[UploadPhase] = None

    @property
    def ok(self) -> bool:
        return self.phase is None

    @classmethod
    def success(cls, name: str, location: str) -> "UploadOutcome":
        return cls(name=name, location=location)

    @classmethod
    def failure(cls, name: str, phase: UploadPhase, message: str) -> "UploadOutcome":
        return cls(name=name, message=message, phase=phase)


@dataclass(frozen=True)
class BatchResult:
    """All-or-nothing result of a request carrying several files."""

    outcomes: tuple[UploadOutcome, ...] = ()
    failure: Optional[UploadOutcome] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def locations(self) -> list[str]:
        return [o.location for o in self.outcomes if o.location is not None]
