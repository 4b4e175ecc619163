"""Upload policy checks run before any storage call is made."""
from __future__ import annotations

from typing import Iterable, TypeVar, Union

from domain.upload.entity import UploadedFileInfo, UploadRequest, ValidationPolicy

FILE_TOO_LARGE = "File too large"
UNSUPPORTED_FILETYPE = "Filetype is not supported"

# Form metadata and fully read requests expose the same checked fields
F = TypeVar("F", bound=Union[UploadedFileInfo, UploadRequest])


def find_violation(files: Iterable[F], policy: ValidationPolicy) -> tuple[F, str] | None:
    """Return the first offending file and the reason, or ``None``."""
    for request in files:
        if request.size > policy.max_file_size:
            return request, FILE_TOO_LARGE
        # Declared by the client in the form part header, never sniffed here
        if request.declared_content_type not in policy.allowed_content_types:
            return request, UNSUPPORTED_FILETYPE
    return None


def validate(files: Iterable[F], policy: ValidationPolicy) -> tuple[bool, str]:
    violation = find_violation(files, policy)
    if violation is not None:
        return False, violation[1]
    return True, "ok"
