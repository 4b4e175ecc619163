"""Application-level storage helpers to avoid infra coupling."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def rfc3339_now(now: Optional[datetime] = None) -> str:
    ts = now or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_object_key(prefix: str, filename: str, timestamp: str) -> str:
    """``<prefix>/<timestamp>-<basename>``; directory parts of the name are dropped."""
    name = PurePosixPath(filename.replace("\\", "/")).name or "upload.bin"
    prefix = prefix.strip("/")
    leaf = f"{timestamp}-{name}"
    return f"{prefix}/{leaf}" if prefix else leaf


def sniff_content_type(data: bytes) -> str:
    """Detect the MIME type from the payload bytes (libmagic)."""
    try:
        import magic
    except ImportError as exc:
        raise RuntimeError("python-magic with libmagic is required for content sniffing") from exc

    # libmagic only needs the head of the payload
    detected = magic.from_buffer(data[:2048], mime=True)
    return detected or DEFAULT_CONTENT_TYPE
