"""Single-part upload with bounded retry."""
from __future__ import annotations

from typing import Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from application.ports.storage import MultipartStoragePort, StorageBackendError
from core.logging_config import get_logger
from domain.upload import CompletedPart, UploadSession

logger = get_logger(__name__)


class PartUploadFailed(Exception):
    """A part could not be stored after every allowed attempt."""

    def __init__(self, part_number: int, attempts: int, last_error: BaseException):
        super().__init__(f"part #{part_number} failed after {attempts} attempt(s): {last_error}")
        self.part_number = part_number
        self.attempts = attempts
        self.last_error = last_error


class PartUploader:
    """Uploads one part, retrying the same bytes under the same part number.

    With the defaults every error is retried immediately until
    ``max_retries`` attempts (the first one included) are used up.
    ``backoff_seconds`` enables exponential backoff between attempts, and
    ``retry_permanent_errors=False`` gives up at the first error the
    backend classified as non-retryable.
    """

    def __init__(
        self,
        storage: MultipartStoragePort,
        max_retries: int = 3,
        *,
        backoff_seconds: float = 0.0,
        backoff_max_seconds: float = 10.0,
        retry_permanent_errors: bool = True,
    ):
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self._storage = storage
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self.retry_permanent_errors = retry_permanent_errors

    def _should_retry(self, exc: BaseException) -> bool:
        # Cancellation must propagate, never count as a failed attempt
        if not isinstance(exc, Exception):
            return False
        if self.retry_permanent_errors:
            return True
        return getattr(exc, "retryable", True)

    def _wait(self):
        if self.backoff_seconds > 0:
            return wait_exponential(multiplier=self.backoff_seconds, max=self.backoff_max_seconds)
        return wait_none()

    @staticmethod
    def _log_retry(part_number: int):
        def _before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "multipart_part_retry",
                part_number=part_number,
                attempt=retry_state.attempt_number,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        return _before_sleep

    async def upload_part(self, session: UploadSession, part_number: int, data: bytes) -> CompletedPart:
        attempts = 0
        etag: Optional[str] = None
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self._wait(),
            retry=retry_if_exception(self._should_retry),
            before_sleep=self._log_retry(part_number),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    etag = await self._storage.upload_part(session, part_number, data)
        except Exception as exc:
            logger.error(
                "multipart_part_failed",
                upload_id=session.upload_id,
                part_number=part_number,
                attempts=attempts,
                retryable=exc.retryable if isinstance(exc, StorageBackendError) else None,
                error=str(exc),
            )
            raise PartUploadFailed(part_number, attempts, exc) from exc

        logger.info(
            "multipart_part_uploaded",
            upload_id=session.upload_id,
            part_number=part_number,
            size=len(data),
            attempts=attempts,
        )
        return CompletedPart(part_number=part_number, etag=etag or "")
