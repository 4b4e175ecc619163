"""Upload domain exports."""
from .entity import (
    BatchResult,
    CompletedPart,
    PartPlan,
    PartSpan,
    UploadedFileInfo,
    UploadOutcome,
    UploadPhase,
    UploadRequest,
    UploadSession,
    ValidationPolicy,
)
from .planner import InvalidPartPlanError, plan_parts
from .state import IllegalTransitionError, UploadState, UploadStateMachine, transition
from .validator import FILE_TOO_LARGE, UNSUPPORTED_FILETYPE, find_violation, validate

__all__ = [
    "BatchResult",
    "CompletedPart",
    "PartPlan",
    "PartSpan",
    "UploadedFileInfo",
    "UploadOutcome",
    "UploadPhase",
    "UploadRequest",
    "UploadSession",
    "ValidationPolicy",
    "InvalidPartPlanError",
    "plan_parts",
    "IllegalTransitionError",
    "UploadState",
    "UploadStateMachine",
    "transition",
    "FILE_TOO_LARGE",
    "UNSUPPORTED_FILETYPE",
    "find_violation",
    "validate",
]
