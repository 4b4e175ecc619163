"""Lifecycle of a single multipart upload.

    initiated -> parts_in_flight -> completed
    initiated | parts_in_flight -> aborting -> aborted
"""
from __future__ import annotations

from enum import Enum

from domain.common.exceptions import DomainValidationException


class UploadState(str, Enum):
    INITIATED = "initiated"
    PARTS_IN_FLIGHT = "parts_in_flight"
    COMPLETED = "completed"
    ABORTING = "aborting"
    ABORTED = "aborted"


_TRANSITIONS: dict[UploadState, frozenset[UploadState]] = {
    UploadState.INITIATED: frozenset({UploadState.PARTS_IN_FLIGHT, UploadState.ABORTING}),
    UploadState.PARTS_IN_FLIGHT: frozenset({UploadState.COMPLETED, UploadState.ABORTING}),
    UploadState.ABORTING: frozenset({UploadState.ABORTED}),
    UploadState.COMPLETED: frozenset(),
    UploadState.ABORTED: frozenset(),
}

TERMINAL_STATES = frozenset({UploadState.COMPLETED, UploadState.ABORTED})


class IllegalTransitionError(DomainValidationException):
    def __init__(self, current: UploadState, target: UploadState):
        super().__init__(
            f"非法的上传状态迁移: {current.value} -> {target.value}",
            field="state",
            details={"from": current.value, "to": target.value},
        )
        self.current = current
        self.target = target


def transition(current: UploadState, target: UploadState) -> UploadState:
    """Return ``target`` if the move is allowed, raise otherwise."""
    if target not in _TRANSITIONS[current]:
        raise IllegalTransitionError(current, target)
    return target


class UploadStateMachine:
    """Tracks the state of one upload and keeps the visited history."""

    def __init__(self, initial: UploadState = UploadState.INITIATED):
        self.state = initial
        self.history: list[UploadState] = [initial]

    def advance(self, target: UploadState) -> UploadState:
        self.state = transition(self.state, target)
        self.history.append(self.state)
        return self.state

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES
