"""
Error model for the application lifecycle engine.

Every failure the engine reports derives from ``LifecycleError`` and carries a
stable code, a human-readable message and a retry hint for callers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from talentflow.types import DenialReason


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"
    TRANSITION_DENIED = "TRANSITION_DENIED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    DUPLICATE_APPLICATION = "DUPLICATE_APPLICATION"
    INVALID_FIELDS = "INVALID_FIELDS"


class LifecycleError(Exception):
    """Base exception for lifecycle errors with structured error information."""

    code: ErrorCode = ErrorCode.NOT_FOUND

    def __init__(self, message: str, *, retryable: bool = False):
        self.message = message
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "retryable": self.retryable,
            }
        }


class NotFound(LifecycleError):
    """No such application, or it is not visible to the requesting party.

    Both cases share one message so that callers cannot tell the two apart.
    """

    code = ErrorCode.NOT_FOUND

    def __init__(self, application_id: int):
        self.application_id = application_id
        super().__init__(f"Application {application_id} not found")


class UnknownStatus(LifecycleError):
    code = ErrorCode.UNKNOWN_STATUS

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Unknown application status '{status}'")


class TransitionDenied(LifecycleError):
    code = ErrorCode.TRANSITION_DENIED

    def __init__(self, reason: DenialReason, message: str):
        self.reason = reason
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["error"]["reason"] = self.reason
        return data


class ConcurrentModification(LifecycleError):
    code = ErrorCode.CONCURRENT_MODIFICATION

    def __init__(self, application_id: int, expected_status: str):
        self.application_id = application_id
        self.expected_status = expected_status
        super().__init__(
            f"Application {application_id} changed while it was being updated "
            f"(expected status '{expected_status}'); reload and try again",
            retryable=True,
        )


class DuplicateApplication(LifecycleError):
    code = ErrorCode.DUPLICATE_APPLICATION

    def __init__(self, job_id: int, existing_id: int):
        self.job_id = job_id
        self.existing_id = existing_id
        super().__init__(f"An open application for job {job_id} already exists for this candidate")


class InvalidFieldUpdate(LifecycleError):
    code = ErrorCode.INVALID_FIELDS
