from talentflow.core.errors import (
    ConcurrentModification,
    DuplicateApplication,
    ErrorCode,
    NotFound,
    TransitionDenied,
)


def test_not_found_message_does_not_leak_reason() -> None:
    error = NotFound(5)
    assert error.to_dict() == {
        "error": {"code": "NOT_FOUND", "message": "Application 5 not found", "retryable": False}
    }


def test_transition_denied_carries_reason() -> None:
    payload = TransitionDenied("terminal_state", "closed").to_dict()
    assert payload["error"]["code"] == ErrorCode.TRANSITION_DENIED.value
    assert payload["error"]["reason"] == "terminal_state"


def test_concurrent_modification_is_retryable() -> None:
    error = ConcurrentModification(9, "reviewing")
    assert error.retryable
    assert "reviewing" in error.message


def test_duplicate_application_keeps_existing_id() -> None:
    error = DuplicateApplication(job_id=7, existing_id=3)
    assert error.existing_id == 3
    assert error.code is ErrorCode.DUPLICATE_APPLICATION
