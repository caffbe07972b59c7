from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from talentflow.types import ApplicationStatus, CandidateIdentity, TransitionWarning


class ApplicationCreateRequest(BaseModel):
    job_id: int
    candidate: CandidateIdentity
    cv_reference: str = ""
    cover_letter: str = ""


class ApplicationCreateResponse(BaseModel):
    id: int
    job_id: int
    status: str


class TransitionRequest(BaseModel):
    status: ApplicationStatus
    notes: str | None = None
    discard_reason: str | None = None
    close_job: bool = False


class TransitionResponse(BaseModel):
    id: int
    previous_status: str
    status: str
    is_noop: bool
    needs_assignment: bool
    warnings: list[TransitionWarning] = Field(default_factory=list)


class EvaluationNoteRequest(BaseModel):
    content: str
    is_public: bool = False


class AssignmentRequest(BaseModel):
    recruiter_id: int | None = None
    specialist_id: int | None = None
    company_user_id: int | None = None


class NotificationResponse(BaseModel):
    id: int
    kind: str
    title: str
    message: str
    application_id: int | None = None
    read: bool
    created_at: datetime | None = None
