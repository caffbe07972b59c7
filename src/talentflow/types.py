from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["recruiter", "specialist", "company", "admin", "candidate"]
ApplicationStatus = Literal[
    "pending",
    "reviewing",
    "evaluating",
    "sent_to_specialist",
    "sent_to_company",
    "company_interested",
    "interviewed",
    "rejected",
    "accepted",
    "injected_by_admin",
    "discarded",
    "archived",
]
DenialReason = Literal["not_an_allowed_edge", "precondition_failed", "terminal_state"]
PreconditionPolicy = Literal["warn", "block"]
IntentKind = Literal[
    "notify_candidate_status_changed",
    "notify_company_new_candidate",
    "notify_specialist_new_candidate",
    "notify_admins_new_application",
    "notify_admins_company_decision",
    "notify_admins_assignment_missing",
    "check_assignment_readiness",
    "schedule_company_follow_up",
    "close_job",
    "audit_transition",
]


class ApplicationSnapshot(BaseModel):
    """Immutable copy of an application row.

    ``status`` is a plain string on purpose: rows are loaded as stored and the
    catalog decides whether the value is legal.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    job_id: int
    candidate_user_id: int | None = None
    candidate_name: str
    candidate_email: str
    candidate_phone: str = ""
    status: str
    notes: str | None = None
    cv_reference: str = ""
    cover_letter: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    reviewed_at: datetime | None = None


class JobAssignmentView(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    job_id: int
    recruiter_id: int | None = None
    specialist_id: int | None = None
    company_user_id: int | None = None
    follow_up_date: datetime | None = None
    closed_at: datetime | None = None
    closed_reason: str = ""


class EvaluationNoteView(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    application_id: int
    author_id: int
    author_role: str
    content: str
    is_public: bool = False
    created_at: datetime | None = None


class CandidateIdentity(BaseModel):
    name: str
    email: str
    phone: str = ""

    @field_validator("name", "email")
    @classmethod
    def validate_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("value is required")
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("email must contain '@'")
        return value.lower()


class TransitionFields(BaseModel):
    notes: str | None = None
    discard_reason: str | None = None
    close_job: bool = False

    def is_empty(self) -> bool:
        return self.notes is None and not self.discard_reason and not self.close_job


class TransitionWarning(BaseModel):
    code: str
    message: str


class SideEffectIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: IntentKind
    application_id: int
    job_id: int
    payload: dict[str, Any] = Field(default_factory=dict)


class TransitionOutcome(BaseModel):
    application: ApplicationSnapshot
    previous_status: str
    status: str
    is_noop: bool = False
    warnings: list[TransitionWarning] = Field(default_factory=list)
    intents: list[SideEffectIntent] = Field(default_factory=list)

    @property
    def needs_assignment(self) -> bool:
        return any(warning.code == "needs_assignment" for warning in self.warnings)


class ProjectedApplication(BaseModel):
    id: int
    job_id: int
    viewer_role: Role
    status: str
    status_label: str
    status_color: str = ""
    candidate_name: str
    candidate_email: str
    candidate_phone: str = ""
    notes: str | None = None
    cv_reference: str = ""
    cover_letter: str = ""
    evaluation_notes: list[EvaluationNoteView] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    reviewed_at: datetime | None = None


class AuditEntryView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: int
    from_status: str
    to_status: str
    actor_role: str
    actor_user_id: int
    warnings_json: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
