from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from talentflow.core.catalog import STATUS_CATALOG
from talentflow.core.errors import ConcurrentModification, DuplicateApplication
from talentflow.db.base import utcnow
from talentflow.db.models import (
    Application,
    EvaluationNote,
    JobAssignment,
    Notification,
    TransitionAudit,
)
from talentflow.types import (
    ApplicationSnapshot,
    AuditEntryView,
    CandidateIdentity,
    EvaluationNoteView,
    JobAssignmentView,
)

ASSIGNMENT_FIELDS = {"recruiter_id", "specialist_id", "company_user_id"}


class Repository:
    """SQLAlchemy-backed application store and assignment oracle."""

    def __init__(self, session: Session):
        self.session = session

    def create_application(
        self,
        *,
        job_id: int,
        candidate: CandidateIdentity,
        candidate_user_id: int | None = None,
        status: str = "pending",
        cv_reference: str = "",
        cover_letter: str = "",
    ) -> ApplicationSnapshot:
        row = Application(
            job_id=job_id,
            candidate_user_id=candidate_user_id,
            candidate_name=candidate.name,
            candidate_email=candidate.email,
            candidate_phone=candidate.phone,
            status=status,
            cv_reference=cv_reference,
            cover_letter=cover_letter,
        )
        self.session.add(row)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent submission for the same candidate and job.
            self.session.rollback()
            existing = self.find_duplicate_open(job_id, candidate.email)
            if existing is None:
                raise
            raise DuplicateApplication(job_id, existing.id) from None
        self.session.refresh(row)
        return ApplicationSnapshot.model_validate(row)

    def get_application(self, application_id: int) -> ApplicationSnapshot | None:
        row = self.session.get(Application, application_id, populate_existing=True)
        if row is None or row.is_deleted:
            return None
        return ApplicationSnapshot.model_validate(row)

    def compare_and_swap_status(
        self,
        application_id: int,
        expected_status: str,
        next_status: str,
        field_updates: dict[str, Any],
    ) -> ApplicationSnapshot:
        statement = (
            update(Application)
            .where(
                and_(
                    Application.id == application_id,
                    Application.status == expected_status,
                    Application.is_deleted.is_(False),
                )
            )
            .values(status=next_status, **field_updates)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount != 1:
            self.session.rollback()
            raise ConcurrentModification(application_id, expected_status)

        self.session.commit()
        snapshot = self.get_application(application_id)
        if snapshot is None:
            raise ConcurrentModification(application_id, expected_status)
        return snapshot

    def find_duplicate_open(self, job_id: int, email: str) -> ApplicationSnapshot | None:
        statement = (
            select(Application)
            .where(
                and_(
                    Application.job_id == job_id,
                    func.lower(Application.candidate_email) == email.strip().lower(),
                    Application.is_deleted.is_(False),
                    Application.status.in_(sorted(STATUS_CATALOG.open_statuses)),
                )
            )
            .order_by(Application.id.asc())
        )
        row = self.session.scalars(statement).first()
        return ApplicationSnapshot.model_validate(row) if row else None

    def upsert_assignment(self, job_id: int, values: dict[str, int | None]) -> JobAssignmentView:
        unknown = set(values) - ASSIGNMENT_FIELDS
        if unknown:
            raise ValueError(f"unsupported assignment fields {sorted(unknown)}")

        existing = self.session.scalar(select(JobAssignment).where(JobAssignment.job_id == job_id))
        if existing:
            for key, value in values.items():
                setattr(existing, key, value)
            obj = existing
        else:
            obj = JobAssignment(job_id=job_id, **values)
            self.session.add(obj)

        self.session.commit()
        self.session.refresh(obj)
        return JobAssignmentView.model_validate(obj)

    def get_assignment(self, job_id: int) -> JobAssignmentView | None:
        statement = (
            select(JobAssignment)
            .where(JobAssignment.job_id == job_id)
            .execution_options(populate_existing=True)
        )
        row = self.session.scalar(statement)
        return JobAssignmentView.model_validate(row) if row else None

    def is_specialist_linked(self, job_id: int) -> bool:
        assignment = self.get_assignment(job_id)
        return assignment is not None and assignment.specialist_id is not None

    def schedule_follow_up(self, job_id: int, follow_up_date: datetime) -> JobAssignmentView:
        row = self.session.scalar(select(JobAssignment).where(JobAssignment.job_id == job_id))
        if not row:
            raise ValueError(f"job {job_id} has no assignment")
        row.follow_up_date = follow_up_date
        self.session.commit()
        self.session.refresh(row)
        return JobAssignmentView.model_validate(row)

    def close_job(self, job_id: int, reason: str) -> JobAssignmentView:
        row = self.session.scalar(select(JobAssignment).where(JobAssignment.job_id == job_id))
        if not row:
            raise ValueError(f"job {job_id} has no assignment")
        if row.closed_at is None:
            row.closed_at = utcnow()
            row.closed_reason = reason
            self.session.commit()
            self.session.refresh(row)
        return JobAssignmentView.model_validate(row)

    def add_evaluation_note(
        self,
        *,
        application_id: int,
        author_id: int,
        author_role: str,
        content: str,
        is_public: bool = False,
    ) -> EvaluationNoteView:
        note = EvaluationNote(
            application_id=application_id,
            author_id=author_id,
            author_role=author_role,
            content=content,
            is_public=is_public,
        )
        self.session.add(note)
        self.session.commit()
        self.session.refresh(note)
        return EvaluationNoteView.model_validate(note)

    def list_evaluation_notes(self, application_id: int) -> list[EvaluationNoteView]:
        statement = (
            select(EvaluationNote)
            .where(EvaluationNote.application_id == application_id)
            .order_by(EvaluationNote.id.desc())
        )
        return [EvaluationNoteView.model_validate(row) for row in self.session.scalars(statement).all()]

    def create_notification(
        self,
        *,
        recipient_role: str,
        kind: str,
        title: str,
        message: str,
        recipient_user_id: int | None = None,
        recipient_email: str = "",
        application_id: int | None = None,
        payload_json: dict | None = None,
    ) -> Notification:
        item = Notification(
            recipient_role=recipient_role,
            recipient_user_id=recipient_user_id,
            recipient_email=recipient_email,
            kind=kind,
            title=title,
            message=message,
            application_id=application_id,
            payload_json=payload_json or {},
        )
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def list_notifications(
        self,
        *,
        recipient_role: str,
        recipient_user_id: int | None = None,
        application_id: int | None = None,
    ) -> list[Notification]:
        statement = select(Notification).where(Notification.recipient_role == recipient_role)
        if recipient_user_id is not None:
            statement = statement.where(Notification.recipient_user_id == recipient_user_id)
        if application_id is not None:
            statement = statement.where(Notification.application_id == application_id)
        statement = statement.order_by(Notification.id.asc())
        return list(self.session.scalars(statement).all())

    def record_transition(
        self,
        *,
        application_id: int,
        from_status: str,
        to_status: str,
        actor_role: str,
        actor_user_id: int,
        warnings: list[str] | None = None,
    ) -> TransitionAudit:
        entry = TransitionAudit(
            application_id=application_id,
            from_status=from_status,
            to_status=to_status,
            actor_role=actor_role,
            actor_user_id=actor_user_id,
            warnings_json=warnings or [],
        )
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def list_transitions(self, application_id: int) -> list[AuditEntryView]:
        statement = (
            select(TransitionAudit)
            .where(TransitionAudit.application_id == application_id)
            .order_by(TransitionAudit.id.asc())
        )
        return [AuditEntryView.model_validate(row) for row in self.session.scalars(statement).all()]
