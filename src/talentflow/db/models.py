from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    and_,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from talentflow.core.catalog import STATUS_CATALOG
from talentflow.db.base import Base, TimestampMixin

OPEN_STATUSES = sorted(STATUS_CATALOG.open_statuses)


class Application(TimestampMixin, Base):
    __tablename__ = "applications"
    __table_args__ = (
        Index("ix_applications_job_email", "job_id", "candidate_email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    candidate_user_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    candidate_name: Mapped[str] = mapped_column(String(255), nullable=False)
    candidate_email: Mapped[str] = mapped_column(String(255), nullable=False)
    candidate_phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    status: Mapped[str] = mapped_column(String(40), default="pending", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cv_reference: Mapped[str] = mapped_column(String(800), default="", nullable=False)
    cover_letter: Mapped[str] = mapped_column(Text, default="", nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


_open_application = and_(Application.is_deleted.is_(False), Application.status.in_(OPEN_STATUSES))

# One open application per candidate email and job.
Index(
    "uq_applications_open_job_email",
    Application.job_id,
    func.lower(Application.candidate_email),
    unique=True,
    sqlite_where=_open_application,
    postgresql_where=_open_application,
)


class JobAssignment(TimestampMixin, Base):
    __tablename__ = "job_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_id: Mapped[int] = mapped_column(Integer, unique=True, index=True, nullable=False)
    recruiter_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    specialist_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    company_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    follow_up_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_reason: Mapped[str] = mapped_column(String(80), default="", nullable=False)


class EvaluationNote(TimestampMixin, Base):
    __tablename__ = "evaluation_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), index=True
    )
    author_id: Mapped[int] = mapped_column(Integer, nullable=False)
    author_role: Mapped[str] = mapped_column(String(40), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Notification(TimestampMixin, Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recipient_role: Mapped[str] = mapped_column(String(40), index=True, nullable=False)
    recipient_user_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    recipient_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    kind: Mapped[str] = mapped_column(String(80), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, default="", nullable=False)
    application_id: Mapped[int | None] = mapped_column(
        ForeignKey("applications.id", ondelete="SET NULL"), index=True, nullable=True
    )
    payload_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class TransitionAudit(TimestampMixin, Base):
    __tablename__ = "transition_audit"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), index=True
    )
    from_status: Mapped[str] = mapped_column(String(40), nullable=False)
    to_status: Mapped[str] = mapped_column(String(40), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(40), nullable=False)
    actor_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    warnings_json: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
