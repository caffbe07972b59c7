"""
Per-role projection of an application record.

``project`` is pure: it never touches storage and never mutates its input.
Anything a role may not see is either redacted or reported as ``NotFound``
so the record's existence does not leak.
"""

from __future__ import annotations

from collections.abc import Sequence

from talentflow.core.catalog import STATUS_CATALOG, StatusCatalog
from talentflow.core.errors import NotFound
from talentflow.types import (
    ApplicationSnapshot,
    EvaluationNoteView,
    JobAssignmentView,
    ProjectedApplication,
    Role,
)

NOTE_READER_ROLES: frozenset[str] = frozenset({"recruiter", "specialist", "admin"})


def visible_evaluation_notes(
    notes: Sequence[EvaluationNoteView],
    viewer_role: str,
) -> list[EvaluationNoteView]:
    if viewer_role in NOTE_READER_ROLES:
        return list(notes)
    if viewer_role == "company":
        return [note for note in notes if note.is_public]
    return []


def project(
    application: ApplicationSnapshot,
    viewer_role: Role,
    evaluation_notes: Sequence[EvaluationNoteView] = (),
    *,
    catalog: StatusCatalog = STATUS_CATALOG,
) -> ProjectedApplication:
    definition = catalog.definition_of(application.status)
    if viewer_role not in definition.visible_to:
        raise NotFound(application.id)

    internal_notes = application.notes if viewer_role in NOTE_READER_ROLES else None
    if viewer_role == "candidate":
        status = definition.candidate_label
    else:
        status = definition.name

    return ProjectedApplication(
        id=application.id,
        job_id=application.job_id,
        viewer_role=viewer_role,
        status=status,
        status_label=catalog.label_for(application.status, viewer_role),
        status_color=catalog.color_for(application.status, viewer_role),
        candidate_name=application.candidate_name,
        candidate_email=application.candidate_email,
        candidate_phone=application.candidate_phone,
        notes=internal_notes,
        cv_reference=application.cv_reference,
        cover_letter=application.cover_letter,
        evaluation_notes=visible_evaluation_notes(evaluation_notes, viewer_role),
        created_at=application.created_at,
        updated_at=application.updated_at,
        reviewed_at=application.reviewed_at,
    )


def is_party_to(
    application: ApplicationSnapshot,
    role: str,
    user_id: int,
    assignment: JobAssignmentView | None,
) -> bool:
    if role == "admin":
        return True
    if role == "candidate":
        return application.candidate_user_id is not None and application.candidate_user_id == user_id
    if assignment is None:
        return False
    if role == "recruiter":
        return assignment.recruiter_id == user_id
    if role == "specialist":
        return assignment.specialist_id == user_id
    if role == "company":
        return assignment.company_user_id == user_id
    return False


def ensure_party_to(
    application: ApplicationSnapshot,
    role: str,
    user_id: int,
    assignment: JobAssignmentView | None,
) -> None:
    if not is_party_to(application, role, user_id, assignment):
        raise NotFound(application.id)
