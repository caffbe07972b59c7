from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from talentflow.core.events import EventBus, get_event_bus
from talentflow.db.repositories import Repository
from talentflow.db.session import SessionLocal
from talentflow.types import JobAssignmentView, SideEffectIntent

logger = logging.getLogger(__name__)

DECISION_PHRASES = {
    "company_interested": "marked as interesting",
    "interviewed": "marked as interviewed",
    "rejected": "turned down",
    "accepted": "accepted for hiring",
}


@dataclass(slots=True)
class NotificationMessage:
    recipient_role: str
    title: str
    message: str
    recipient_user_id: int | None = None
    recipient_email: str = ""


def build_messages(
    intent: SideEffectIntent,
    assignment: JobAssignmentView | None,
) -> list[NotificationMessage]:
    payload = intent.payload
    kind = intent.kind

    if kind == "notify_candidate_status_changed":
        return [
            NotificationMessage(
                recipient_role="candidate",
                recipient_user_id=payload.get("candidate_user_id"),
                recipient_email=payload.get("candidate_email", ""),
                title=f"Application update: {payload['label']}",
                message=f"Your application for job {intent.job_id} is now '{payload['label']}'.",
            )
        ]

    if kind == "notify_company_new_candidate":
        if assignment is None or assignment.company_user_id is None:
            logger.warning("No company user linked to job_id=%s; skipping notification", intent.job_id)
            return []
        return [
            NotificationMessage(
                recipient_role="company",
                recipient_user_id=assignment.company_user_id,
                title="New candidate for review",
                message=f"{payload.get('candidate_name', 'A candidate')} was sent to you for job {intent.job_id}.",
            )
        ]

    if kind == "notify_specialist_new_candidate":
        if assignment is None or assignment.specialist_id is None:
            return []
        return [
            NotificationMessage(
                recipient_role="specialist",
                recipient_user_id=assignment.specialist_id,
                title="New candidate to evaluate",
                message=f"{payload.get('candidate_name', 'A candidate')} is waiting for your evaluation.",
            )
        ]

    if kind == "notify_admins_new_application":
        return [
            NotificationMessage(
                recipient_role="admin",
                title="New application",
                message=f"{payload.get('candidate_name', 'A candidate')} applied to job {intent.job_id}.",
            )
        ]

    if kind == "notify_admins_company_decision":
        phrase = DECISION_PHRASES.get(payload.get("decision", ""), "updated")
        return [
            NotificationMessage(
                recipient_role="admin",
                title="Company updated a candidate",
                message=f"The company {phrase} {payload.get('candidate_name', 'a candidate')} for job {intent.job_id}.",
            )
        ]

    if kind == "notify_admins_assignment_missing":
        return [
            NotificationMessage(
                recipient_role="admin",
                title="Specialist assignment required",
                message=f"Job {intent.job_id} has candidates waiting but no specialist assigned.",
            )
        ]

    raise ValueError(f"unsupported notification intent '{kind}'")


class InAppNotifier:
    """Persists notification rows and pushes them to live subscribers."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        event_bus: EventBus | None = None,
    ):
        self.session_factory = session_factory
        self.event_bus = event_bus or get_event_bus()

    def deliver(self, intent: SideEffectIntent) -> None:
        with self.session_factory() as session:
            repo = Repository(session)
            messages = build_messages(intent, repo.get_assignment(intent.job_id))
            for item in messages:
                row = repo.create_notification(
                    recipient_role=item.recipient_role,
                    recipient_user_id=item.recipient_user_id,
                    recipient_email=item.recipient_email,
                    kind=intent.kind,
                    title=item.title,
                    message=item.message,
                    application_id=intent.application_id,
                    payload_json=dict(intent.payload),
                )
                self.event_bus.publish(
                    intent.application_id,
                    {
                        "notification_id": row.id,
                        "kind": row.kind,
                        "recipient_role": row.recipient_role,
                        "recipient_user_id": row.recipient_user_id,
                        "title": row.title,
                        "message": row.message,
                        "created_at": row.created_at.isoformat() if row.created_at else None,
                    },
                )
        logger.debug("Delivered %s notification(s) for intent %s", len(messages), intent.kind)
