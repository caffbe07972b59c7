from __future__ import annotations

from talentflow.core.catalog import STATUS_CATALOG, StatusCatalog
from talentflow.types import (
    ApplicationSnapshot,
    SideEffectIntent,
    TransitionFields,
    TransitionWarning,
)

COMPANY_DECISIONS: frozenset[str] = frozenset({"company_interested", "interviewed", "rejected", "accepted"})


def _candidate_payload(application: ApplicationSnapshot) -> dict:
    return {
        "candidate_name": application.candidate_name,
        "candidate_email": application.candidate_email,
        "candidate_user_id": application.candidate_user_id,
    }


def intents_for_transition(
    previous: ApplicationSnapshot,
    updated: ApplicationSnapshot,
    *,
    actor_role: str,
    actor_user_id: int,
    fields: TransitionFields,
    warnings: list[TransitionWarning],
    follow_up_days: int,
    catalog: StatusCatalog = STATUS_CATALOG,
) -> list[SideEffectIntent]:
    app_id = updated.id
    job_id = updated.job_id
    target = updated.status

    def intent(kind, **payload) -> SideEffectIntent:
        return SideEffectIntent(kind=kind, application_id=app_id, job_id=job_id, payload=payload)

    intents = [
        intent(
            "audit_transition",
            from_status=previous.status,
            to_status=target,
            actor_role=actor_role,
            actor_user_id=actor_user_id,
            warnings=[warning.code for warning in warnings],
        )
    ]

    previous_label = catalog.label_for(previous.status, "candidate")
    label = catalog.label_for(target, "candidate")
    if previous_label != label:
        intents.append(
            intent(
                "notify_candidate_status_changed",
                previous_label=previous_label,
                label=label,
                color=catalog.color_for(target, "candidate"),
                **_candidate_payload(updated),
            )
        )

    if target == "sent_to_specialist":
        intents.append(intent("notify_specialist_new_candidate", candidate_name=updated.candidate_name))
        intents.append(intent("check_assignment_readiness", required_role="specialist"))

    if target == "sent_to_company":
        intents.append(intent("notify_company_new_candidate", candidate_name=updated.candidate_name))
        intents.append(intent("schedule_company_follow_up", days=follow_up_days))

    if actor_role == "company" and target in COMPANY_DECISIONS:
        intents.append(
            intent(
                "notify_admins_company_decision",
                decision=target,
                candidate_name=updated.candidate_name,
            )
        )

    if target == "accepted" and fields.close_job:
        intents.append(intent("close_job", reason="success"))

    return intents


def intents_for_submission(application: ApplicationSnapshot) -> list[SideEffectIntent]:
    return [
        SideEffectIntent(
            kind="notify_admins_new_application",
            application_id=application.id,
            job_id=application.job_id,
            payload={"status": application.status, **_candidate_payload(application)},
        )
    ]
