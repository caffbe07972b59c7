from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from talentflow.config import Settings, get_settings
from talentflow.core.dispatcher import SideEffectDispatcher
from talentflow.core.events import EventBus
from talentflow.core.notifier import InAppNotifier
from talentflow.db.base import utcnow
from talentflow.db.repositories import Repository
from talentflow.db.session import SessionLocal
from talentflow.types import SideEffectIntent

logger = logging.getLogger(__name__)


class LifecycleHandlers:
    """Non-notification side effects. Each handler opens its own session."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        notifier: InAppNotifier,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.clock = clock

    def audit_transition(self, intent: SideEffectIntent) -> None:
        payload = intent.payload
        with self.session_factory() as session:
            Repository(session).record_transition(
                application_id=intent.application_id,
                from_status=payload["from_status"],
                to_status=payload["to_status"],
                actor_role=payload["actor_role"],
                actor_user_id=payload["actor_user_id"],
                warnings=list(payload.get("warnings", [])),
            )

    def schedule_company_follow_up(self, intent: SideEffectIntent) -> None:
        follow_up = self.clock() + timedelta(days=int(intent.payload["days"]))
        with self.session_factory() as session:
            Repository(session).schedule_follow_up(intent.job_id, follow_up)
        logger.info("Company follow-up for job_id=%s scheduled at %s", intent.job_id, follow_up.isoformat())

    def close_job(self, intent: SideEffectIntent) -> None:
        with self.session_factory() as session:
            Repository(session).close_job(intent.job_id, intent.payload.get("reason", "success"))
        logger.info("Closed job_id=%s after application_id=%s", intent.job_id, intent.application_id)

    def check_assignment_readiness(self, intent: SideEffectIntent) -> None:
        with self.session_factory() as session:
            linked = Repository(session).is_specialist_linked(intent.job_id)
        if linked:
            return

        logger.warning("Job job_id=%s has no specialist assigned", intent.job_id)
        self.notifier.deliver(
            SideEffectIntent(
                kind="notify_admins_assignment_missing",
                application_id=intent.application_id,
                job_id=intent.job_id,
                payload={"required_role": intent.payload.get("required_role", "specialist")},
            )
        )


def build_default_dispatcher(
    settings: Settings | None = None,
    *,
    session_factory: Callable[[], Session] = SessionLocal,
    event_bus: EventBus | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> SideEffectDispatcher:
    settings = settings or get_settings()
    notifier = InAppNotifier(session_factory=session_factory, event_bus=event_bus)
    handlers = LifecycleHandlers(session_factory=session_factory, notifier=notifier, clock=clock)

    dispatcher = SideEffectDispatcher(notifier=notifier)
    dispatcher.register("audit_transition", handlers.audit_transition)
    dispatcher.register("schedule_company_follow_up", handlers.schedule_company_follow_up)
    dispatcher.register("close_job", handlers.close_job)
    dispatcher.register("check_assignment_readiness", handlers.check_assignment_readiness)
    logger.debug("Side effect dispatcher ready for %s", settings.app_env)
    return dispatcher
