from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from talentflow.config import Settings, get_settings
from talentflow.core.catalog import REVIEW_STATUSES, STATUS_CATALOG, StatusCatalog
from talentflow.core.errors import (
    ConcurrentModification,
    InvalidFieldUpdate,
    NotFound,
    TransitionDenied,
    UnknownStatus,
)
from talentflow.core.intents import intents_for_transition
from talentflow.core.transitions import TRANSITION_TABLE, TransitionContext, TransitionTable
from talentflow.core.visibility import ensure_party_to
from talentflow.types import (
    ApplicationSnapshot,
    JobAssignmentView,
    TransitionFields,
    TransitionOutcome,
)

logger = logging.getLogger(__name__)

NOTE_AUTHOR_ROLES: frozenset[str] = frozenset({"recruiter", "specialist", "admin"})


class ApplicationStore(Protocol):
    def get_application(self, application_id: int) -> ApplicationSnapshot | None: ...

    def compare_and_swap_status(
        self,
        application_id: int,
        expected_status: str,
        next_status: str,
        field_updates: dict[str, Any],
    ) -> ApplicationSnapshot: ...

    def find_duplicate_open(self, job_id: int, email: str) -> ApplicationSnapshot | None: ...


class AssignmentOracle(Protocol):
    def is_specialist_linked(self, job_id: int) -> bool: ...

    def get_assignment(self, job_id: int) -> JobAssignmentView | None: ...


def load_application(
    store: ApplicationStore,
    application_id: int,
    catalog: StatusCatalog = STATUS_CATALOG,
) -> ApplicationSnapshot:
    application = store.get_application(application_id)
    if application is None:
        raise NotFound(application_id)

    try:
        catalog.definition_of(application.status)
    except UnknownStatus:
        logger.error(
            "Data integrity violation: application_id=%s holds unknown status %r",
            application_id,
            application.status,
        )
        raise
    return application


class TransitionExecutor:
    def __init__(
        self,
        store: ApplicationStore,
        oracle: AssignmentOracle,
        *,
        settings: Settings | None = None,
        table: TransitionTable | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.oracle = oracle
        self.settings = settings or get_settings()
        self.table = table or TRANSITION_TABLE
        self.catalog = self.table.catalog
        self.clock = clock or (lambda: datetime.now(UTC))

    def execute(
        self,
        application_id: int,
        acting_role: str,
        acting_user_id: int,
        requested_status: str,
        fields: TransitionFields | None = None,
    ) -> TransitionOutcome:
        fields = fields or TransitionFields()
        current = load_application(self.store, application_id, self.catalog)
        self.catalog.definition_of(requested_status)

        if self.settings.enforce_ownership:
            ensure_party_to(current, acting_role, acting_user_id, self.oracle.get_assignment(current.job_id))

        # A status outside the actor's view must not surface, not even in a denial.
        if not self.catalog.is_visible_to(current.status, acting_role):
            raise NotFound(current.id)

        if requested_status == current.status:
            if not fields.is_empty():
                raise InvalidFieldUpdate("Field updates require a status change")
            logger.debug("No-op transition application_id=%s status=%s", current.id, current.status)
            return TransitionOutcome(
                application=current,
                previous_status=current.status,
                status=current.status,
                is_noop=True,
            )

        context = TransitionContext(
            job_id=current.job_id,
            specialist_linked=self.oracle.is_specialist_linked(current.job_id),
            precondition_policy=self.settings.specialist_precondition_policy,
        )
        check = self.table.can_transition(acting_role, current.status, requested_status, context)
        if not check.allowed:
            logger.warning(
                "Transition denied application_id=%s role=%s user_id=%s %s->%s reason=%s",
                current.id,
                acting_role,
                acting_user_id,
                current.status,
                requested_status,
                check.reason,
            )
            raise TransitionDenied(check.reason, check.message)

        updates = self._field_updates(current, acting_role, requested_status, fields)
        try:
            updated = self.store.compare_and_swap_status(
                current.id,
                current.status,
                requested_status,
                updates,
            )
        except ConcurrentModification:
            logger.warning(
                "Lost transition race application_id=%s expected=%s requested=%s",
                current.id,
                current.status,
                requested_status,
            )
            raise

        logger.info(
            "Application %s moved %s->%s by %s:%s",
            updated.id,
            current.status,
            updated.status,
            acting_role,
            acting_user_id,
        )
        intents = intents_for_transition(
            current,
            updated,
            actor_role=acting_role,
            actor_user_id=acting_user_id,
            fields=fields,
            warnings=check.warnings,
            follow_up_days=self.settings.company_follow_up_days,
            catalog=self.catalog,
        )
        return TransitionOutcome(
            application=updated,
            previous_status=current.status,
            status=updated.status,
            warnings=check.warnings,
            intents=intents,
        )

    def _field_updates(
        self,
        current: ApplicationSnapshot,
        acting_role: str,
        requested_status: str,
        fields: TransitionFields,
    ) -> dict[str, Any]:
        now = self.clock()
        updates: dict[str, Any] = {"updated_at": now}

        if requested_status in REVIEW_STATUSES and current.reviewed_at is None:
            updates["reviewed_at"] = now

        notes = current.notes
        if fields.notes is not None:
            if acting_role not in NOTE_AUTHOR_ROLES:
                raise InvalidFieldUpdate(f"Role '{acting_role}' may not edit internal notes")
            notes = fields.notes
            updates["notes"] = notes

        if fields.discard_reason:
            if requested_status != "discarded":
                raise InvalidFieldUpdate("A discard reason is only accepted when discarding")
            line = f"[DISCARDED: {current.candidate_name}] {fields.discard_reason.strip()}"
            updates["notes"] = f"{notes}\n{line}" if notes else line

        if fields.close_job:
            if requested_status != "accepted" or acting_role != "company":
                raise InvalidFieldUpdate("close_job is only accepted when a company accepts a candidate")

        return updates
