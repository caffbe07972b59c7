from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from talentflow.config import Settings, get_settings
from talentflow.core.catalog import STATUS_CATALOG
from talentflow.core.dispatcher import DispatchReport, SideEffectDispatcher
from talentflow.core.errors import (
    ConcurrentModification,
    DuplicateApplication,
    InvalidFieldUpdate,
    NotFound,
)
from talentflow.core.executor import TransitionExecutor, load_application
from talentflow.core.intents import intents_for_submission
from talentflow.core.visibility import ensure_party_to, project
from talentflow.db.repositories import Repository
from talentflow.types import (
    ApplicationSnapshot,
    AuditEntryView,
    CandidateIdentity,
    EvaluationNoteView,
    ProjectedApplication,
    SideEffectIntent,
    TransitionFields,
    TransitionOutcome,
)

logger = logging.getLogger(__name__)

EVALUATOR_ROLES: frozenset[str] = frozenset({"recruiter", "specialist"})


@dataclass(slots=True)
class SubmissionResult:
    application: ApplicationSnapshot
    intents: list[SideEffectIntent] = field(default_factory=list)


class ApplicationLifecycle:
    """Application-level entry points shared by the API and the CLI.

    Side effects are returned as intents. Callers hand them to ``dispatch``
    once the response no longer depends on them.
    """

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        dispatcher: SideEffectDispatcher | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.dispatcher = dispatcher
        self.executor = TransitionExecutor(self.repo, self.repo, settings=self.settings)

    def submit_application(
        self,
        *,
        job_id: int,
        candidate: CandidateIdentity,
        candidate_user_id: int | None = None,
        injected: bool = False,
        cv_reference: str = "",
        cover_letter: str = "",
    ) -> SubmissionResult:
        existing = self.repo.find_duplicate_open(job_id, candidate.email)
        if existing is not None:
            logger.info("Duplicate application job_id=%s existing_id=%s", job_id, existing.id)
            raise DuplicateApplication(job_id, existing.id)

        application = self.repo.create_application(
            job_id=job_id,
            candidate=candidate,
            candidate_user_id=candidate_user_id,
            status="injected_by_admin" if injected else "pending",
            cv_reference=cv_reference,
            cover_letter=cover_letter,
        )
        logger.info(
            "Application %s created for job_id=%s status=%s",
            application.id,
            job_id,
            application.status,
        )
        return SubmissionResult(application=application, intents=intents_for_submission(application))

    def get_application_view(
        self,
        application_id: int,
        viewer_role: str,
        viewer_user_id: int,
    ) -> ProjectedApplication:
        application = load_application(self.repo, application_id, STATUS_CATALOG)
        self._ensure_party(application, viewer_role, viewer_user_id)
        notes = self.repo.list_evaluation_notes(application.id)
        return project(application, viewer_role, notes, catalog=STATUS_CATALOG)

    def request_transition(
        self,
        application_id: int,
        acting_role: str,
        acting_user_id: int,
        requested_status: str,
        fields: TransitionFields | None = None,
    ) -> TransitionOutcome:
        retries = 0
        while True:
            try:
                return self.executor.execute(
                    application_id,
                    acting_role,
                    acting_user_id,
                    requested_status,
                    fields,
                )
            except ConcurrentModification:
                if retries >= self.settings.transition_max_retries:
                    raise
                retries += 1
                logger.info(
                    "Retrying transition application_id=%s retry=%s/%s",
                    application_id,
                    retries,
                    self.settings.transition_max_retries,
                )

    def add_evaluation_note(
        self,
        application_id: int,
        author_role: str,
        author_id: int,
        content: str,
        *,
        is_public: bool = False,
    ) -> EvaluationNoteView:
        application = load_application(self.repo, application_id, STATUS_CATALOG)
        self._ensure_party(application, author_role, author_id)
        if not STATUS_CATALOG.is_visible_to(application.status, author_role):
            raise NotFound(application.id)
        if author_role not in EVALUATOR_ROLES:
            raise InvalidFieldUpdate(f"Role '{author_role}' may not write evaluation notes")

        content = content.strip()
        if not content:
            raise InvalidFieldUpdate("Evaluation note content is required")

        note = self.repo.add_evaluation_note(
            application_id=application.id,
            author_id=author_id,
            author_role=author_role,
            content=content,
            is_public=is_public,
        )
        logger.info("Evaluation note %s added to application %s by %s", note.id, application.id, author_role)
        return note

    def list_history(self, application_id: int, viewer_role: str) -> list[AuditEntryView]:
        if viewer_role != "admin":
            raise NotFound(application_id)
        application = load_application(self.repo, application_id, STATUS_CATALOG)
        return self.repo.list_transitions(application.id)

    def dispatch(self, intents: list[SideEffectIntent]) -> DispatchReport:
        if self.dispatcher is None:
            logger.debug("No dispatcher configured; dropping %s intents", len(intents))
            return DispatchReport(skipped=list(intents))
        return self.dispatcher.dispatch(intents)

    def _ensure_party(self, application: ApplicationSnapshot, role: str, user_id: int) -> None:
        if not self.settings.enforce_ownership:
            return
        ensure_party_to(application, role, user_id, self.repo.get_assignment(application.job_id))
