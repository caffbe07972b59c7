import pytest

from talentflow.config import Settings
from talentflow.core.errors import (
    ConcurrentModification,
    InvalidFieldUpdate,
    NotFound,
    TransitionDenied,
    UnknownStatus,
)
from talentflow.core.executor import TransitionExecutor
from talentflow.db.models import Application
from talentflow.db.repositories import Repository
from talentflow.db.session import SessionLocal
from talentflow.types import TransitionFields


class StaleReadRepository(Repository):
    """Serves a snapshot captured before another writer moved the application."""

    def __init__(self, session, stale):
        super().__init__(session)
        self.stale = stale

    def get_application(self, application_id):
        return self.stale


def _executor(repo: Repository, settings: Settings | None = None) -> TransitionExecutor:
    return TransitionExecutor(repo, repo, settings=settings or Settings(app_env="test"))


def test_recruiter_review_stamps_reviewed_at_once(repo, staffed_job, make_application) -> None:
    application = make_application()
    executor = _executor(repo)

    outcome = executor.execute(application.id, "recruiter", 11, "reviewing")
    assert outcome.status == "reviewing"
    first_review = outcome.application.reviewed_at
    assert first_review is not None

    executor.execute(application.id, "admin", 1, "discarded")
    assert repo.get_application(application.id).reviewed_at == first_review


def test_scenario_recruiter_cannot_jump_to_company(repo, staffed_job, make_application) -> None:
    application = make_application()
    with pytest.raises(TransitionDenied) as exc_info:
        _executor(repo).execute(application.id, "recruiter", 11, "sent_to_company")
    assert exc_info.value.reason == "not_an_allowed_edge"
    assert repo.get_application(application.id).status == "pending"


def test_missing_specialist_warns_and_commits(repo, make_application) -> None:
    repo.upsert_assignment(7, {"recruiter_id": 11})
    application = make_application("reviewing")

    outcome = _executor(repo).execute(application.id, "recruiter", 11, "sent_to_specialist")

    assert outcome.status == "sent_to_specialist"
    assert outcome.needs_assignment
    assert "check_assignment_readiness" in [intent.kind for intent in outcome.intents]


def test_missing_specialist_is_denied_under_block_policy(repo, make_application) -> None:
    repo.upsert_assignment(7, {"recruiter_id": 11})
    application = make_application("reviewing")
    settings = Settings(app_env="test", specialist_precondition_policy="block")

    with pytest.raises(TransitionDenied) as exc_info:
        _executor(repo, settings).execute(application.id, "recruiter", 11, "sent_to_specialist")

    assert exc_info.value.reason == "precondition_failed"
    assert repo.get_application(application.id).status == "reviewing"


def test_company_interview_then_regression_denied(repo, staffed_job, make_application) -> None:
    application = make_application("sent_to_company")
    executor = _executor(repo)

    assert executor.execute(application.id, "company", 33, "interviewed").status == "interviewed"
    with pytest.raises(TransitionDenied) as exc_info:
        executor.execute(application.id, "company", 33, "pending")
    assert exc_info.value.reason == "not_an_allowed_edge"


def test_terminal_application_cannot_move(repo, staffed_job, make_application) -> None:
    application = make_application("accepted")
    executor = _executor(repo)

    for role, user_id, target in (
        ("admin", 1, "archived"),
        ("company", 33, "rejected"),
        ("admin", 1, "reviewing"),
    ):
        with pytest.raises(TransitionDenied) as exc_info:
            executor.execute(application.id, role, user_id, target)
        assert exc_info.value.reason == "terminal_state"


def test_same_status_request_is_a_noop(repo, staffed_job, make_application) -> None:
    application = make_application("reviewing")
    before = repo.get_application(application.id)

    outcome = _executor(repo).execute(application.id, "recruiter", 11, "reviewing")

    assert outcome.is_noop
    assert outcome.intents == []
    assert repo.get_application(application.id).updated_at == before.updated_at


def test_noop_with_field_updates_is_rejected(repo, staffed_job, make_application) -> None:
    application = make_application("reviewing")
    with pytest.raises(InvalidFieldUpdate):
        _executor(repo).execute(application.id, "recruiter", 11, "reviewing", TransitionFields(notes="x"))


def test_company_cannot_act_on_upstream_applications(repo, staffed_job, make_application) -> None:
    application = make_application("evaluating")
    with pytest.raises(NotFound):
        _executor(repo).execute(application.id, "company", 33, "rejected")


def test_unassigned_recruiter_gets_not_found(repo, staffed_job, make_application) -> None:
    application = make_application()
    with pytest.raises(NotFound):
        _executor(repo).execute(application.id, "recruiter", 99, "reviewing")


def test_missing_application_is_not_found(repo) -> None:
    with pytest.raises(NotFound):
        _executor(repo).execute(404, "admin", 1, "archived")


def test_unknown_persisted_status_is_rejected(db, repo, staffed_job, make_application, caplog) -> None:
    application = make_application()
    row = db.get(Application, application.id)
    row.status = "on_hold"
    db.commit()

    with pytest.raises(UnknownStatus):
        _executor(repo).execute(application.id, "admin", 1, "archived")
    assert "Data integrity violation" in caplog.text


def test_discard_reason_is_appended_to_notes(repo, staffed_job, make_application) -> None:
    application = make_application()
    outcome = _executor(repo).execute(
        application.id,
        "recruiter",
        11,
        "discarded",
        TransitionFields(notes="Phone screen done", discard_reason="No work permit"),
    )
    assert outcome.application.notes == "Phone screen done\n[DISCARDED: Ana Gomez] No work permit"


def test_discard_reason_requires_discarding(repo, staffed_job, make_application) -> None:
    application = make_application()
    with pytest.raises(InvalidFieldUpdate):
        _executor(repo).execute(
            application.id, "recruiter", 11, "reviewing", TransitionFields(discard_reason="x")
        )
    assert repo.get_application(application.id).status == "pending"


def test_company_may_not_edit_internal_notes(repo, staffed_job, make_application) -> None:
    application = make_application("sent_to_company")
    with pytest.raises(InvalidFieldUpdate):
        _executor(repo).execute(
            application.id, "company", 33, "company_interested", TransitionFields(notes="great")
        )


def test_concurrent_transitions_have_one_winner(staffed_job, make_application) -> None:
    application = make_application("sent_to_company")

    with SessionLocal() as first, SessionLocal() as second:
        stale = Repository(second).get_application(application.id)
        winner = _executor(Repository(first)).execute(application.id, "company", 33, "company_interested")
        assert winner.status == "company_interested"

        loser_repo = StaleReadRepository(second, stale)
        with pytest.raises(ConcurrentModification) as exc_info:
            _executor(loser_repo).execute(application.id, "company", 33, "rejected")
        assert exc_info.value.retryable

    with SessionLocal() as check:
        assert Repository(check).get_application(application.id).status == "company_interested"


def test_candidate_denial_uses_candidate_labels(repo, staffed_job, make_application) -> None:
    application = make_application("evaluating")
    with pytest.raises(TransitionDenied) as exc_info:
        _executor(repo).execute(application.id, "candidate", 44, "accepted")

    assert exc_info.value.reason == "not_an_allowed_edge"
    assert "'En proceso' to 'Aceptado'" in exc_info.value.message
    assert "evaluating" not in exc_info.value.message


def test_candidate_terminal_denial_uses_candidate_label(repo, staffed_job, make_application) -> None:
    application = make_application("discarded")
    with pytest.raises(TransitionDenied) as exc_info:
        _executor(repo).execute(application.id, "candidate", 44, "reviewing")

    assert exc_info.value.reason == "terminal_state"
    assert "No seleccionado" in exc_info.value.message
    assert "discarded" not in exc_info.value.message


def test_recruiter_acting_downstream_gets_not_found(repo, staffed_job, make_application) -> None:
    application = make_application("sent_to_company")
    with pytest.raises(NotFound) as exc_info:
        _executor(repo).execute(application.id, "recruiter", 11, "discarded")

    assert "sent_to_company" not in exc_info.value.message
    assert repo.get_application(application.id).status == "sent_to_company"


def test_specialist_acting_upstream_gets_not_found(repo, staffed_job, make_application) -> None:
    application = make_application("pending")
    with pytest.raises(NotFound):
        _executor(repo).execute(application.id, "specialist", 22, "evaluating")
