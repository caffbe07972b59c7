from datetime import UTC, date, datetime

from talentflow.core.events import EventBus
from talentflow.core.handlers import build_default_dispatcher
from talentflow.core.lifecycle import ApplicationLifecycle
from talentflow.db.session import SessionLocal
from talentflow.types import CandidateIdentity, TransitionFields


def _dispatcher(settings, bus: EventBus | None = None):
    return build_default_dispatcher(
        settings,
        session_factory=SessionLocal,
        event_bus=bus or EventBus(),
        clock=lambda: datetime(2026, 3, 1, 9, 0, tzinfo=UTC),
    )


def test_sent_to_company_notifies_and_schedules_follow_up(db, repo, settings, staffed_job, make_application) -> None:
    application = make_application("evaluating")
    lifecycle = ApplicationLifecycle(db, settings=settings, dispatcher=_dispatcher(settings))

    outcome = lifecycle.request_transition(application.id, "specialist", 22, "sent_to_company")
    report = lifecycle.dispatch(outcome.intents)

    assert report.ok
    company_inbox = repo.list_notifications(recipient_role="company", recipient_user_id=33)
    candidate_inbox = repo.list_notifications(recipient_role="candidate", recipient_user_id=44)
    assert [item.kind for item in company_inbox] == ["notify_company_new_candidate"]
    assert "Enviado a empresa" in candidate_inbox[0].title
    assert repo.get_assignment(7).follow_up_date.date() == date(2026, 4, 15)

    history = repo.list_transitions(application.id)
    assert [(entry.from_status, entry.to_status) for entry in history] == [("evaluating", "sent_to_company")]
    assert history[0].actor_role == "specialist"


def test_missing_specialist_alerts_admins(db, repo, settings, make_application) -> None:
    repo.upsert_assignment(7, {"recruiter_id": 11})
    application = make_application("reviewing")
    lifecycle = ApplicationLifecycle(db, settings=settings, dispatcher=_dispatcher(settings))

    outcome = lifecycle.request_transition(application.id, "recruiter", 11, "sent_to_specialist")
    lifecycle.dispatch(outcome.intents)

    admin_inbox = repo.list_notifications(recipient_role="admin")
    assert [item.kind for item in admin_inbox] == ["notify_admins_assignment_missing"]
    assert repo.list_notifications(recipient_role="specialist") == []
    assert repo.list_transitions(application.id)[0].warnings_json == ["needs_assignment"]


def test_company_acceptance_can_close_job(db, repo, settings, staffed_job, make_application) -> None:
    application = make_application("interviewed")
    lifecycle = ApplicationLifecycle(db, settings=settings, dispatcher=_dispatcher(settings))

    outcome = lifecycle.request_transition(
        application.id, "company", 33, "accepted", TransitionFields(close_job=True)
    )
    lifecycle.dispatch(outcome.intents)

    assignment = repo.get_assignment(7)
    assert assignment.closed_at is not None
    assert assignment.closed_reason == "success"
    decisions = repo.list_notifications(recipient_role="admin")
    assert "accepted for hiring" in decisions[0].message


def test_notifier_failure_does_not_undo_transition(db, repo, settings, staffed_job, make_application, monkeypatch) -> None:
    def broken(intent, assignment):
        raise ConnectionError("mail relay down")

    monkeypatch.setattr("talentflow.core.notifier.build_messages", broken)
    application = make_application("reviewing")
    lifecycle = ApplicationLifecycle(db, settings=settings, dispatcher=_dispatcher(settings))

    outcome = lifecycle.request_transition(application.id, "recruiter", 11, "sent_to_specialist")
    report = lifecycle.dispatch(outcome.intents)

    assert not report.ok
    assert {intent.kind for intent in report.failed} == {
        "notify_candidate_status_changed",
        "notify_specialist_new_candidate",
    }
    assert repo.get_application(application.id).status == "sent_to_specialist"
    assert len(repo.list_transitions(application.id)) == 1


def test_submission_broadcasts_to_admins(db, repo, settings) -> None:
    lifecycle = ApplicationLifecycle(db, settings=settings, dispatcher=_dispatcher(settings))
    result = lifecycle.submit_application(
        job_id=7,
        candidate=CandidateIdentity(name="Ana Gomez", email="ana@example.com"),
        candidate_user_id=44,
    )
    lifecycle.dispatch(result.intents)

    inbox = repo.list_notifications(recipient_role="admin", application_id=result.application.id)
    assert inbox[0].title == "New application"
    assert "Ana Gomez" in inbox[0].message
