from talentflow.core.dispatcher import SideEffectDispatcher
from talentflow.types import SideEffectIntent


def _intent(kind: str) -> SideEffectIntent:
    return SideEffectIntent(kind=kind, application_id=1, job_id=7)


class RecordingNotifier:
    def __init__(self, fail_on: set[str] | None = None):
        self.fail_on = fail_on or set()
        self.delivered: list[str] = []

    def deliver(self, intent: SideEffectIntent) -> None:
        if intent.kind in self.fail_on:
            raise RuntimeError("smtp unavailable")
        self.delivered.append(intent.kind)


def test_notify_intents_go_to_notifier() -> None:
    notifier = RecordingNotifier()
    dispatcher = SideEffectDispatcher(notifier=notifier)

    report = dispatcher.dispatch([_intent("notify_candidate_status_changed"), _intent("notify_company_new_candidate")])

    assert report.ok
    assert notifier.delivered == ["notify_candidate_status_changed", "notify_company_new_candidate"]


def test_failing_handler_is_isolated(caplog) -> None:
    notifier = RecordingNotifier(fail_on={"notify_candidate_status_changed"})
    audited: list[int] = []
    dispatcher = SideEffectDispatcher(
        notifier=notifier,
        handlers={"audit_transition": lambda intent: audited.append(intent.application_id)},
    )

    report = dispatcher.dispatch(
        [
            _intent("audit_transition"),
            _intent("notify_candidate_status_changed"),
            _intent("notify_company_new_candidate"),
        ]
    )

    assert not report.ok
    assert [intent.kind for intent in report.failed] == ["notify_candidate_status_changed"]
    assert audited == [1]
    assert notifier.delivered == ["notify_company_new_candidate"]
    assert "Side effect failed" in caplog.text


def test_intents_without_handler_are_skipped() -> None:
    dispatcher = SideEffectDispatcher()
    report = dispatcher.dispatch([_intent("close_job"), _intent("notify_admins_new_application")])
    assert len(report.skipped) == 2
    assert report.delivered == []


def test_registered_handler_wins_over_notifier() -> None:
    notifier = RecordingNotifier()
    seen: list[str] = []
    dispatcher = SideEffectDispatcher(notifier=notifier)
    dispatcher.register("notify_admins_new_application", lambda intent: seen.append(intent.kind))

    dispatcher.dispatch([_intent("notify_admins_new_application")])

    assert seen == ["notify_admins_new_application"]
    assert notifier.delivered == []
