from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager

import typer
import uvicorn
from pydantic import ValidationError

from talentflow.api.app import create_app
from talentflow.config import get_settings
from talentflow.core.catalog import STATUS_CATALOG
from talentflow.core.errors import LifecycleError
from talentflow.core.handlers import build_default_dispatcher
from talentflow.core.lifecycle import ApplicationLifecycle
from talentflow.db.init import init_database
from talentflow.db.repositories import Repository
from talentflow.db.session import SessionLocal
from talentflow.logging_config import configure_logging
from talentflow.types import CandidateIdentity, TransitionFields

app = typer.Typer(help="Talentflow CLI")
application_app = typer.Typer(help="Submit, view and move applications")
assignment_app = typer.Typer(help="Job assignment commands")

app.add_typer(application_app, name="app")
app.add_typer(assignment_app, name="assignment")

_INITIALIZED = False


@app.callback()
def main(log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL")) -> None:
    configure_logging(log_level)


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@contextmanager
def lifecycle_session() -> Iterator[ApplicationLifecycle]:
    """Yields a lifecycle bound to a fresh session; lifecycle errors exit with code 1."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            yield ApplicationLifecycle(db, dispatcher=build_default_dispatcher())
        except LifecycleError as exc:
            typer.echo(json.dumps(exc.to_dict(), indent=2), err=True)
            raise typer.Exit(code=1) from exc


@app.command("init")
def init_cmd() -> None:
    """Initialize the data directory and database tables."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@application_app.command("submit")
def app_submit(
    job_id: int = typer.Option(..., "--job-id"),
    name: str = typer.Option(..., "--name"),
    email: str = typer.Option(..., "--email"),
    phone: str = typer.Option("", "--phone"),
    candidate_user_id: int | None = typer.Option(None, "--candidate-user-id"),
    injected: bool = typer.Option(False, "--injected", help="Admin injection instead of a candidate application"),
    cv_reference: str = typer.Option("", "--cv"),
) -> None:
    try:
        candidate = CandidateIdentity(name=name, email=email, phone=phone)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    with lifecycle_session() as lifecycle:
        result = lifecycle.submit_application(
            job_id=job_id,
            candidate=candidate,
            candidate_user_id=candidate_user_id,
            injected=injected,
            cv_reference=cv_reference,
        )
        report = lifecycle.dispatch(result.intents)
        _echo(
            {
                "id": result.application.id,
                "job_id": result.application.job_id,
                "status": result.application.status,
                "side_effects_failed": len(report.failed),
            }
        )


@application_app.command("view")
def app_view(
    application_id: int = typer.Argument(...),
    role: str = typer.Option(..., "--role"),
    user_id: int = typer.Option(..., "--user-id"),
) -> None:
    with lifecycle_session() as lifecycle:
        view = lifecycle.get_application_view(application_id, role, user_id)
        _echo(view.model_dump(mode="json"))


@application_app.command("transition")
def app_transition(
    application_id: int = typer.Argument(...),
    status: str = typer.Option(..., "--to"),
    role: str = typer.Option(..., "--role"),
    user_id: int = typer.Option(..., "--user-id"),
    notes: str | None = typer.Option(None, "--notes"),
    discard_reason: str | None = typer.Option(None, "--reason"),
    close_job: bool = typer.Option(False, "--close-job"),
) -> None:
    fields = TransitionFields(notes=notes, discard_reason=discard_reason, close_job=close_job)
    with lifecycle_session() as lifecycle:
        outcome = lifecycle.request_transition(application_id, role, user_id, status, fields)
        report = lifecycle.dispatch(outcome.intents)
        _echo(
            {
                "id": outcome.application.id,
                "previous_status": STATUS_CATALOG.label_for(outcome.previous_status, role),
                "status": STATUS_CATALOG.label_for(outcome.status, role),
                "is_noop": outcome.is_noop,
                "warnings": [warning.model_dump() for warning in outcome.warnings],
                "side_effects_failed": len(report.failed),
            }
        )


@application_app.command("note")
def app_note(
    application_id: int = typer.Argument(...),
    role: str = typer.Option(..., "--role"),
    user_id: int = typer.Option(..., "--user-id"),
    content: str = typer.Option(..., "--content"),
    public: bool = typer.Option(False, "--public"),
) -> None:
    with lifecycle_session() as lifecycle:
        note = lifecycle.add_evaluation_note(application_id, role, user_id, content, is_public=public)
        _echo(note.model_dump(mode="json"))


@application_app.command("history")
def app_history(
    application_id: int = typer.Argument(...),
    role: str = typer.Option("admin", "--role"),
) -> None:
    with lifecycle_session() as lifecycle:
        entries = lifecycle.list_history(application_id, role)
        _echo([entry.model_dump(mode="json") for entry in entries])


@assignment_app.command("set")
def assignment_set(
    job_id: int = typer.Option(..., "--job-id"),
    recruiter_id: int | None = typer.Option(None, "--recruiter-id"),
    specialist_id: int | None = typer.Option(None, "--specialist-id"),
    company_user_id: int | None = typer.Option(None, "--company-user-id"),
) -> None:
    configure_logging()
    ensure_initialized()
    values = {
        key: value
        for key, value in {
            "recruiter_id": recruiter_id,
            "specialist_id": specialist_id,
            "company_user_id": company_user_id,
        }.items()
        if value is not None
    }
    with SessionLocal() as db:
        assignment = Repository(db).upsert_assignment(job_id, values)
        _echo(assignment.model_dump(mode="json"))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)


if __name__ == "__main__":
    app()
