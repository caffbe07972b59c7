from __future__ import annotations

import asyncio
import contextlib

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from talentflow.api.deps import Identity, get_db, get_dispatcher, get_identity
from talentflow.api.schemas import (
    ApplicationCreateRequest,
    ApplicationCreateResponse,
    AssignmentRequest,
    EvaluationNoteRequest,
    NotificationResponse,
    TransitionRequest,
    TransitionResponse,
)
from talentflow.core.catalog import STATUS_CATALOG
from talentflow.core.dispatcher import SideEffectDispatcher
from talentflow.core.errors import LifecycleError
from talentflow.core.events import get_event_bus
from talentflow.core.lifecycle import ApplicationLifecycle
from talentflow.db.repositories import Repository
from talentflow.db.session import SessionLocal
from talentflow.types import (
    AuditEntryView,
    EvaluationNoteView,
    JobAssignmentView,
    ProjectedApplication,
    TransitionFields,
)

router = APIRouter(prefix="/api", tags=["api"])

SUBMITTER_ROLES = {"candidate", "admin"}


@router.post("/applications", response_model=ApplicationCreateResponse)
def submit_application(
    payload: ApplicationCreateRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
) -> ApplicationCreateResponse:
    if identity.role not in SUBMITTER_ROLES:
        raise HTTPException(status_code=403, detail="Only candidates and admins can submit applications")

    injected = identity.role == "admin"
    result = ApplicationLifecycle(db).submit_application(
        job_id=payload.job_id,
        candidate=payload.candidate,
        candidate_user_id=None if injected else identity.user_id,
        injected=injected,
        cv_reference=payload.cv_reference,
        cover_letter=payload.cover_letter,
    )
    background_tasks.add_task(dispatcher.dispatch, result.intents)
    return ApplicationCreateResponse(
        id=result.application.id,
        job_id=result.application.job_id,
        status=result.application.status,
    )


@router.get("/applications/{application_id}", response_model=ProjectedApplication)
def get_application(
    application_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> ProjectedApplication:
    return ApplicationLifecycle(db).get_application_view(application_id, identity.role, identity.user_id)


@router.post("/applications/{application_id}/transitions", response_model=TransitionResponse)
def request_transition(
    application_id: int,
    payload: TransitionRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
) -> TransitionResponse:
    outcome = ApplicationLifecycle(db).request_transition(
        application_id,
        identity.role,
        identity.user_id,
        payload.status,
        TransitionFields(
            notes=payload.notes,
            discard_reason=payload.discard_reason,
            close_job=payload.close_job,
        ),
    )
    if outcome.intents:
        background_tasks.add_task(dispatcher.dispatch, outcome.intents)

    status = STATUS_CATALOG.label_for(outcome.status, identity.role)
    previous = STATUS_CATALOG.label_for(outcome.previous_status, identity.role)

    return TransitionResponse(
        id=outcome.application.id,
        previous_status=previous,
        status=status,
        is_noop=outcome.is_noop,
        needs_assignment=outcome.needs_assignment,
        warnings=outcome.warnings,
    )


@router.post("/applications/{application_id}/notes", response_model=EvaluationNoteView)
def add_evaluation_note(
    application_id: int,
    payload: EvaluationNoteRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> EvaluationNoteView:
    return ApplicationLifecycle(db).add_evaluation_note(
        application_id,
        identity.role,
        identity.user_id,
        payload.content,
        is_public=payload.is_public,
    )


@router.get("/applications/{application_id}/history", response_model=list[AuditEntryView])
def list_history(
    application_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[AuditEntryView]:
    return ApplicationLifecycle(db).list_history(application_id, identity.role)


@router.put("/jobs/{job_id}/assignment", response_model=JobAssignmentView)
def set_assignment(
    job_id: int,
    payload: AssignmentRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> JobAssignmentView:
    if identity.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can assign jobs")
    return Repository(db).upsert_assignment(job_id, payload.model_dump(exclude_unset=True))


@router.get("/notifications", response_model=list[NotificationResponse])
def list_notifications(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[NotificationResponse]:
    rows = Repository(db).list_notifications(
        recipient_role=identity.role,
        recipient_user_id=None if identity.role == "admin" else identity.user_id,
    )
    return [NotificationResponse.model_validate(row, from_attributes=True) for row in rows]


@router.websocket("/applications/{application_id}/stream")
async def stream_application_events(
    websocket: WebSocket,
    application_id: int,
    role: str,
    user_id: int,
) -> None:
    with SessionLocal() as session:
        try:
            ApplicationLifecycle(session).get_application_view(application_id, role, user_id)
        except LifecycleError:
            await websocket.close(code=4404)
            return

    await websocket.accept()
    stream = get_event_bus().subscribe(application_id)
    client_message = asyncio.ensure_future(websocket.receive())
    next_event: asyncio.Future | None = None
    try:
        while True:
            if next_event is None:
                next_event = asyncio.ensure_future(anext(stream))
            done, _ = await asyncio.wait({next_event, client_message}, return_when=asyncio.FIRST_COMPLETED)

            if client_message in done:
                if client_message.result().get("type") == "websocket.disconnect":
                    return
                client_message = asyncio.ensure_future(websocket.receive())

            if next_event in done:
                event = next_event.result()
                next_event = None
                if _is_recipient(event, role, user_id):
                    await websocket.send_json(event)
    except WebSocketDisconnect:
        return
    finally:
        client_message.cancel()
        if next_event is not None and not next_event.done():
            next_event.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await next_event
        await stream.aclose()


def _is_recipient(event: dict, role: str, user_id: int) -> bool:
    if event.get("recipient_role") != role:
        return False
    recipient = event.get("recipient_user_id")
    return recipient is None or role == "admin" or recipient == user_id
