from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncGenerator, Literal

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
)
from fastapi.responses import StreamingResponse
from isbncheck.api.deps import get_engine, get_registry, get_session
from isbncheck.core.config import settings
from isbncheck.domain.mapping import MappingError, auto_detect
from isbncheck.ingestion.csv_import import ParseError, parse_csv
from isbncheck.schemas.run import MatchDetailsOut, RunOut, ValidationResultOut
from isbncheck.schemas.session import ColumnMappingIn, ColumnMappingOut, SessionOut
from isbncheck.services.export import (
    EXPORT_MEDIA_TYPE,
    content_disposition,
    export_bytes,
    export_filename,
)
from isbncheck.services.session import (
    TERMINAL_STATUSES,
    SessionConflict,
    SessionRegistry,
    ValidationRun,
    ValidationSession,
)
from isbncheck.services.validation.engine import ValidationEngine
from isbncheck.services.validation.store import SortField, outcome_filter
from isbncheck.services.validation.types import Outcome, ValidationResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])

EVENT_POLL_SECONDS = 0.25


def _run_out(run: ValidationRun) -> RunOut:
    return RunOut(
        id=run.id,
        status=run.status,
        progress=run.progress,
        processed=run.processed,
        total=run.total,
        counts=run.store.counts(),
        notices=list(run.notices),
        error_message=run.error_message,
        started_at=run.started_at,
        finished_at=run.finished_at,
    )


def _session_out(session: ValidationSession) -> SessionOut:
    rows = session.parsed.rows[: settings.preview_rows]
    return SessionOut(
        id=session.id,
        filename=session.filename,
        encoding=session.parsed.encoding,
        columns=list(session.parsed.columns),
        row_count=len(session.parsed),
        preview=[dict(r) for r in rows],
        mapping=ColumnMappingOut(**session.mapping.as_dict()),
        mapping_confirmed=session.mapping_confirmed,
        run=_run_out(session.run) if session.run is not None else None,
    )


def _result_out(result: ValidationResult) -> ValidationResultOut:
    details = result.match_details
    return ValidationResultOut(
        index=result.index,
        outcome=result.outcome.value,
        verdict=result.outcome.verdict_label,
        original=dict(result.original),
        remote_record=result.remote_record,
        match_details=MatchDetailsOut.model_validate(details) if details else None,
        error_message=result.error_message,
    )


def _require_run(session: ValidationSession) -> ValidationRun:
    if session.run is None:
        raise HTTPException(status_code=404, detail="No validation run for this session")
    return session.run


@router.post("", response_model=SessionOut, status_code=201)
async def create_session(
    file: UploadFile = File(...),
    registry: SessionRegistry = Depends(get_registry),
):
    filename = file.filename or ""
    if not filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only .csv files are accepted")

    content = await file.read()
    try:
        parsed = parse_csv(content, required_columns=settings.required_csv_columns or None)
    except ParseError as e:
        logger.info("rejected upload %s: %s %s", filename, e, e.attempts)
        raise HTTPException(status_code=422, detail=str(e))

    session = registry.create(filename=filename, parsed=parsed, mapping=auto_detect(parsed.columns))
    return _session_out(session)


@router.get("/{session_id}", response_model=SessionOut)
def get_session_detail(session: ValidationSession = Depends(get_session)):
    return _session_out(session)


@router.delete("/{session_id}", status_code=204)
def delete_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
):
    if not registry.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@router.put("/{session_id}/mapping", response_model=SessionOut)
def update_mapping(
    payload: ColumnMappingIn,
    session: ValidationSession = Depends(get_session),
):
    try:
        session.update_mapping(**payload.model_dump())
    except SessionConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MappingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _session_out(session)


@router.post("/{session_id}/mapping/confirm", response_model=SessionOut)
def confirm_mapping(session: ValidationSession = Depends(get_session)):
    try:
        session.confirm_mapping(require_title=settings.require_title_mapping)
    except MappingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _session_out(session)


@router.post("/{session_id}/run", response_model=RunOut, status_code=202)
async def start_run(
    background_tasks: BackgroundTasks,
    session: ValidationSession = Depends(get_session),
    engine: ValidationEngine = Depends(get_engine),
):
    try:
        run = session.start_run()
    except SessionConflict as e:
        raise HTTPException(status_code=409, detail=str(e))

    background_tasks.add_task(run.execute, session, engine)
    logger.info("session %s: queued run %s (%d rows)", session.id, run.id, run.total)
    return _run_out(run)


@router.get("/{session_id}/run", response_model=RunOut)
def get_run(session: ValidationSession = Depends(get_session)):
    return _run_out(_require_run(session))


@router.post("/{session_id}/run/cancel", response_model=RunOut)
def cancel_run(session: ValidationSession = Depends(get_session)):
    run = _require_run(session)
    run.cancel()
    return _run_out(run)


@router.get("/{session_id}/run/results", response_model=list[ValidationResultOut])
def list_results(
    sort: SortField | None = Query(None),
    direction: Literal["asc", "desc"] | None = Query(None),
    outcome: list[Outcome] = Query(default=[]),
    session: ValidationSession = Depends(get_session),
):
    store = _require_run(session).store
    view = store.filtered_view(outcome_filter(outcome), store.sorted_view(sort, direction))
    return [_result_out(r) for r in view]


@router.get("/{session_id}/run/export")
def export_results(session: ValidationSession = Depends(get_session)):
    run = session.run
    if run is None or not run.results:
        raise HTTPException(status_code=409, detail="No validation results to export")

    return Response(
        content=export_bytes(run.store),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(export_filename())},
    )


@router.get("/{session_id}/run/events")
async def stream_run_events(
    request: Request,
    session: ValidationSession = Depends(get_session),
) -> StreamingResponse:
    run = _require_run(session)

    async def event_generator() -> AsyncGenerator[str, None]:
        sent = 0
        while True:
            while sent < len(run.events):
                event = run.events[sent]
                sent += 1
                yield f"data: {json.dumps(event.as_dict(), ensure_ascii=False)}\n\n"
                if event.type in TERMINAL_STATUSES:
                    return
            if await request.is_disconnected():
                return
            await asyncio.sleep(EVENT_POLL_SECONDS)

    return StreamingResponse(event_generator(), media_type="text/event-stream")
