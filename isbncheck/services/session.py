from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from isbncheck.domain.mapping import MappingError, confirm
from isbncheck.domain.types import ColumnMapping, ParsedCsv
from isbncheck.services.validation.engine import ValidationEngine
from isbncheck.services.validation.store import ResultStore
from isbncheck.services.validation.types import ValidationResult

logger = logging.getLogger(__name__)

RunStatus = Literal["queued", "running", "succeeded", "cancelled", "failed"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"succeeded", "cancelled", "failed"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class SessionConflict(Exception):
    """The session is not in a state that allows the requested change."""


@dataclass
class RunEvent:
    type: str
    payload: dict[str, Any]
    ts: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.type, "ts": self.ts.isoformat(), **self.payload}


@dataclass
class ValidationRun:
    mapping: ColumnMapping
    total: int
    id: str = field(default_factory=_new_id)
    status: RunStatus = "queued"
    progress: int = 0
    results: list[ValidationResult] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    events: list[RunEvent] = field(default_factory=list)
    error_message: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    @property
    def store(self) -> ResultStore:
        return ResultStore(self.results, self.mapping)

    def emit(self, type_: str, **payload: Any) -> None:
        self.events.append(RunEvent(type=type_, payload={"run_id": self.id, **payload}))

    def cancel(self) -> None:
        if self.is_active:
            self.cancel_event.set()

    def _on_progress(self, percent: int, done: int, total: int) -> None:
        self.progress = percent
        self.emit("progress", progress=percent, processed=done, total=total)

    def _on_notice(self, result: ValidationResult) -> None:
        message = f"row {result.index + 1}: {result.error_message}"
        self.notices.append(message)
        self.emit("notice", row=result.index, message=message)

    def _finish(self, status: RunStatus, error_message: str | None = None) -> None:
        self.status = status
        self.error_message = error_message
        self.finished_at = utcnow()
        payload: dict[str, Any] = {"processed": self.processed, "total": self.total}
        if error_message:
            payload["error_message"] = error_message
        self.emit(status, **payload)

    async def execute(self, session: ValidationSession, engine: ValidationEngine) -> None:
        self.status = "running"
        self.started_at = utcnow()
        try:
            report = await engine.run(
                session.parsed.rows,
                self.mapping,
                on_result=self.results.append,
                on_progress=self._on_progress,
                on_notice=self._on_notice,
                cancel_event=self.cancel_event,
            )
        except Exception as e:
            logger.exception("validation run %s failed", self.id)
            self._finish("failed", str(e))
            return
        self._finish("cancelled" if report.cancelled else "succeeded")
        logger.info(
            "validation run %s %s: %d/%d rows, counts=%s",
            self.id,
            self.status,
            self.processed,
            self.total,
            self.store.counts(),
        )


@dataclass
class ValidationSession:
    """One uploaded CSV and everything derived from it.

    Re-uploading creates a new session; a new run replaces the previous
    run's results wholesale.
    """

    filename: str
    parsed: ParsedCsv
    mapping: ColumnMapping
    id: str = field(default_factory=_new_id)
    mapping_confirmed: bool = False
    run: ValidationRun | None = None
    created_at: datetime = field(default_factory=utcnow)

    def update_mapping(self, **columns: str | None) -> ColumnMapping:
        if self.mapping_confirmed:
            raise SessionConflict("mapping is already confirmed")
        mapping = self.mapping
        unknown = []
        for name, column in columns.items():
            if column is None:
                continue
            if column and column not in self.parsed.columns:
                unknown.append(column)
                continue
            mapping = mapping.with_field(name, column)  # type: ignore[arg-type]
        if unknown:
            raise MappingError(
                f"mapped columns are not in the CSV header: {', '.join(unknown)}",
                unknown=unknown,
            )
        self.mapping = mapping
        return mapping

    def confirm_mapping(self, *, require_title: bool = True) -> ColumnMapping:
        self.mapping = confirm(self.mapping, self.parsed.columns, require_title=require_title)
        self.mapping_confirmed = True
        return self.mapping

    def start_run(self) -> ValidationRun:
        if not self.mapping_confirmed:
            raise SessionConflict("mapping must be confirmed before validation")
        if self.run is not None and self.run.is_active:
            raise SessionConflict("a validation run is already in progress")
        self.run = ValidationRun(mapping=self.mapping, total=len(self.parsed))
        return self.run


class SessionRegistry:
    """In-process session storage; nothing outlives the process."""

    def __init__(self) -> None:
        self._sessions: dict[str, ValidationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(
        self, *, filename: str, parsed: ParsedCsv, mapping: ColumnMapping
    ) -> ValidationSession:
        session = ValidationSession(filename=filename, parsed=parsed, mapping=mapping)
        self._sessions[session.id] = session
        logger.info(
            "session %s created from %s (%d rows, encoding=%s)",
            session.id,
            filename,
            len(parsed),
            parsed.encoding,
        )
        return session

    def get(self, session_id: str) -> ValidationSession | None:
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        if session.run is not None:
            session.run.cancel()
        return True
