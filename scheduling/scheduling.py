"""Planned future practice sessions with best-effort email confirmation."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError

from errors import Forbidden, InvalidArgument, NotFound, UpstreamError
from identity import Caller
from interview_session.models import Category, UtcTimestamp, format_timestamp
from notifications import Notifier, notify_best_effort
from observability import log_event
from storage import DocumentStore


logger = logging.getLogger(__name__)

COLLECTION = "schedule"
CONFIRMATION_TEMPLATE = "interview_scheduled"
MAX_NOTES_LENGTH = 1000


class ScheduledInterview(BaseModel):  # Planned session, never converted into an interview session
    id: str
    user_id: str
    category: Category
    scheduled_at: UtcTimestamp
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    created_at: UtcTimestamp


def _as_utc(value: datetime) -> datetime:  # Naive datetimes are read as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ScheduleService:  # Owner-scoped create/list/delete of scheduled interviews
    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._new_id = id_factory or (lambda: uuid4().hex)

    def create(
        self,
        caller: Caller,
        category: Any,
        scheduled_at: Any,
        notes: Optional[str] = None,
    ) -> ScheduledInterview:
        """Persist a scheduled interview and try to email a confirmation.

        The confirmation is skipped when the caller has no known email, and a
        delivery failure is logged without failing the call.
        """

        if not isinstance(scheduled_at, datetime):
            raise InvalidArgument("scheduled time must be an ISO 8601 date and time.")
        cleaned_notes = notes.strip() if isinstance(notes, str) and notes.strip() else None
        try:
            item = ScheduledInterview(
                id=self._new_id(),
                user_id=caller.user_id,
                category=category,
                scheduled_at=_as_utc(scheduled_at),
                notes=cleaned_notes,
                created_at=_as_utc(self._clock()),
            )
        except ValidationError as exc:
            fields = ", ".join(sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")}))
            raise InvalidArgument(f"Invalid scheduled interview: {fields or 'payload'}.") from exc

        self._store.set(COLLECTION, item.id, item.model_dump(mode="json"))
        log_event("schedule_created", item.id, user_id=caller.user_id, category=item.category.value)

        notify_best_effort(
            self._notifier,
            caller.email,
            subject=f"Your {item.category.value} practice interview is scheduled",
            template=CONFIRMATION_TEMPLATE,
            fields={
                "category": item.category.value,
                "scheduled_at": format_timestamp(item.scheduled_at),
                "notes": item.notes or "",
            },
            reference=item.id,
        )
        return item

    def list(self, caller_id: str) -> List[ScheduledInterview]:  # Soonest first
        documents = self._store.query(COLLECTION, {"user_id": caller_id}, order_by="scheduled_at")
        return [self._parse(document) for document in documents]

    def delete(self, item_id: str, caller_id: str) -> None:
        document = self._store.get(COLLECTION, item_id) if item_id else None
        if document is None:
            raise NotFound("Scheduled interview not found.")
        item = self._parse(document)
        if item.user_id != caller_id:
            raise Forbidden("You do not have access to this scheduled interview.")
        try:
            self._store.delete(COLLECTION, item.id)
        except KeyError as exc:
            raise NotFound("Scheduled interview not found.") from exc
        log_event("schedule_deleted", item.id, user_id=caller_id)

    def _parse(self, document: Any) -> ScheduledInterview:
        try:
            return ScheduledInterview.model_validate(document)
        except ValidationError as exc:
            logger.error("Stored scheduled interview is unreadable: %s", exc)
            raise UpstreamError("Stored scheduled interview is unreadable.") from exc


__all__ = ["COLLECTION", "CONFIRMATION_TEMPLATE", "ScheduleService", "ScheduledInterview"]
