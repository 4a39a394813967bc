"""Session Lifecycle Manager: the single owner of interview session state transitions."""
from __future__ import annotations

import logging
import math
import re
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from config.settings import Settings, settings as default_settings
from errors import Forbidden, InvalidArgument, InvalidState, NotFound, UpstreamError
from llm_gateway import LlmGatewayError
from observability import log_event
from storage import DocumentStore

from .generation import (
    EVALUATION_KEY,
    QUESTIONS_KEY,
    AnswerEvaluation,
    QuestionSet,
    TextGenerator,
    build_evaluation_task,
    build_question_task,
)
from .models import (
    AnswerFeedback,
    Category,
    Difficulty,
    EvaluatedAnswer,
    InterviewResult,
    InterviewSession,
    Question,
    QuestionResult,
    QuestionSheet,
    Recommendation,
    SessionStatus,
    SessionSummary,
    format_timestamp,
)
from .scoring import (
    build_recommendations,
    duration_minutes,
    format_duration,
    overall_score,
    summarize_performance,
)


logger = logging.getLogger(__name__)

COLLECTION = "interviews"
DEGRADED_FEEDBACK = (
    "Automated feedback is temporarily unavailable. Your answer has been saved "
    "and given a neutral score."
)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_LOCK_STRIPES = 64
_COMPLETE_ATTEMPTS = 3

E = TypeVar("E", bound=Enum)
T = TypeVar("T", bound=BaseModel)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_enum(enum_type: Type[E], value: Any, field: str) -> E:  # Case-insensitive enum lookup
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str) and value.strip():
        wanted = value.strip().casefold()
        for member in enum_type:
            if member.value.casefold() == wanted:
                return member
    allowed = ", ".join(member.value for member in enum_type)
    raise InvalidArgument(f"{field} must be one of: {allowed}.")


class SessionLifecycleManager:
    """Create, materialize, evaluate, complete and cancel interview sessions.

    Every session operation checks, in order, that the session exists
    (``NotFound``), that the caller owns it (``Forbidden``) and that its status
    allows the operation (``InvalidState``) before the generator or the store is
    written to. Writes are guarded on the state they were derived from, so a
    transition that lost a race fails with ``InvalidState`` instead of
    overwriting a terminal status. Concurrent answers to different questions
    merge; concurrent answers to the same question are last-write-wins.
    """

    def __init__(
        self,
        store: DocumentStore,
        generator: TextGenerator,
        *,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._store = store
        self._generator = generator
        self._settings = settings or default_settings
        self._clock = clock or _utcnow
        self._new_id = id_factory or (lambda: uuid4().hex)
        self._materialize_locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def create(self, owner_id: str, category: Any, difficulty: Any, question_count: Any) -> str:
        if not isinstance(owner_id, str) or not owner_id.strip():
            raise InvalidArgument("owner id is required.")
        parsed_category = _parse_enum(Category, category, "category")
        parsed_difficulty = _parse_enum(Difficulty, difficulty, "difficulty")
        limit = self._settings.MAX_QUESTION_COUNT
        if (
            isinstance(question_count, bool)
            or not isinstance(question_count, int)
            or not 1 <= question_count <= limit
        ):
            raise InvalidArgument(f"question count must be an integer between 1 and {limit}.")

        session = InterviewSession(
            id=self._new_id(),
            user_id=owner_id,
            category=parsed_category,
            difficulty=parsed_difficulty,
            question_count=question_count,
            status=SessionStatus.ACTIVE,
            created_at=self._now(),
        )
        self._store.set(COLLECTION, session.id, session.model_dump(mode="json"))
        log_event(
            "session_created",
            session.id,
            user_id=owner_id,
            category=parsed_category.value,
            difficulty=parsed_difficulty.value,
            count=question_count,
        )
        return session.id

    def get_or_materialize_questions(self, session_id: str, caller_id: str) -> QuestionSheet:
        viewable = (SessionStatus.ACTIVE, SessionStatus.COMPLETED)
        session = self._guarded(session_id, caller_id, *viewable)
        if not session.questions:
            with self._materialize_locks[hash(session.id) % _LOCK_STRIPES]:
                session = self._guarded(session_id, caller_id, *viewable)
                if not session.questions:
                    session = self._store_questions(session, caller_id, self._materialize(session))
        return QuestionSheet(
            category=session.category,
            difficulty=session.difficulty,
            questions=session.questions,
            total_questions=len(session.questions),
            duration_minutes=duration_minutes(len(session.questions), self._settings.MINUTES_PER_QUESTION),
            status=session.status,
        )

    def _materialize(self, session: InterviewSession) -> List[Question]:
        task = build_question_task(session.category, session.difficulty, session.question_count)
        try:
            generated = self._ask(QUESTIONS_KEY, task, QuestionSet)
        except LlmGatewayError as exc:
            logger.error("Question generation failed for session %s: %s", session.id, exc)
            raise UpstreamError("Question generation failed. Please try again.") from exc

        if len(generated.questions) < session.question_count:
            logger.error(
                "Question generation for session %s returned %d of %d questions",
                session.id,
                len(generated.questions),
                session.question_count,
            )
            raise UpstreamError("Question generation returned too few questions. Please try again.")

        seen: set[str] = set()
        questions: List[Question] = []
        for item in generated.questions[: session.question_count]:
            question_id = (item.id or "").strip()
            if not _SAFE_ID.match(question_id) or question_id in seen:
                question_id = self._fresh_question_id(seen)
            seen.add(question_id)
            points = [point.strip() for point in item.expected_points if point.strip()]
            questions.append(Question(id=question_id, text=item.text, expected_points=points))
        return questions

    def _store_questions(self, session: InterviewSession, caller_id: str, questions: List[Question]) -> InterviewSession:
        """Persist ``questions`` only if no other writer materialized the session first."""

        payload = [item.model_dump(mode="json") for item in questions]
        if self._update(session.id, {"questions": payload}, expected={"questions": []}):
            log_event("questions_materialized", session.id, user_id=caller_id, count=len(questions))
            return session.model_copy(update={"questions": questions})

        logger.info("Questions for session %s were stored by another request; using the stored set", session.id)
        stored = self._guarded(session.id, caller_id, SessionStatus.ACTIVE, SessionStatus.COMPLETED)
        if not stored.questions:
            raise UpstreamError("Interview questions could not be stored. Please try again.")
        return stored

    def _fresh_question_id(self, taken: set[str]) -> str:
        while True:
            candidate = uuid4().hex[:12]
            if candidate not in taken:
                return candidate

    def evaluate_answer(
        self,
        session_id: str,
        caller_id: str,
        question_id: str,
        question_text: Optional[str],
        answer_text: Optional[str],
        category: Any = None,
        difficulty: Any = None,
    ) -> AnswerFeedback:
        """Score one answer and store it under its question id.

        Generator failures never fail the call: a neutral, flagged evaluation is
        stored and returned so the submitted answer is kept.
        """

        session = self._guarded(session_id, caller_id, SessionStatus.ACTIVE)
        question = session.question(question_id) if isinstance(question_id, str) else None
        if question is None:
            raise InvalidArgument("question id does not belong to this interview session.")
        if answer_text is not None and not isinstance(answer_text, str):
            raise InvalidArgument("answer must be text.")
        context_category = session.category if category is None else _parse_enum(Category, category, "category")
        context_difficulty = (
            session.difficulty if difficulty is None else _parse_enum(Difficulty, difficulty, "difficulty")
        )
        answer = answer_text or ""
        text = (question_text or "").strip() or question.text

        task = build_evaluation_task(text, answer, context_category, context_difficulty)
        try:
            evaluation = self._ask(EVALUATION_KEY, task, AnswerEvaluation)
            feedback = AnswerFeedback(
                feedback=evaluation.feedback,
                score=evaluation.score,
                key_points=evaluation.key_points,
            )
        except LlmGatewayError as exc:
            logger.warning("Answer evaluation degraded for session %s question %s: %s", session.id, question.id, exc)
            feedback = AnswerFeedback(
                feedback=DEGRADED_FEEDBACK,
                score=self._settings.NEUTRAL_SCORE,
                key_points=[],
                degraded=True,
            )
            log_event(
                "answer_evaluation_degraded",
                session.id,
                level=logging.WARNING,
                user_id=caller_id,
                question_id=question.id,
                reason=type(exc).__name__,
            )

        record = EvaluatedAnswer(
            question_id=question.id,
            question_text=text,
            answer=answer,
            feedback=feedback.feedback,
            score=feedback.score,
            key_points=feedback.key_points,
            degraded=feedback.degraded,
            evaluated_at=self._now(),
        )
        answer_field = {f"answers.{question.id}": record.model_dump(mode="json")}
        if not self._update(session.id, answer_field, expected={"status": SessionStatus.ACTIVE.value}):
            raise self._no_longer_active(session.id)
        log_event(
            "answer_evaluated",
            session.id,
            user_id=caller_id,
            question_id=question.id,
            score=record.score,
            degraded=record.degraded,
        )
        return feedback

    def complete(self, session_id: str, caller_id: str, client_elapsed_seconds: Any) -> InterviewSession:
        """Finalize an active session; aggregates are always recomputed from stored answers.

        The completion write only lands if the status and the answers are still
        the ones the aggregate was computed from. An answer stored in between
        triggers a recomputation.
        """

        for _ in range(_COMPLETE_ATTEMPTS):
            document = self._read(session_id)
            session = self._check(document, caller_id, (SessionStatus.ACTIVE,))
            if (
                isinstance(client_elapsed_seconds, bool)
                or not isinstance(client_elapsed_seconds, (int, float))
                or not math.isfinite(client_elapsed_seconds)
                or client_elapsed_seconds < 0
            ):
                raise InvalidArgument("elapsed time must be a non-negative number of seconds.")

            scores = [answer.score for answer in session.ordered_answers()]
            overall = overall_score(scores)
            strengths, improvements = summarize_performance(
                session,
                overall,
                strength_score=self._settings.STRENGTH_SCORE,
                weak_score=self._settings.WEAK_QUESTION_SCORE,
            )
            elapsed = int(client_elapsed_seconds)
            duration = format_duration(elapsed)
            completed_at = self._now()
            applied = self._update(
                session.id,
                {
                    "status": SessionStatus.COMPLETED.value,
                    "overall_score": overall,
                    "strengths": strengths,
                    "improvements": improvements,
                    "elapsed_seconds": elapsed,
                    "duration": duration,
                    "completed_at": format_timestamp(completed_at),
                },
                expected={"status": SessionStatus.ACTIVE.value, "answers": document.get("answers", {})},
            )
            if applied:
                break
            logger.info("Session %s changed while completing; recomputing the aggregate", session.id)
        else:
            raise InvalidState("Interview session kept changing while completing. Please try again.")

        log_event(
            "session_completed",
            session.id,
            user_id=caller_id,
            status=SessionStatus.COMPLETED.value,
            score=overall,
            count=len(scores),
        )
        return session.model_copy(
            update={
                "status": SessionStatus.COMPLETED,
                "overall_score": overall,
                "strengths": strengths,
                "improvements": improvements,
                "elapsed_seconds": elapsed,
                "duration": duration,
                "completed_at": completed_at,
            }
        )

    def cancel(self, session_id: str, caller_id: str) -> None:
        session = self._guarded(session_id, caller_id, SessionStatus.ACTIVE)
        cancelled = self._update(
            session.id,
            {
                "status": SessionStatus.CANCELLED.value,
                "cancelled_at": format_timestamp(self._now()),
            },
            expected={"status": SessionStatus.ACTIVE.value},
        )
        if not cancelled:
            raise self._no_longer_active(session.id)
        log_event("session_cancelled", session.id, user_id=caller_id, status=SessionStatus.CANCELLED.value)

    def list_for_user(self, caller_id: str) -> List[SessionSummary]:
        """Return a fresh snapshot of the caller's sessions, newest first."""

        documents = self._store.query(COLLECTION, {"user_id": caller_id}, order_by="created_at", descending=True)
        summaries: List[SessionSummary] = []
        for document in documents:
            session = self._parse(document)
            completed = session.status == SessionStatus.COMPLETED
            summaries.append(
                SessionSummary(
                    id=session.id,
                    category=session.category,
                    difficulty=session.difficulty,
                    status=session.status,
                    created_at=session.created_at,
                    score=session.overall_score if completed else None,
                    question_count=session.question_count,
                    duration=session.duration,
                )
            )
        return summaries

    def compute_recommendations(self, caller_id: str) -> List[Recommendation]:
        documents = self._store.query(
            COLLECTION,
            {"user_id": caller_id, "status": SessionStatus.COMPLETED.value},
        )
        sessions = [self._parse(document) for document in documents]
        return build_recommendations(sessions, self._settings.RECOMMENDATION_THRESHOLD)

    def get_result(self, session_id: str, caller_id: str) -> InterviewResult:
        session = self._guarded(session_id, caller_id, SessionStatus.COMPLETED)
        questions = [
            QuestionResult(
                id=answer.question_id,
                text=answer.question_text,
                user_answer=answer.answer,
                feedback=answer.feedback,
                score=answer.score,
                key_points=answer.key_points,
            )
            for answer in session.ordered_answers()
        ]
        return InterviewResult(
            id=session.id,
            category=session.category,
            difficulty=session.difficulty,
            date=session.created_at,
            completed_at=session.completed_at,
            duration=session.duration or format_duration(session.elapsed_seconds or 0),
            overall_score=session.overall_score or 0,
            strengths=session.strengths,
            improvements=session.improvements,
            total_questions=len(session.questions) or session.question_count,
            questions=questions,
        )

    def _now(self) -> datetime:
        value = self._clock()
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def _ask(self, target: str, task: str, schema: Type[T]) -> T:  # Parse-or-fail generator boundary
        raw = self._generator.generate(target, task, schema)
        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        try:
            return schema.model_validate(raw)
        except ValidationError as exc:
            raise LlmGatewayError(f"{target} returned an unexpected shape: {exc.error_count()} error(s)") from exc

    def _parse(self, document: Mapping[str, Any]) -> InterviewSession:
        try:
            return InterviewSession.model_validate(document)
        except ValidationError as exc:
            logger.error("Stored interview session %s is unreadable: %s", document.get("id"), exc)
            raise UpstreamError("Stored interview session is unreadable.") from exc

    def _read(self, session_id: str) -> Dict[str, Any]:
        document = self._store.get(COLLECTION, session_id) if isinstance(session_id, str) and session_id else None
        if document is None:
            raise NotFound("Interview session not found.")
        return document

    def _authorize(self, session: InterviewSession, caller_id: str) -> None:
        if session.user_id != caller_id:
            raise Forbidden("You do not have access to this interview session.")

    def _check(
        self, document: Mapping[str, Any], caller_id: str, allowed: Tuple[SessionStatus, ...]
    ) -> InterviewSession:
        session = self._parse(document)
        self._authorize(session, caller_id)
        if session.status not in allowed:
            expected = " or ".join(status.value for status in allowed)
            raise InvalidState(f"Interview session is {session.status.value}; expected {expected}.")
        return session

    def _guarded(self, session_id: str, caller_id: str, *allowed: SessionStatus) -> InterviewSession:
        return self._check(self._read(session_id), caller_id, allowed)

    def _no_longer_active(self, session_id: str) -> InvalidState:  # A guarded write lost to a transition
        document = self._store.get(COLLECTION, session_id) or {}
        status = document.get("status", "gone")
        return InvalidState(f"Interview session is {status}; expected active.")

    def _update(
        self,
        session_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> bool:
        try:
            return self._store.update(COLLECTION, session_id, fields, expected=expected)
        except KeyError as exc:
            raise NotFound("Interview session not found.") from exc


__all__ = ["COLLECTION", "DEGRADED_FEEDBACK", "SessionLifecycleManager"]
