from __future__ import annotations  # Interview session domain models

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, Field, PlainSerializer, StringConstraints


def format_timestamp(value: datetime) -> str:  # Fixed-width UTC ISO timestamp, sortable as text
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


UtcTimestamp = Annotated[datetime, PlainSerializer(format_timestamp, return_type=str, when_used="json")]
NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Category(str, Enum):
    DSA = "DSA"
    WEB_DEVELOPMENT = "Web Development"
    HR = "HR"
    SYSTEM_DESIGN = "System Design"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Question(BaseModel):  # Materialized interview question
    id: str
    text: NonBlank
    expected_points: List[str] = Field(default_factory=list)


class KeyPoint(BaseModel):  # Expected-content judgment attached to an answer
    text: NonBlank
    met: bool


class EvaluatedAnswer(BaseModel):  # Stored evaluation of one answered question
    question_id: str
    question_text: str
    answer: str
    feedback: str
    score: int = Field(ge=0, le=100)
    key_points: List[KeyPoint] = Field(default_factory=list)
    degraded: bool = False
    evaluated_at: UtcTimestamp


class InterviewSession(BaseModel):
    """Persistent record of one practice attempt.

    ``questions`` is filled once on first read. ``answers`` is keyed by question
    id. The aggregate fields are only meaningful once ``status`` is
    ``completed``.
    """

    id: str
    user_id: str
    category: Category
    difficulty: Difficulty
    question_count: int = Field(ge=1)
    status: SessionStatus = SessionStatus.ACTIVE
    created_at: UtcTimestamp
    questions: List[Question] = Field(default_factory=list)
    answers: Dict[str, EvaluatedAnswer] = Field(default_factory=dict)
    overall_score: Optional[int] = None
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    elapsed_seconds: Optional[int] = None
    duration: Optional[str] = None
    completed_at: Optional[UtcTimestamp] = None
    cancelled_at: Optional[UtcTimestamp] = None

    def question(self, question_id: str) -> Optional[Question]:
        return next((item for item in self.questions if item.id == question_id), None)

    def ordered_answers(self) -> List[EvaluatedAnswer]:  # Answers in materialized question order
        ordered = [self.answers[item.id] for item in self.questions if item.id in self.answers]
        known = {item.id for item in self.questions}
        ordered.extend(answer for key, answer in self.answers.items() if key not in known)
        return ordered


class QuestionSheet(BaseModel):  # Payload returned when a session is opened
    category: Category
    difficulty: Difficulty
    questions: List[Question]
    total_questions: int
    duration_minutes: int
    status: SessionStatus


class AnswerFeedback(BaseModel):  # Evaluation returned to the caller after answering
    feedback: str
    score: int = Field(ge=0, le=100)
    key_points: List[KeyPoint] = Field(default_factory=list)
    degraded: bool = False


class SessionSummary(BaseModel):  # Dashboard history entry
    id: str
    category: Category
    difficulty: Difficulty
    status: SessionStatus
    created_at: UtcTimestamp
    score: Optional[int] = None
    question_count: int
    duration: Optional[str] = None


class QuestionResult(BaseModel):
    id: str
    text: str
    user_answer: str
    feedback: str
    score: int
    key_points: List[KeyPoint] = Field(default_factory=list)


class InterviewResult(BaseModel):  # Completed session results view
    id: str
    category: Category
    difficulty: Difficulty
    date: UtcTimestamp
    completed_at: Optional[UtcTimestamp] = None
    duration: str
    overall_score: int
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    total_questions: int
    questions: List[QuestionResult] = Field(default_factory=list)


class Recommendation(BaseModel):  # Derived practice suggestion, never persisted
    id: str
    category: str
    area: str
    description: str
    average_score: Optional[float] = None
    session_count: int = 0


__all__ = [
    "AnswerFeedback",
    "Category",
    "Difficulty",
    "EvaluatedAnswer",
    "InterviewResult",
    "InterviewSession",
    "KeyPoint",
    "Question",
    "QuestionResult",
    "QuestionSheet",
    "Recommendation",
    "SessionStatus",
    "SessionSummary",
    "UtcTimestamp",
    "format_timestamp",
]
