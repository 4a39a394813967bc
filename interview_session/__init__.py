from __future__ import annotations  # Re-export interview_session public API

from .generation import (  # noqa: F401
    EVALUATION_KEY,
    QUESTIONS_KEY,
    AnswerEvaluation,
    QuestionSet,
    RoutedTextGenerator,
    TextGenerator,
)
from .manager import COLLECTION, SessionLifecycleManager
from .models import (  # noqa: F401
    AnswerFeedback,
    Category,
    Difficulty,
    EvaluatedAnswer,
    InterviewResult,
    InterviewSession,
    KeyPoint,
    Question,
    QuestionResult,
    QuestionSheet,
    Recommendation,
    SessionStatus,
    SessionSummary,
)

__all__ = [
    "AnswerEvaluation",
    "AnswerFeedback",
    "COLLECTION",
    "Category",
    "Difficulty",
    "EVALUATION_KEY",
    "EvaluatedAnswer",
    "InterviewResult",
    "InterviewSession",
    "KeyPoint",
    "QUESTIONS_KEY",
    "Question",
    "QuestionResult",
    "QuestionSet",
    "QuestionSheet",
    "Recommendation",
    "RoutedTextGenerator",
    "SessionLifecycleManager",
    "SessionStatus",
    "SessionSummary",
    "TextGenerator",
]
