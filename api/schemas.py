"""Pydantic schemas for the interview practice API."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from interview_session.models import Category, SessionStatus, UtcTimestamp


class CreateInterviewReq(BaseModel):
    category: str
    difficulty: str
    question_count: int


class CreateInterviewResp(BaseModel):
    interview_id: str
    message: str = "Interview created."


class AnswerReq(BaseModel):
    question_id: str
    question_text: Optional[str] = None
    answer: str = ""
    category: Optional[str] = None
    difficulty: Optional[str] = None


class CompleteReq(BaseModel):
    elapsed_seconds: float


class CompleteResp(BaseModel):
    message: str = "Interview completed."
    status: SessionStatus
    overall_score: int
    duration: str


class MessageResp(BaseModel):
    message: str


class ScheduleReq(BaseModel):
    category: str
    scheduled_at: datetime
    notes: Optional[str] = Field(default=None, max_length=1000)


class ScheduledItem(BaseModel):  # Scheduled interview as shown to its owner
    id: str
    category: Category
    scheduled_at: UtcTimestamp
    notes: Optional[str] = None
    created_at: UtcTimestamp


class HealthResp(BaseModel):
    status: Literal["ok"] = "ok"


class ErrorResp(BaseModel):
    kind: str
    detail: str


__all__ = [
    "AnswerReq",
    "CompleteReq",
    "CompleteResp",
    "CreateInterviewReq",
    "CreateInterviewResp",
    "ErrorResp",
    "HealthResp",
    "MessageResp",
    "ScheduleReq",
    "ScheduledItem",
]
