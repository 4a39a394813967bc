"""FastAPI routes for interview sessions, recommendations and scheduling."""
from __future__ import annotations

import re
from typing import List

from fastapi import APIRouter, Depends, Response

from api.dependencies import Services, get_caller, get_services
from api.schemas import (
    AnswerReq,
    CompleteReq,
    CompleteResp,
    CreateInterviewReq,
    CreateInterviewResp,
    ErrorResp,
    MessageResp,
    ScheduleReq,
    ScheduledItem,
)
from identity import Caller
from interview_session import (
    AnswerFeedback,
    InterviewResult,
    QuestionSheet,
    Recommendation,
    SessionSummary,
)
from session_reports import render_report


_ERROR_RESPONSES = {
    status: {"model": ErrorResp}
    for status in (400, 401, 403, 404, 409, 502)
}

router = APIRouter(prefix="/api", responses=_ERROR_RESPONSES)


def _safe_slug(value: str) -> str:  # Sanitize value for filenames
    slug = re.sub(r"[^A-Za-z0-9_-]+", "-", value).strip("-")
    return slug or "interview"


@router.post("/interviews", response_model=CreateInterviewResp, status_code=201)
def create_interview(
    payload: CreateInterviewReq,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> CreateInterviewResp:
    interview_id = services.sessions.create(
        caller.user_id,
        payload.category,
        payload.difficulty,
        payload.question_count,
    )
    return CreateInterviewResp(interview_id=interview_id)


@router.get("/interviews", response_model=List[SessionSummary])
def list_interviews(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> List[SessionSummary]:
    return services.sessions.list_for_user(caller.user_id)


@router.get("/interviews/{interview_id}", response_model=QuestionSheet)
def open_interview(
    interview_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> QuestionSheet:
    return services.sessions.get_or_materialize_questions(interview_id, caller.user_id)


@router.post("/interviews/{interview_id}/answers", response_model=AnswerFeedback)
def submit_answer(
    interview_id: str,
    payload: AnswerReq,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> AnswerFeedback:
    return services.sessions.evaluate_answer(
        interview_id,
        caller.user_id,
        payload.question_id,
        payload.question_text,
        payload.answer,
        category=payload.category,
        difficulty=payload.difficulty,
    )


@router.post("/interviews/{interview_id}/complete", response_model=CompleteResp)
def complete_interview(
    interview_id: str,
    payload: CompleteReq,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> CompleteResp:
    session = services.sessions.complete(interview_id, caller.user_id, payload.elapsed_seconds)
    return CompleteResp(
        status=session.status,
        overall_score=session.overall_score or 0,
        duration=session.duration or "",
    )


@router.post("/interviews/{interview_id}/cancel", response_model=MessageResp)
def cancel_interview(
    interview_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> MessageResp:
    services.sessions.cancel(interview_id, caller.user_id)
    return MessageResp(message="Interview cancelled.")


@router.get("/interviews/{interview_id}/results", response_model=InterviewResult)
def fetch_results(
    interview_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> InterviewResult:
    return services.sessions.get_result(interview_id, caller.user_id)


@router.get("/interviews/{interview_id}/report.pdf")
def fetch_report_pdf(
    interview_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> Response:
    payload = render_report(services.sessions, interview_id, caller.user_id)
    filename = f"interview-{_safe_slug(interview_id)}.pdf"
    return Response(
        content=payload,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/recommendations", response_model=List[Recommendation])
def fetch_recommendations(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> List[Recommendation]:
    return services.sessions.compute_recommendations(caller.user_id)


@router.get("/schedule", response_model=List[ScheduledItem])
def list_schedule(
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> List[ScheduledItem]:
    return [ScheduledItem.model_validate(item.model_dump()) for item in services.schedule.list(caller.user_id)]


@router.post("/schedule", response_model=ScheduledItem, status_code=201)
def create_schedule(
    payload: ScheduleReq,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> ScheduledItem:
    item = services.schedule.create(caller, payload.category, payload.scheduled_at, payload.notes)
    return ScheduledItem.model_validate(item.model_dump())


@router.delete("/schedule/{item_id}", response_model=MessageResp)
def delete_schedule(
    item_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> MessageResp:
    services.schedule.delete(item_id, caller.user_id)
    return MessageResp(message="Scheduled interview deleted.")


__all__ = ["router"]
