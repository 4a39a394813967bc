from __future__ import annotations

from datetime import datetime, timezone

import pytest

from interview_session.models import (
    Category,
    Difficulty,
    EvaluatedAnswer,
    InterviewSession,
    KeyPoint,
    Question,
    SessionStatus,
)
from interview_session.scoring import (
    build_recommendations,
    duration_minutes,
    format_duration,
    overall_score,
    round_half_up,
    summarize_performance,
)


NOW = datetime(2025, 5, 1, tzinfo=timezone.utc)


def _session(category="DSA", difficulty="Easy", scores=(), questions=3, status=SessionStatus.COMPLETED, overall=None):
    items = [Question(id=f"q{index}", text=f"Question {index}?") for index in range(1, questions + 1)]
    answers = {
        f"q{index}": EvaluatedAnswer(
            question_id=f"q{index}",
            question_text=f"Question {index}?",
            answer="answer",
            feedback="feedback",
            score=score,
            key_points=[KeyPoint(text="Complexity analysis", met=False), KeyPoint(text="Edge cases", met=True)],
            evaluated_at=NOW,
        )
        for index, score in enumerate(scores, start=1)
    }
    return InterviewSession(
        id=f"s-{category}-{difficulty}-{len(scores)}",
        user_id="u1",
        category=category,
        difficulty=difficulty,
        question_count=questions,
        status=status,
        created_at=NOW,
        questions=items,
        answers=answers,
        overall_score=overall,
    )


@pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (70.49, 70), (70.5, 71)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_overall_score_empty_is_zero():
    assert overall_score([]) == 0
    assert overall_score([85]) == 85
    assert overall_score([50, 51]) == 51


def test_duration_minutes_mapping():
    assert duration_minutes(5, 3) == 15
    assert duration_minutes(10, 3) == 30
    assert duration_minutes(15, 3) == 45


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0 seconds"),
        (1, "1 second"),
        (59, "59 seconds"),
        (60, "1 minute"),
        (61, "1 minute 1 second"),
        (1685, "28 minutes 5 seconds"),
        (-4, "0 seconds"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_summarize_strong_session():
    session = _session(scores=(90, 80, 72))
    strengths, improvements = summarize_performance(session, 81, strength_score=70, weak_score=50)
    assert strengths[0].startswith("Strong overall performance in DSA questions at Easy difficulty")
    assert len(strengths) == 4
    assert improvements == []


def test_summarize_weak_answers_name_the_question():
    session = _session(scores=(30, 65))
    strengths, improvements = summarize_performance(session, 48, strength_score=70, weak_score=50)
    assert strengths == ["Completed a DSA practice interview."]
    assert improvements[0] == 'Revisit "Question 1?": scored 30/100. Cover: Complexity analysis.'
    assert improvements[1] == "Answer all questions; 1 of 3 were left unanswered."


def test_summarize_middling_session_asks_for_depth():
    session = _session(scores=(60, 65, 55))
    _, improvements = summarize_performance(session, 60, strength_score=70, weak_score=50)
    assert improvements == ["Add more depth and concrete examples to your answers."]


def test_recommendations_without_history():
    records = build_recommendations([], 75)
    assert [record.id for record in records] == ["getting-started"]


def test_recommendations_weakest_first():
    sessions = [
        _session("DSA", overall=70),
        _session("DSA", overall=60),
        _session("HR", overall=40),
        _session("System Design", overall=90),
        _session("Web Development", overall=10, status=SessionStatus.CANCELLED),
    ]
    records = build_recommendations(sessions, 75)
    assert [record.category for record in records] == ["HR", "DSA"]
    assert records[0].id == "focus-hr"
    assert records[0].area == "Behavioral storytelling"
    assert records[1].average_score == 65.0
    assert records[1].session_count == 2


def test_recommendations_general_improvement_suggests_harder_level():
    sessions = [
        _session("HR", "Medium", overall=88),
        _session("DSA", "Easy", overall=80),
    ]
    records = build_recommendations(sessions, 75)
    assert len(records) == 1
    record = records[0]
    assert record.id == "general-improvement"
    assert record.category == Category.HR.value
    assert Difficulty.HARD.value in record.description
