"""Deterministic score aggregation, feedback statements and recommendations."""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import Category, Difficulty, InterviewSession, Recommendation, SessionStatus


FOCUS_AREAS: Dict[str, str] = {
    Category.DSA.value: "Algorithmic problem solving",
    Category.WEB_DEVELOPMENT.value: "Web fundamentals and frameworks",
    Category.HR.value: "Behavioral storytelling",
    Category.SYSTEM_DESIGN.value: "Architecture and scalability trade-offs",
}

_NEXT_DIFFICULTY = {
    Difficulty.EASY: Difficulty.MEDIUM,
    Difficulty.MEDIUM: Difficulty.HARD,
    Difficulty.HARD: Difficulty.HARD,
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (``round`` would bank to even)."""
    return int(math.floor(value + 0.5))


def overall_score(scores: Sequence[int]) -> int:
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def duration_minutes(question_count: int, minutes_per_question: int) -> int:
    return question_count * minutes_per_question


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def format_duration(elapsed_seconds: float) -> str:
    """Render elapsed time as ``"N minutes S seconds"`` dropping zero parts."""

    total = max(0, int(elapsed_seconds))
    minutes, seconds = divmod(total, 60)
    if minutes and seconds:
        return f"{_plural(minutes, 'minute')} {_plural(seconds, 'second')}"
    if minutes:
        return _plural(minutes, "minute")
    return _plural(seconds, "second")


def _short(text: str, limit: int = 60) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def summarize_performance(
    session: InterviewSession,
    overall: int,
    *,
    strength_score: int,
    weak_score: int,
) -> Tuple[List[str], List[str]]:
    """Derive strength and improvement statements from the evaluated answers.

    Returns ``(strengths, improvements)``. Every statement is a pure function of
    the stored answers and the two thresholds.
    """

    answers = session.ordered_answers()
    category = session.category.value
    difficulty = session.difficulty.value

    strengths: List[str] = []
    if answers and overall >= strength_score:
        strengths.append(
            f"Strong overall performance in {category} questions at {difficulty} difficulty ({overall}/100)."
        )
    for answer in answers:
        if answer.score >= strength_score:
            strengths.append(f'Well-structured answer to "{_short(answer.question_text)}" ({answer.score}/100).')
    if not strengths:
        strengths.append(f"Completed a {category} practice interview.")

    improvements: List[str] = []
    for answer in answers:
        if answer.score < weak_score:
            statement = f'Revisit "{_short(answer.question_text)}": scored {answer.score}/100.'
            missed = next((point.text for point in answer.key_points if not point.met), None)
            if missed:
                statement += f" Cover: {missed}."
            improvements.append(statement)
    weak_items = len(improvements)

    total_questions = len(session.questions) or session.question_count
    if not answers:
        improvements.append("Submit answers to the questions to receive detailed feedback.")
    else:
        unanswered = max(0, total_questions - len(answers))
        if unanswered:
            improvements.append(
                f"Answer all questions; {unanswered} of {total_questions} were left unanswered."
            )
        if overall < strength_score and not weak_items:
            improvements.append("Add more depth and concrete examples to your answers.")

    return strengths, improvements


def _category_scores(sessions: Iterable[InterviewSession]) -> Dict[str, List[int]]:
    grouped: Dict[str, List[int]] = defaultdict(list)
    for session in sessions:
        if session.status != SessionStatus.COMPLETED or session.overall_score is None:
            continue
        grouped[session.category.value].append(session.overall_score)
    return grouped


def _slug(value: str) -> str:
    return "-".join(value.lower().split())


def build_recommendations(sessions: Iterable[InterviewSession], threshold: float) -> List[Recommendation]:
    """Emit one record per category whose mean completed score is below ``threshold``.

    Weakest categories come first. Falls back to a single ``getting-started`` or
    ``general-improvement`` record when no category is weak.
    """

    sessions = list(sessions)
    grouped = _category_scores(sessions)
    if not grouped:
        return [
            Recommendation(
                id="getting-started",
                category="General",
                area="Getting started",
                description=(
                    "Complete your first practice interview to receive recommendations "
                    "tailored to your results."
                ),
            )
        ]

    averages = {category: sum(scores) / len(scores) for category, scores in grouped.items()}
    weak = sorted(
        (category for category, average in averages.items() if average < threshold),
        key=lambda category: (averages[category], category),
    )
    if weak:
        return [
            Recommendation(
                id=f"focus-{_slug(category)}",
                category=category,
                area=FOCUS_AREAS.get(category, category),
                description=(
                    f"Your average {category} score is {averages[category]:.1f}/100 across "
                    f"{len(grouped[category])} completed session(s). Schedule more {category} "
                    "practice and review the feedback on your lowest-scoring answers."
                ),
                average_score=float(f"{averages[category]:.1f}"),
                session_count=len(grouped[category]),
            )
            for category in weak
        ]

    strongest = max(averages, key=lambda category: (averages[category], category))
    hardest = _hardest_difficulty(sessions, strongest)
    suggestion = _NEXT_DIFFICULTY[hardest]
    return [
        Recommendation(
            id="general-improvement",
            category=strongest,
            area=FOCUS_AREAS.get(strongest, strongest),
            description=(
                f"You are averaging {averages[strongest]:.1f}/100 in {strongest}. "
                f"Challenge yourself with {suggestion.value} difficulty sessions or try a new category."
            ),
            average_score=float(f"{averages[strongest]:.1f}"),
            session_count=len(grouped[strongest]),
        )
    ]


def _hardest_difficulty(sessions: Sequence[InterviewSession], category: str) -> Difficulty:
    order = list(Difficulty)
    levels = [
        session.difficulty
        for session in sessions
        if session.status == SessionStatus.COMPLETED and session.category.value == category
    ]
    return max(levels, key=order.index) if levels else Difficulty.EASY


__all__ = [
    "FOCUS_AREAS",
    "build_recommendations",
    "duration_minutes",
    "format_duration",
    "overall_score",
    "round_half_up",
    "summarize_performance",
]
