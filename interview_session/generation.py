from __future__ import annotations  # Question generation and answer evaluation prompts

from pathlib import Path
from textwrap import dedent
from typing import Dict, List, Optional, Protocol, Tuple, Type, TypeVar

from pydantic import BaseModel, Field

from config import LlmRoute, load_app_registry
from llm_gateway import HttpClient, call

from .models import Category, Difficulty, KeyPoint, NonBlank


QUESTIONS_KEY = "interview_session.generate_questions"  # Registry key for question generation
EVALUATION_KEY = "interview_session.evaluate_answer"  # Registry key for answer evaluation

T = TypeVar("T", bound=BaseModel)


class GeneratedQuestion(BaseModel):  # Question emitted by the LLM
    id: Optional[str] = None
    text: NonBlank
    expected_points: List[str] = Field(default_factory=list)


class QuestionSet(BaseModel):  # LLM-enforced question generation payload
    questions: List[GeneratedQuestion] = Field(min_length=1)


class AnswerEvaluation(BaseModel):  # LLM-enforced answer evaluation payload
    feedback: NonBlank
    score: int = Field(ge=0, le=100)
    key_points: List[KeyPoint] = Field(min_length=2, max_length=3)


class TextGenerator(Protocol):  # Generative text boundary used by the lifecycle manager
    def generate(self, target: str, task: str, schema: Type[T]) -> T: ...


class RoutedTextGenerator:  # Resolves registry targets to LLM routes
    def __init__(
        self,
        registry: Dict[str, Tuple[LlmRoute, Type[BaseModel]]],
        *,
        client: Optional[HttpClient] = None,
    ) -> None:
        self._registry = registry
        self._client = client

    @classmethod
    def from_config(cls, config_path: Path, *, client: Optional[HttpClient] = None) -> "RoutedTextGenerator":
        registry = load_app_registry(
            Path(config_path),
            {QUESTIONS_KEY: QuestionSet, EVALUATION_KEY: AnswerEvaluation},
        )
        return cls(registry, client=client)

    def generate(self, target: str, task: str, schema: Type[T]) -> T:
        if target not in self._registry:
            raise KeyError(f"No LLM route registered for '{target}'")
        route, _ = self._registry[target]
        return call(task, schema, cfg=route, client=self._client)


def build_question_task(category: Category, difficulty: Difficulty, count: int) -> str:  # Compose question prompt
    return dedent(
        f"""
        You are an experienced interviewer preparing a mock interview.
        Interview category: {category.value}
        Difficulty: {difficulty.value}
        Number of questions: {count}

        Write exactly {count} distinct interview questions suited to the category and difficulty.
        Respond with a JSON object following this contract:
        - questions: array of exactly {count} items.
            Each item must contain:
              - id: short identifier such as "q1" (letters, digits, dashes or underscores).
              - text: the full question as it would be asked to the candidate.
              - expected_points: two to four short phrases a strong answer should cover.
        Return only JSON without markdown fences, text, or commentary.
        """
    ).strip()


def build_evaluation_task(question: str, answer: str, category: Category, difficulty: Difficulty) -> str:  # Compose evaluation prompt
    shown_answer = answer.strip() or "(no answer given)"
    return dedent(
        f"""
        You are an expert interviewer giving concise, constructive feedback on a candidate's answer
        to a "{category.value}" interview question of "{difficulty.value}" difficulty.
        Focus on direct, actionable improvements and common pitfalls.
        If the answer is empty or very short, point that out and score it accordingly.

        Interview question: {question}
        Candidate answer:
        {shown_answer}

        Respond with a JSON object following this contract:
        - feedback: at most 150 words covering clarity, completeness and accuracy.
        - score: integer from 0 to 100.
        - key_points: two or three items, each with text (an expected point) and met (true when the answer covers it).
        Return only JSON without markdown fences, text, or commentary.
        """
    ).strip()


__all__ = [
    "AnswerEvaluation",
    "EVALUATION_KEY",
    "GeneratedQuestion",
    "QUESTIONS_KEY",
    "QuestionSet",
    "RoutedTextGenerator",
    "TextGenerator",
    "build_evaluation_task",
    "build_question_task",
]
