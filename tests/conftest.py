import os
import re
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

from config.settings import settings
from errors import Unauthenticated, Unauthorized
from identity import Caller
from interview_session import EVALUATION_KEY, QUESTIONS_KEY, SessionLifecycleManager
from llm_gateway import LlmGatewayError
from storage import SqliteDocumentStore
from storage.migrate import migrate


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


class StepClock:  # Deterministic clock advancing one second per reading
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + timedelta(seconds=1)
        return value


class ScriptedGenerator:
    """Text generator fake returning canned payloads per registry target.

    Question payloads are sized from the prompt unless ``questions`` is set.
    Evaluation scores are popped from ``scores`` and fall back to ``default_score``.
    """

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.questions: Optional[Any] = None
        self.scores: List[int] = []
        self.default_score = 80
        self.evaluation: Optional[Any] = None
        self.fail_questions = False
        self.fail_evaluation = False

    def count(self, target: str) -> int:
        return sum(1 for call in self.calls if call["target"] == target)

    def generate(self, target: str, task: str, schema):
        self.calls.append({"target": target, "task": task, "schema": schema})
        if target == QUESTIONS_KEY:
            if self.fail_questions:
                raise LlmGatewayError("LLM transport failed")
            if self.questions is not None:
                return self.questions
            count = int(re.search(r"Number of questions: (\d+)", task).group(1))
            return {
                "questions": [
                    {
                        "id": f"q{index}",
                        "text": f"Practice question {index}?",
                        "expected_points": ["Clear structure", "Concrete example"],
                    }
                    for index in range(1, count + 1)
                ]
            }
        if target == EVALUATION_KEY:
            if self.fail_evaluation:
                raise LlmGatewayError("LLM output validation failed")
            if self.evaluation is not None:
                return self.evaluation
            score = self.scores.pop(0) if self.scores else self.default_score
            return {
                "feedback": f"Scored {score}. Add more detail on trade-offs.",
                "score": score,
                "key_points": [
                    {"text": "Clear structure", "met": True},
                    {"text": "Concrete example", "met": score >= 50},
                ],
            }
        raise KeyError(target)


class FakeVerifier:  # Maps "token-<user>" to a caller
    def verify(self, token: str) -> Caller:
        if token == "expired":
            raise Unauthenticated("Session expired. Please sign in again.")
        if not token.startswith("token-"):
            raise Unauthorized("Invalid token.")
        user_id = token[len("token-"):]
        return Caller(user_id=user_id, email=f"{user_id}@example.com")


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    def send(self, recipient, subject, template, fields) -> None:
        if self.fail:
            raise RuntimeError("provider down")
        self.sent.append({"recipient": recipient, "subject": subject, "template": template, "fields": dict(fields)})


@pytest.fixture
def store(tmp_db):
    return SqliteDocumentStore(tmp_db)


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def manager(store, generator, clock):
    return SessionLifecycleManager(store, generator, settings=settings, clock=clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def verifier():
    return FakeVerifier()
