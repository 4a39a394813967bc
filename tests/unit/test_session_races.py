"""Overlapping requests against one interview session."""
from __future__ import annotations

import threading
import time

import pytest

from config.settings import settings
from errors import InvalidState
from interview_session import COLLECTION, SessionLifecycleManager, SessionStatus


class InterleavingStore:
    """Delegates to a real store, running ``before_write`` ahead of the first update."""

    def __init__(self, inner, before_write) -> None:
        self.inner = inner
        self.before_write = before_write

    def update(self, *args, **kwargs):
        action, self.before_write = self.before_write, None
        if action is not None:
            action()
        return self.inner.update(*args, **kwargs)

    def __getattr__(self, name):
        return getattr(self.inner, name)


class BatchGenerator:  # Each question request yields a distinguishable batch
    def __init__(self) -> None:
        self.batches = 0
        self.entered = threading.Event()
        self.release = threading.Event()
        self.release.set()

    def generate(self, target, task, schema):
        self.batches += 1
        batch = self.batches
        self.entered.set()
        self.release.wait(5)
        return {
            "questions": [
                {"id": f"b{batch}-{index}", "text": f"Batch {batch} question {index}?", "expected_points": []}
                for index in (1, 2)
            ]
        }


def _racing(store, generator, clock, before_write):
    return SessionLifecycleManager(
        InterleavingStore(store, before_write), generator, settings=settings, clock=clock
    )


def test_concurrent_first_opens_generate_once(store, clock):
    generator = BatchGenerator()
    generator.release.clear()
    manager = SessionLifecycleManager(store, generator, settings=settings, clock=clock)
    session_id = manager.create("u1", "DSA", "Easy", 2)

    sheets = []

    def open_session():
        sheets.append(manager.get_or_materialize_questions(session_id, "u1"))

    first = threading.Thread(target=open_session)
    second = threading.Thread(target=open_session)
    first.start()
    assert generator.entered.wait(5)
    second.start()
    time.sleep(0.05)
    generator.release.set()
    first.join(5)
    second.join(5)

    assert generator.batches == 1
    assert len(sheets) == 2
    assert [q.id for q in sheets[0].questions] == [q.id for q in sheets[1].questions] == ["b1-1", "b1-2"]
    assert [q["id"] for q in store.get(COLLECTION, session_id)["questions"]] == ["b1-1", "b1-2"]


def test_materialization_keeps_questions_stored_by_another_writer(store, clock):
    generator = BatchGenerator()
    other = SessionLifecycleManager(store, generator, settings=settings, clock=clock)
    session_id = other.create("u1", "DSA", "Easy", 2)
    racing = _racing(store, generator, clock, lambda: other.get_or_materialize_questions(session_id, "u1"))

    sheet = racing.get_or_materialize_questions(session_id, "u1")

    assert generator.batches == 2
    assert [q.id for q in sheet.questions] == ["b2-1", "b2-2"]
    assert [q["id"] for q in store.get(COLLECTION, session_id)["questions"]] == ["b2-1", "b2-2"]
    assert [q.id for q in other.get_or_materialize_questions(session_id, "u1").questions] == ["b2-1", "b2-2"]


def test_cancel_losing_to_complete_keeps_completed(manager, store, generator, clock):
    session_id = manager.create("u1", "HR", "Easy", 1)
    racing = _racing(store, generator, clock, lambda: manager.complete(session_id, "u1", 30))

    with pytest.raises(InvalidState):
        racing.cancel(session_id, "u1")

    doc = store.get(COLLECTION, session_id)
    assert doc["status"] == SessionStatus.COMPLETED.value
    assert "cancelled_at" not in doc


def test_complete_losing_to_cancel_keeps_cancelled(manager, store, generator, clock):
    session_id = manager.create("u1", "HR", "Easy", 1)
    racing = _racing(store, generator, clock, lambda: manager.cancel(session_id, "u1"))

    with pytest.raises(InvalidState):
        racing.complete(session_id, "u1", 30)

    doc = store.get(COLLECTION, session_id)
    assert doc["status"] == SessionStatus.CANCELLED.value
    assert doc.get("overall_score") is None
    assert doc.get("completed_at") is None


def test_answer_after_completion_is_rejected(manager, store, generator, clock):
    session_id = manager.create("u1", "HR", "Easy", 1)
    question_id = manager.get_or_materialize_questions(session_id, "u1").questions[0].id
    racing = _racing(store, generator, clock, lambda: manager.complete(session_id, "u1", 30))

    with pytest.raises(InvalidState):
        racing.evaluate_answer(session_id, "u1", question_id, None, "Late answer.")

    doc = store.get(COLLECTION, session_id)
    assert doc["status"] == SessionStatus.COMPLETED.value
    assert doc["answers"] == {}
    assert doc["overall_score"] == 0


def test_answer_landing_during_completion_is_aggregated(manager, store, generator, clock):
    session_id = manager.create("u1", "HR", "Easy", 2)
    first, second = manager.get_or_materialize_questions(session_id, "u1").questions
    generator.scores = [90, 40]
    manager.evaluate_answer(session_id, "u1", first.id, None, "First answer.")
    racing = _racing(
        store,
        generator,
        clock,
        lambda: manager.evaluate_answer(session_id, "u1", second.id, None, "Second answer."),
    )

    completed = racing.complete(session_id, "u1", 120)

    assert completed.overall_score == 65
    doc = store.get(COLLECTION, session_id)
    assert doc["status"] == SessionStatus.COMPLETED.value
    assert doc["overall_score"] == 65
    assert set(doc["answers"]) == {first.id, second.id}
