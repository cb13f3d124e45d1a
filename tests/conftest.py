import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from aptitude_test.models.question_model import Question
from aptitude_test.models.selection_model import SelectedSet, SelectionRequest
from aptitude_test.services.question_bank import QuestionBank

OPTIONS = ["A", "B", "C", "D"]


def make_question(qid, category="Programming", difficulty="easy", correct="A", **extra):
    return Question(
        id=qid,
        question_text=f"Question {qid}?",
        options=list(OPTIONS),
        correct_answer=correct,
        category=category,
        difficulty=difficulty,
        **extra,
    )


def make_questions(prefix, count, category="Programming", difficulty="easy"):
    return [make_question(f"{prefix}-{i:02d}", category, difficulty) for i in range(count)]


def make_selected_set(count=10, category="Programming", difficulty="easy"):
    questions = make_questions("sel", count, category, difficulty)
    return SelectedSet(
        request=SelectionRequest.single(category, difficulty),
        questions=tuple(questions),
    )


class FakeClock:
    """Deterministic clock for TestSession."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now


@pytest.fixture
def bank():
    questions = (
        make_questions("prog-e", 12, "Programming", "easy")
        + make_questions("prog-m", 10, "Programming", "medium")
        + make_questions("ds-e", 6, "Data Structures", "easy")
        + make_questions("net-e", 6, "Networking", "easy")
        + make_questions("math-e", 2, "Mathematics", "easy")
        + make_questions("gk-e", 9, "General Knowledge", "easy")
    )
    return QuestionBank(questions)


@pytest.fixture
def selected_set():
    return make_selected_set()


@pytest.fixture
def clock():
    return FakeClock()
