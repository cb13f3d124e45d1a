"""
services/scoring_service.py

Scoring and result analysis.
Pure Python functions, no UI code.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from aptitude_test.models.question_model import Question
from aptitude_test.models.result_model import TestResult
from aptitude_test.models.selection_model import SelectedSet

EXCELLENT_RATIO = 0.7
GOOD_EFFORT_RATIO = 0.4


def count_correct(questions: Sequence[Question], answers: Mapping[str, str]) -> int:
    """
    Number of questions answered correctly.

    Correct means answers.get(question.id) == question.correct_answer,
    exact and case-sensitive. A missing answer is incorrect.
    """
    return sum(1 for q in questions if answers.get(q.id) == q.correct_answer)


def score(
    selected_set: SelectedSet,
    answers: Mapping[str, str],
    elapsed_seconds: int = 0,
    completed_at: Optional[datetime] = None,
) -> TestResult:
    """
    Score a session's answers.

    Args:
        selected_set:    the questions the session was started with.
        answers:         {question.id: selected option}
        elapsed_seconds: time the candidate spent.
        completed_at:    completion timestamp (now when None).

    Returns:
        TestResult with score = correct count, total = len(selected_set).
    """
    questions = selected_set.questions
    fields = dict(
        score=count_correct(questions, answers),
        total=len(questions),
        category=selected_set.request.category_label,
        difficulty=selected_set.request.difficulty,
        elapsed_seconds=elapsed_seconds,
        questions_answered=sum(1 for q in questions if q.id in answers),
    )
    if completed_at is not None:
        fields["completed_at"] = completed_at
    return TestResult(**fields)


def get_incorrect_questions(
    questions: Sequence[Question],
    answers: Mapping[str, str],
) -> List[Question]:
    """
    Questions answered wrongly or not at all, in test order (review list).
    """
    return [q for q in questions if answers.get(q.id) != q.correct_answer]


def calculate_topic_scores(
    questions: Sequence[Question],
    answers: Mapping[str, str],
) -> List[Dict[str, object]]:
    """
    Per-topic breakdown for mixed sessions.

    Returns:
        [{"category": str, "total": int, "correct": int,
          "incorrect": int, "unanswered": int, "percentage": int}, ...]
        in the order the topics first appear.
    """
    buckets: Dict[str, Dict[str, int]] = defaultdict(
        lambda: {"total": 0, "correct": 0, "incorrect": 0, "unanswered": 0}
    )

    for q in questions:
        b = buckets[q.category]
        b["total"] += 1
        user_ans = answers.get(q.id)
        if user_ans is None:
            b["unanswered"] += 1
        elif user_ans == q.correct_answer:
            b["correct"] += 1
        else:
            b["incorrect"] += 1

    result = []
    for category, b in buckets.items():
        percentage = round(b["correct"] / b["total"] * 100) if b["total"] else 0
        result.append({"category": category, **b, "percentage": percentage})
    return result


def performance_band(correct: int, total: int) -> str:
    """Headline shown on the result screen."""
    ratio = correct / total if total else 0.0
    if ratio >= EXCELLENT_RATIO:
        return "Excellent!"
    if ratio >= GOOD_EFFORT_RATIO:
        return "Good effort!"
    return "Keep practicing!"
