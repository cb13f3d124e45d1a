"""
models/result_model.py

Scored outcome of a completed session and the record kept in history.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from aptitude_test.models.question_model import Difficulty


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TestResult(BaseModel):
    """
    Immutable result of one test session.

    score is the number of questions whose answer equals the correct option;
    unanswered questions count as incorrect.
    """
    model_config = ConfigDict(frozen=True)
    __test__ = False    # keep pytest from collecting this as a test class

    score: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    category: str
    difficulty: Difficulty
    elapsed_seconds: int = Field(default=0, ge=0)
    questions_answered: int = Field(default=0, ge=0)
    completed_at: datetime = Field(default_factory=_utcnow)

    @property
    def percentage(self) -> int:
        if not self.total:
            return 0
        return round(self.score / self.total * 100)

    @property
    def incorrect(self) -> int:
        return self.total - self.score


class HistoryRecord(TestResult):
    """A TestResult as stored for one user."""

    id: str
    user_id: str
