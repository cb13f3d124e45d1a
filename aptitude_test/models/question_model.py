from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Question(BaseModel):
    """
    Aptitude test question.
    Loaded once from the question bank and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique question identifier"
    )
    question_text: str = Field(
        ...,
        min_length=1,
        description="Prompt shown to the candidate"
    )
    options: List[str] = Field(
        ...,
        description="Ordered answer options"
    )
    correct_answer: str = Field(
        ...,
        description="The correct option, exactly as it appears in options"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Topic, e.g. Programming or Mathematics"
    )
    difficulty: Difficulty = Field(
        ...,
        description="easy, medium or hard"
    )
    explanation: str = Field(
        "",
        description="Optional explanation shown in the review"
    )

    @field_validator('options')
    @classmethod
    def validate_options(cls, v: List[str]) -> List[str]:
        """
        At least two options, no duplicates (answers are matched by text).
        """
        if len(v) < 2:
            raise ValueError("A question needs at least two options.")
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate options: {v}")
        return v

    @model_validator(mode='after')
    def validate_answer_in_options(self) -> 'Question':
        if self.correct_answer not in self.options:
            raise ValueError(
                f"Correct answer ('{self.correct_answer}') is not one of the options ({self.options})."
            )
        return self
