"""
models/selection_model.py

Selection request and selected question set.
"""

from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import TARGET_QUESTION_COUNT
from aptitude_test.models.question_model import Difficulty, Question


class SelectionMode(str, Enum):
    SINGLE = "single"
    MIXED = "mixed"


class SelectionRequest(BaseModel):
    """
    What the candidate asked for on the setup screen.

    Attributes:
        mode:       single topic or mixed topics.
        topics:     requested topics in the order they were picked.
                    Exactly one for single mode.
        difficulty: difficulty every selected question must have.
    """
    model_config = ConfigDict(frozen=True)

    mode: SelectionMode = SelectionMode.SINGLE
    topics: List[str] = Field(..., min_length=1)
    difficulty: Difficulty

    @field_validator('topics')
    @classmethod
    def dedupe_topics(cls, v: List[str]) -> List[str]:
        seen: List[str] = []
        for topic in v:
            topic = topic.strip()
            if topic and topic not in seen:
                seen.append(topic)
        if not seen:
            raise ValueError("At least one topic is required.")
        return seen

    @model_validator(mode='after')
    def validate_single_topic(self) -> 'SelectionRequest':
        if self.mode is SelectionMode.SINGLE and len(self.topics) != 1:
            raise ValueError("Single topic mode takes exactly one topic.")
        return self

    @classmethod
    def single(cls, topic: str, difficulty: Difficulty | str) -> 'SelectionRequest':
        return cls(mode=SelectionMode.SINGLE, topics=[topic], difficulty=difficulty)

    @classmethod
    def mixed(cls, topics: List[str], difficulty: Difficulty | str) -> 'SelectionRequest':
        return cls(mode=SelectionMode.MIXED, topics=topics, difficulty=difficulty)

    @property
    def target_count(self) -> int:
        return TARGET_QUESTION_COUNT

    @property
    def category_label(self) -> str:
        return ", ".join(self.topics)


class SelectedSet(BaseModel):
    """Ordered questions picked for one test session."""
    model_config = ConfigDict(frozen=True)

    request: SelectionRequest
    questions: Tuple[Question, ...]

    @model_validator(mode='after')
    def validate_unique_ids(self) -> 'SelectedSet':
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate question ids in selection: {ids}")
        return self

    def __len__(self) -> int:
        return len(self.questions)

    @property
    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]
