"""
models/session_state.py

Answer-sheet state of one aptitude test session.
Pydantic BaseModel, no UI code. Transitions live in services/test_session.py.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


class SessionState(BaseModel):
    """
    Mutable state of a test session.

    Attributes:
        current_index:     index of the question on screen (0-based).
        answers:           {question.id: selected option}. Not necessarily complete.
        time_remaining:    seconds left on the countdown.
        duration_seconds:  countdown length the session was started with.
        status:            not_started / running / completed.
        started_at:        Unix timestamp of start(), None before that.
        completed_at:      Unix timestamp of completion, None before that.
    """

    current_index: int = Field(
        default=0,
        ge=0,
        description="Index of the current question (0-based)"
    )
    answers: Dict[str, str] = Field(
        default_factory=dict,
        description="key: question.id, value: selected option text"
    )
    time_remaining: int = Field(
        default=0,
        ge=0,
        description="Seconds left before forced submission"
    )
    duration_seconds: int = Field(
        default=0,
        ge=0,
        description="Session length in seconds"
    )
    status: SessionStatus = Field(
        default=SessionStatus.NOT_STARTED,
        description="Lifecycle state"
    )
    started_at: Optional[float] = None
    completed_at: Optional[float] = None

    @property
    def started(self) -> bool:
        return self.status is not SessionStatus.NOT_STARTED

    @property
    def completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED
