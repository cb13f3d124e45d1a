"""
errors.py

Domain exceptions raised by the aptitude test engine.
The HTTP layer maps each of them to a status code.
"""

from __future__ import annotations

from typing import Any, Optional


class AptitudeTestError(Exception):
    """Base class for every aptitude test error."""


class InsufficientQuestions(AptitudeTestError):
    """The filtered question pool is smaller than the target count."""

    def __init__(self, available: int, required: int, label: str = "") -> None:
        self.available = available
        self.required = required
        self.label = label
        super().__init__(
            f"Not enough questions available for {label or 'the selected topics'} "
            f"({available}/{required}). Please try another combination."
        )


class InvalidOption(AptitudeTestError):
    """An answer was given for an unknown question or outside its options."""

    def __init__(self, question_id: str, option: str, reason: str = "") -> None:
        self.question_id = question_id
        self.option = option
        super().__init__(reason or f"'{option}' is not an option of question {question_id}.")


class StateViolation(AptitudeTestError):
    """A session operation was issued in a state that does not allow it.

    ``state`` holds an unchanged snapshot of the session at rejection time.
    """

    def __init__(self, operation: str, status: str, state: Optional[Any] = None) -> None:
        self.operation = operation
        self.status = status
        self.state = state
        super().__init__(f"Cannot {operation} while the session is {status}.")


class HistoryStoreError(AptitudeTestError):
    """The history store could not read or write its records."""
