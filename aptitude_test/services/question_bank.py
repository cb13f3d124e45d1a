"""
services/question_bank.py

Static question bank.
Public API:
  - QuestionBank                      : immutable, read-only question collection
  - load_question_bank(path)          : JSON file -> QuestionBank
  - save_question_bank(bank, path)    : QuestionBank -> JSON file
  - get_default_bank()                : cached bank from config.QUESTION_BANK_FILE
"""

import json
import logging
import os
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

import config
from aptitude_test.models.question_model import Difficulty, Question

logger = logging.getLogger(__name__)


class QuestionBank:
    """Read-only collection of questions, keyed by id."""

    def __init__(self, questions: Iterable[Question]) -> None:
        self._questions: Tuple[Question, ...] = tuple(questions)
        self._by_id: Dict[str, Question] = {}
        for q in self._questions:
            if q.id in self._by_id:
                raise ValueError(f"Duplicate question id in bank: {q.id}")
            self._by_id[q.id] = q

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self):
        return iter(self._questions)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._by_id

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    def get(self, question_id: str) -> Optional[Question]:
        return self._by_id.get(question_id)

    def categories(self) -> List[str]:
        """Categories in first-seen order."""
        seen: List[str] = []
        for q in self._questions:
            if q.category not in seen:
                seen.append(q.category)
        return seen

    def difficulties(self) -> List[Difficulty]:
        present = {q.difficulty for q in self._questions}
        return [d for d in Difficulty if d in present]

    def filter(self, difficulty: Difficulty, topics: Sequence[str]) -> List[Question]:
        """Questions of the given difficulty whose category is one of topics, in bank order."""
        difficulty = Difficulty(difficulty)
        wanted = set(topics)
        return [
            q for q in self._questions
            if q.difficulty is difficulty and q.category in wanted
        ]

    def count(self, category: str, difficulty: Difficulty) -> int:
        return len(self.filter(difficulty, [category]))

    def availability(self) -> Dict[str, Dict[str, int]]:
        """{category: {difficulty: question count}} for every category in the bank."""
        matrix = {c: {d.value: 0 for d in Difficulty} for c in self.categories()}
        for q in self._questions:
            matrix[q.category][q.difficulty.value] += 1
        return matrix


def parse_questions(items: Iterable[dict]) -> List[Question]:
    """Validate raw records. Invalid records are skipped with a warning."""
    questions: List[Question] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning(f"item[{idx}]: not an object, skipped")
            continue
        try:
            questions.append(Question(**item))
        except (ValidationError, TypeError) as e:
            logger.warning(f"item[{idx}]: invalid question skipped: {e}")
    return questions


def load_question_bank(path: str) -> QuestionBank:
    """
    Load a question bank from a JSON file.

    Accepts either a top-level array or {"questions": [...]}.

    Raises:
        FileNotFoundError: path does not exist.
        ValueError:        the file is not valid JSON or has no question list.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Question bank not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Question bank is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("questions")
    if not isinstance(data, list):
        raise ValueError("Question bank must be a list of questions.")

    bank = QuestionBank(parse_questions(data))
    logger.info(f"Question bank loaded: {len(bank)} questions from {path}")
    return bank


def save_question_bank(bank: QuestionBank, path: str) -> None:
    """Write the bank as a JSON array (atomic replace)."""
    payload = [q.model_dump(mode="json") for q in bank]
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    os.replace(tmp_path, path)
    logger.info(f"Question bank saved: {len(bank)} questions to {path}")


@lru_cache()
def get_default_bank() -> QuestionBank:
    return load_question_bank(config.QUESTION_BANK_FILE)


def reload_default_bank() -> QuestionBank:
    get_default_bank.cache_clear()
    return get_default_bank()
