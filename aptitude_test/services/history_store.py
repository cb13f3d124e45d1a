"""
services/history_store.py

Test history persistence (JSON file).

The engine hands each completed result to record_result() exactly once.
A storage failure never invalidates the result: it is logged as a warning
and reported back as False.
"""

import json
import logging
import os
import tempfile
import threading
import uuid
from typing import Dict, List

from pydantic import ValidationError

from aptitude_test.errors import HistoryStoreError
from aptitude_test.models.result_model import HistoryRecord, TestResult

logger = logging.getLogger(__name__)

# One lock per history file, shared by every HistoryStore opened on it
_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: str) -> threading.Lock:
    key = os.path.abspath(path)
    with _locks_guard:
        if key not in _locks:
            _locks[key] = threading.Lock()
        return _locks[key]


class HistoryStore:
    """Per-user test results kept in one JSON file."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = _lock_for(path)

    def add(self, result: TestResult, user_id: str) -> HistoryRecord:
        record = HistoryRecord(
            id=f"result_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            **result.model_dump(),
        )
        with self._lock:
            records = self._read()
            records.insert(0, record.model_dump(mode="json"))
            self._write(records)
        return record

    def list_for(self, user_id: str) -> List[HistoryRecord]:
        """Records of one user, newest first."""
        with self._lock:
            raw = self._read()

        records: List[HistoryRecord] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, dict) or item.get("user_id") != user_id:
                continue
            try:
                records.append(HistoryRecord(**item))
            except ValidationError as e:
                logger.warning(f"history[{idx}]: unreadable record skipped: {e}")
        records.sort(key=lambda r: r.completed_at, reverse=True)
        return records

    def _read(self) -> list:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise HistoryStoreError(f"Cannot read history file {self.path}: {e}") from e
        if not isinstance(data, list):
            raise HistoryStoreError(f"History file {self.path} does not hold a list.")
        return data

    def _write(self, records: list) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=directory,
                prefix=f"{os.path.basename(self.path)}.", suffix=".tmp", delete=False,
            ) as f:
                tmp_path = f.name
                json.dump(records, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise HistoryStoreError(f"Cannot write history file {self.path}: {e}") from e


def record_result(store: HistoryStore, result: TestResult, user_id: str) -> bool:
    """
    Save a result without letting a storage failure escape.

    Returns:
        True when the record was stored, False when the store failed.
    """
    try:
        store.add(result, user_id)
    except HistoryStoreError as e:
        logger.warning(f"Result not saved to history for {user_id}: {e}")
        return False
    logger.info(f"Result saved to history for {user_id}: {result.score}/{result.total}")
    return True
