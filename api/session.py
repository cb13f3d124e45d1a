"""
api/session.py — per-browser aptitude state (cookie keyed, in memory)

A Candidate holds who is taking tests in one browser: the identity token
used for history, the OpenAI key for imports, the current TestSession and
the outcome of its completion. Candidates idle longer than SESSION_TTL
seconds are dropped.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from aptitude_test.models.result_model import TestResult
from aptitude_test.services.test_session import TestSession
from config import DEFAULT_USER_ID

SESSION_TTL = 3600  # 1 hour

_registry_lock = threading.Lock()
_candidates: dict[str, "Candidate"] = {}


@dataclass
class Candidate:
    user_id: str = DEFAULT_USER_ID
    api_key: str = ""
    test: Optional[TestSession] = None
    last_result: Optional[TestResult] = None
    history_saved: Optional[bool] = None
    last_seen: float = field(default_factory=time.time)
    # serializes calls that can complete the test (tick, submit)
    completion_lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def has_running_test(self) -> bool:
        return self.test is not None and self.test.is_running

    @property
    def history_failed(self) -> bool:
        return self.history_saved is False

    def begin(self, test: TestSession) -> None:
        """Make `test` the current test, forgetting the previous outcome."""
        self.test = test
        self.last_result = None
        self.history_saved = None

    def finish(self, result: TestResult, saved: bool) -> None:
        self.last_result = result
        self.history_saved = saved

    def clear_test(self) -> None:
        """Drop the test and its outcome; identity and API key stay."""
        self.test = None
        self.last_result = None
        self.history_saved = None

    def expired(self, now: float) -> bool:
        return now - self.last_seen > SESSION_TTL


def create_session() -> str:
    """Register a fresh Candidate and return its session id."""
    sid = uuid.uuid4().hex
    with _registry_lock:
        _candidates[sid] = Candidate()
    return sid


def lookup(sid: str) -> Optional[Candidate]:
    """The Candidate behind sid, or None when unknown or expired."""
    now = time.time()
    with _registry_lock:
        candidate = _candidates.get(sid)
        if candidate is None:
            return None
        if candidate.expired(now):
            del _candidates[sid]
            return None
        candidate.last_seen = now
        return candidate


def cleanup_expired() -> int:
    """Remove expired candidates. Returns how many were removed."""
    now = time.time()
    with _registry_lock:
        expired = [sid for sid, c in _candidates.items() if c.expired(now)]
        for sid in expired:
            del _candidates[sid]
    return len(expired)
