"""
api/routes.py — FastAPI endpoints
"""

import asyncio
import logging
from functools import lru_cache
from typing import Callable, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field, ValidationError

import config
from api.session import Candidate

from aptitude_test.errors import HistoryStoreError, InsufficientQuestions, InvalidOption, StateViolation
from aptitude_test.models.question_model import Difficulty, Question
from aptitude_test.models.result_model import TestResult
from aptitude_test.models.selection_model import SelectionMode, SelectionRequest
from aptitude_test.services.history_store import HistoryStore, record_result
from aptitude_test.services.question_bank import (
    QuestionBank, get_default_bank, reload_default_bank, save_question_bank,
)
from aptitude_test.services.question_importer import extract_questions_from_pdf, merge_into_bank
from aptitude_test.services.scoring_service import (
    calculate_topic_scores, get_incorrect_questions, performance_band,
)
from aptitude_test.services.selector import select_questions
from aptitude_test.services.test_session import TestSession

logger = logging.getLogger(__name__)

router = APIRouter()

HISTORY_WARNING = "Your result could not be saved to history."


# ── Pydantic request bodies ──────────────────────────────────────────────────

class ApiKeyBody(BaseModel):
    api_key: str

class IdentifyBody(BaseModel):
    user_id: str = Field(..., min_length=1)

class StartTestBody(BaseModel):
    mode: SelectionMode = SelectionMode.SINGLE
    topics: list[str] = []
    difficulty: Difficulty = Difficulty.EASY
    duration_seconds: Optional[int] = Field(default=None, gt=0)

class AnswerBody(BaseModel):
    question_id: str
    option: str = ""

class NavigateBody(BaseModel):
    index: int = 0


# ── Dependencies ─────────────────────────────────────────────────────────────

def get_question_bank() -> QuestionBank:
    return get_default_bank()


@lru_cache()
def get_history_store() -> HistoryStore:
    return HistoryStore(config.HISTORY_FILE)


def get_candidate(request: Request) -> Candidate:
    return request.state.candidate


# ── Helpers ──────────────────────────────────────────────────────────────────

def _question_to_dict(q: Question, reveal: bool = False) -> dict:
    d = {
        "id": q.id,
        "question_text": q.question_text,
        "options": q.options,
        "category": q.category,
        "difficulty": q.difficulty.value,
    }
    if reveal:
        d["correct_answer"] = q.correct_answer
        d["explanation"] = q.explanation
    return d


def _result_to_dict(result: TestResult) -> dict:
    d = result.model_dump(mode="json")
    d["percentage"] = result.percentage
    d["performance_band"] = performance_band(result.score, result.total)
    return d


def _active_test(candidate: Candidate) -> TestSession:
    if candidate.test is None:
        raise HTTPException(status_code=404, detail="No test in progress.")
    return candidate.test


def _state_response(test: TestSession) -> dict:
    state = test.snapshot()
    return {
        "status": state.status.value,
        "current_index": state.current_index,
        "answers": state.answers,
        "time_remaining": state.time_remaining,
        "duration_seconds": state.duration_seconds,
        "total": len(test.questions),
        "answered_count": test.answered_count,
        "question_ids": [q.id for q in test.questions],
    }


def _completion_response(candidate: Candidate, result: TestResult) -> dict:
    body = {"ok": True, "result": _result_to_dict(result)}
    if candidate.history_failed:
        body["warning"] = HISTORY_WARNING
    return body


def _on_complete_hook(candidate: Candidate, store: HistoryStore):
    def _hook(result: TestResult) -> None:
        candidate.finish(result, record_result(store, result, candidate.user_id))
    return _hook


async def _run_completing(candidate: Candidate, call: Callable[[], Optional[TestResult]]):
    """Run a call that may complete the test (and write history) off the event loop."""
    def _locked():
        with candidate.completion_lock:
            return call()
    try:
        return await asyncio.to_thread(_locked)
    except StateViolation as e:
        raise HTTPException(status_code=409, detail=str(e))


# ── Endpoints ────────────────────────────────────────────────────────────────

@router.get("/api/health")
async def health():
    return {"status": "ok"}


@router.get("/api/catalog")
async def catalog(bank: QuestionBank = Depends(get_question_bank)):
    return {
        "categories": bank.categories(),
        "difficulties": [d.value for d in Difficulty],
        "availability": bank.availability(),
        "target_count": config.TARGET_QUESTION_COUNT,
        "duration_seconds": config.TEST_DURATION_SECONDS,
    }


@router.post("/api/identify")
async def identify(body: IdentifyBody, candidate: Candidate = Depends(get_candidate)):
    candidate.user_id = body.user_id.strip()
    return {"ok": True, "user_id": candidate.user_id}


@router.post("/api/set-api-key")
async def set_api_key(body: ApiKeyBody, candidate: Candidate = Depends(get_candidate)):
    key = body.api_key.strip()
    if not key:
        raise HTTPException(status_code=400, detail="The API key is empty.")
    if not key.startswith(("sk-", "sk-proj-")):
        raise HTTPException(status_code=400, detail="Not an OpenAI API key (expected sk-...).")
    candidate.api_key = key
    return {"ok": True}


@router.post("/api/start-test")
async def start_test(
    body: StartTestBody,
    candidate: Candidate = Depends(get_candidate),
    bank: QuestionBank = Depends(get_question_bank),
    store: HistoryStore = Depends(get_history_store),
):
    if candidate.has_running_test:
        raise HTTPException(status_code=409, detail="A test is already in progress.")

    try:
        request = SelectionRequest(mode=body.mode, topics=body.topics, difficulty=body.difficulty)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()])

    try:
        selected = select_questions(bank, request)
    except InsufficientQuestions as e:
        raise HTTPException(status_code=422, detail=str(e))

    test = TestSession(on_complete=_on_complete_hook(candidate, store))
    test.start(selected, body.duration_seconds or config.TEST_DURATION_SECONDS)
    candidate.begin(test)
    return {
        "ok": True,
        "total": len(selected),
        "category": request.category_label,
        "difficulty": request.difficulty.value,
        "duration_seconds": test.time_remaining,
    }


@router.get("/api/test-state")
async def test_state(candidate: Candidate = Depends(get_candidate)):
    return _state_response(_active_test(candidate))


@router.get("/api/question/{index}")
async def get_question(index: int, candidate: Candidate = Depends(get_candidate)):
    test = _active_test(candidate)
    questions = test.questions
    if not (0 <= index < len(questions)):
        raise HTTPException(status_code=404, detail="Question not found.")

    q = questions[index]
    d = _question_to_dict(q, reveal=test.is_completed)
    d.update({
        "saved_answer": test.answers.get(q.id, ""),
        "index": index,
        "total": len(questions),
    })
    return d


@router.post("/api/answer")
async def save_answer(body: AnswerBody, candidate: Candidate = Depends(get_candidate)):
    test = _active_test(candidate)
    try:
        if body.option:
            test.select_answer(body.question_id, body.option)
        else:
            test.clear_answer(body.question_id)
    except InvalidOption as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StateViolation as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"ok": True, "answered_count": test.answered_count}


def _navigate(candidate: Candidate, move) -> dict:
    test = _active_test(candidate)
    try:
        state = move(test)
    except StateViolation as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"ok": True, "index": state.current_index}


@router.post("/api/next")
async def next_question(candidate: Candidate = Depends(get_candidate)):
    return _navigate(candidate, lambda t: t.next())


@router.post("/api/previous")
async def previous_question(candidate: Candidate = Depends(get_candidate)):
    return _navigate(candidate, lambda t: t.previous())


@router.post("/api/navigate")
async def navigate(body: NavigateBody, candidate: Candidate = Depends(get_candidate)):
    return _navigate(candidate, lambda t: t.go_to(body.index))


@router.post("/api/tick")
async def tick(candidate: Candidate = Depends(get_candidate)):
    test = _active_test(candidate)
    result = await _run_completing(candidate, test.tick)
    if result is None:
        return {"ok": True, "completed": False, "time_remaining": test.time_remaining}
    body = _completion_response(candidate, result)
    body.update({"completed": True, "time_remaining": 0})
    return body


@router.post("/api/submit")
async def submit_test(candidate: Candidate = Depends(get_candidate)):
    test = _active_test(candidate)
    result = await _run_completing(candidate, test.submit)
    return _completion_response(candidate, result)


@router.get("/api/results")
async def get_results(candidate: Candidate = Depends(get_candidate)):
    test, result = candidate.test, candidate.last_result
    if test is None or result is None:
        raise HTTPException(status_code=404, detail="No result available.")

    answers = test.answers
    review = []
    for q in get_incorrect_questions(test.questions, answers):
        d = _question_to_dict(q, reveal=True)
        d["user_answer"] = answers.get(q.id, "")
        review.append(d)

    body = _result_to_dict(result)
    body.update({
        "unanswered_count": test.unanswered_count,
        "topic_scores": calculate_topic_scores(test.questions, answers),
        "incorrect_questions": review,
    })
    if candidate.history_failed:
        body["warning"] = HISTORY_WARNING
    return body


@router.get("/api/history")
async def get_history(
    candidate: Candidate = Depends(get_candidate),
    store: HistoryStore = Depends(get_history_store),
):
    user_id = candidate.user_id
    try:
        records = await asyncio.to_thread(store.list_for, user_id)
    except HistoryStoreError as e:
        logger.warning(f"History unavailable for {user_id}: {e}")
        raise HTTPException(status_code=503, detail="Failed to load previous results.")
    return {
        "user_id": user_id,
        "results": [
            {**r.model_dump(mode="json"), "percentage": r.percentage} for r in records
        ],
    }


@router.post("/api/import-questions")
async def import_questions(
    file: UploadFile = File(...),
    category: Optional[str] = Form(None),
    difficulty: Optional[Difficulty] = Form(None),
    candidate: Candidate = Depends(get_candidate),
    bank: QuestionBank = Depends(get_question_bank),
):
    if not candidate.api_key:
        raise HTTPException(status_code=400, detail="No OpenAI API key set.")

    file_bytes = await file.read()
    if len(file_bytes) > config.MAX_PDF_SIZE:
        raise HTTPException(status_code=413, detail="The PDF is too large (50MB max).")
    try:
        questions = await asyncio.to_thread(
            extract_questions_from_pdf, file_bytes, candidate.api_key, category, difficulty
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RuntimeError:
        raise HTTPException(
            status_code=503,
            detail="The AI service is unavailable. Please try again later.",
        )
    if not questions:
        raise HTTPException(status_code=422, detail="No questions could be extracted from the PDF.")

    merged, added = merge_into_bank(bank, questions)
    save_question_bank(merged, config.QUESTION_BANK_FILE)
    reload_default_bank()
    return {"ok": True, "extracted": len(questions), "added": added, "bank_size": len(merged)}


@router.post("/api/reset")
async def reset_session(candidate: Candidate = Depends(get_candidate)):
    candidate.clear_test()
    return {"ok": True}
