"""
services/question_importer.py

Aptitude question import from PDF question papers.
Public API:
  - extract_questions_from_pdf(file_bytes, api_key, category, difficulty) -> List[Question]
  - merge_into_bank(bank, questions) -> (QuestionBank, added)

Design:
- PyMuPDF text extraction, pages sent to the OpenAI chat API in groups
- JSON mode responses validated into Question models
- invalid items or failed groups are skipped, the import does not abort
"""

import hashlib
import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Tuple

import fitz  # PyMuPDF
from openai import OpenAI, RateLimitError, APIError
from pydantic import ValidationError

from config import MODEL_NAME, MAX_PDF_PAGES, MAX_SECTION_CHARS, TEXT_PAGES_PER_GROUP
from aptitude_test.models.question_model import Difficulty, Question
from aptitude_test.services.question_bank import QuestionBank

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────
_MAX_WORKERS = 3
_MAX_API_RETRIES = 3
_BACKOFF_BASE = 1.0
_RATE_LIMIT_MAX_RETRIES = 5
_RATE_LIMIT_BACKOFF_BASE = 2.0

KNOWN_CATEGORIES = [
    "Programming",
    "Data Structures",
    "Networking",
    "Mathematics",
    "General Knowledge",
]


def _make_client(api_key: str) -> Optional[OpenAI]:
    if not api_key:
        logger.warning("No OpenAI API key provided.")
        return None
    try:
        return OpenAI(api_key=api_key)
    except Exception as e:
        logger.error(f"OpenAI client initialisation failed: {e}")
        return None


# ══════════════════════════════════════════════════════════════════════════════
# Public API
# ══════════════════════════════════════════════════════════════════════════════

def extract_questions_from_pdf(
    file_bytes: bytes,
    api_key: str = "",
    category: Optional[str] = None,
    difficulty: Optional[Difficulty] = None,
) -> List[Question]:
    """
    PDF bytes -> list of Question.

    category / difficulty, when given, override whatever the model tagged.

    Raises:
        ValueError:   empty, unreadable or oversized PDF.
        RuntimeError: no usable OpenAI client.
    """
    if not file_bytes:
        raise ValueError("The PDF file is empty.")
    client = _make_client(api_key)
    if not client:
        raise RuntimeError("OpenAI API key is missing or the client could not be created.")

    doc = None
    try:
        try:
            doc = fitz.open(stream=file_bytes, filetype="pdf")
        except Exception as e:
            raise ValueError(f"Cannot open PDF: {e}") from e

        if len(doc) == 0:
            raise ValueError("The PDF has no pages.")
        if len(doc) > MAX_PDF_PAGES:
            raise ValueError(
                f"PDF has too many pages ({len(doc)}). At most {MAX_PDF_PAGES} pages are supported."
            )

        page_texts = [doc.load_page(i).get_text() for i in range(len(doc))]
    finally:
        if doc is not None:
            doc.close()

    groups = _group_pages(page_texts)
    logger.info(f"extract_questions_from_pdf: {len(page_texts)} pages -> {len(groups)} groups")

    results = {}
    with ThreadPoolExecutor(max_workers=_MAX_WORKERS) as executor:
        future_map = {
            executor.submit(_extract_questions_from_text, text, client): idx
            for idx, text in enumerate(groups)
        }
        for future in as_completed(future_map):
            idx = future_map[future]
            try:
                results[idx] = future.result()
            except Exception as e:
                logger.error(f"Group {idx} failed: {e}")
                results[idx] = []

    questions: List[Question] = []
    seen_ids = set()
    for idx in sorted(results):
        for q in results[idx]:
            q = _apply_overrides(q, category, difficulty)
            if q.id in seen_ids:
                continue
            seen_ids.add(q.id)
            questions.append(q)

    logger.info(f"extract_questions_from_pdf: {len(questions)} questions extracted")
    return questions


def merge_into_bank(bank: QuestionBank, questions: List[Question]) -> Tuple[QuestionBank, int]:
    """Append questions whose id is not yet in the bank. Returns (new bank, added count)."""
    new_questions = [q for q in questions if q.id not in bank]
    skipped = len(questions) - len(new_questions)
    if skipped:
        logger.info(f"merge_into_bank: {skipped} questions already in the bank")
    return QuestionBank(list(bank) + new_questions), len(new_questions)


# ══════════════════════════════════════════════════════════════════════════════
# Text extraction
# ══════════════════════════════════════════════════════════════════════════════

def _group_pages(page_texts: List[str]) -> List[str]:
    groups: List[str] = []
    for start in range(0, len(page_texts), TEXT_PAGES_PER_GROUP):
        chunk = "".join(
            f"\n[PAGE {start + i + 1}]\n{text}\n"
            for i, text in enumerate(page_texts[start:start + TEXT_PAGES_PER_GROUP])
        )
        if chunk.strip():
            groups.append(chunk[:MAX_SECTION_CHARS])
    return groups


def _extract_questions_from_text(text: str, client: OpenAI) -> List[Question]:
    system_prompt = _build_system_prompt()

    raw = _call_openai(system_prompt, text, client)
    if raw is None:
        return []

    questions = _parse_response_to_questions(raw)
    if questions is not None:
        return questions

    # retry once with a stricter instruction
    raw = _call_openai(system_prompt + "\n\nReturn ONLY a valid JSON object.", text, client)
    if raw:
        questions = _parse_response_to_questions(raw)
        if questions is not None:
            return questions

    logger.error("Question extraction failed for one page group")
    return []


def _build_system_prompt() -> str:
    return (
        "You extract multiple-choice aptitude test questions from question paper text.\n"
        "\n"
        "[Output]\n"
        'Reply with a JSON object of the form {"questions": [...]} and nothing else.\n'
        "\n"
        "[Fields of each question]\n"
        "{\n"
        '  "question_text": (str) the question prompt without its options,\n'
        '  "options": (list[str]) the answer options, verbatim, in order,\n'
        '  "correct_answer": (str) the full text of the correct option, copied from options,\n'
        f'  "category": (str) one of {json.dumps(KNOWN_CATEGORIES)},\n'
        '  "difficulty": (str) "easy", "medium" or "hard",\n'
        '  "explanation": (str) explanation if the paper has one, else ""\n'
        "}\n"
        "\n"
        "[Rules]\n"
        '1. If the text has no questions, return {"questions": []}.\n'
        "2. Skip questions whose correct answer cannot be determined.\n"
        "3. Do not include option labels such as (a) or A. in question_text.\n"
        "4. Keep code, numbers and abbreviations exactly as written."
    )


# ══════════════════════════════════════════════════════════════════════════════
# Response parsing
# ══════════════════════════════════════════════════════════════════════════════

def _question_id(item: dict) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", str(item.get("category", "")).lower()).strip("-") or "imported"
    digest = hashlib.sha1(str(item.get("question_text", "")).encode("utf-8")).hexdigest()[:10]
    return f"{slug}-{digest}"


def _match_answer_to_option(answer_text: str, options: List[str]) -> str:
    """Map the model's answer onto one of the options ("" when no match)."""
    if not answer_text:
        return ""
    answer_text = answer_text.strip()

    if answer_text in options:
        return answer_text

    # label only, e.g. "B" or "(b)"
    label = re.fullmatch(r"\(?([A-Za-z])[).]?", answer_text)
    if label:
        idx = ord(label.group(1).lower()) - ord("a")
        if 0 <= idx < len(options):
            return options[idx]

    lowered = answer_text.lower()
    for opt in options:
        if opt.strip().lower() == lowered:
            return opt

    logger.debug(f"answer did not match any option: {answer_text!r}")
    return ""


def _parse_response_to_questions(raw_response: str) -> Optional[List[Question]]:
    """LLM JSON -> Question list. None when the response is not usable JSON."""
    cleaned = _clean_json_response(raw_response)
    if not cleaned:
        return None

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        return None

    if isinstance(data, dict):
        data = data.get("questions", data.get("items", []))
    if not isinstance(data, list):
        return None

    questions: List[Question] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            continue
        if not str(item.get("question_text", "")).strip() or not item.get("options"):
            continue

        options = item["options"]
        if isinstance(options, list) and item.get("correct_answer") not in options:
            item["correct_answer"] = _match_answer_to_option(str(item.get("correct_answer", "")), options)

        if isinstance(item.get("difficulty"), str):
            item["difficulty"] = item["difficulty"].strip().lower()
        # ids the model emits repeat across page groups; derive our own
        item["id"] = _question_id(item)

        try:
            questions.append(Question(**item))
        except (ValidationError, TypeError) as e:
            logger.warning(f"item[{idx}]: question rejected: {e}")
            continue

    return questions


def _apply_overrides(q: Question, category: Optional[str], difficulty: Optional[Difficulty]) -> Question:
    update = {}
    if category:
        update["category"] = category
    if difficulty:
        update["difficulty"] = Difficulty(difficulty)
    if not update:
        return q
    merged = {**q.model_dump(), **update}
    merged["id"] = _question_id(merged)
    return Question(**merged)


def _clean_json_response(response_text: str) -> str:
    """Strip markdown fences and surrounding prose from an LLM reply."""
    if not response_text:
        return ""

    text = re.sub(r"```(?:json)?\s*", "", response_text, flags=re.IGNORECASE)
    text = re.sub(r"```", "", text)
    text = text.strip()

    if text.startswith("{") or text.startswith("["):
        return text

    match = re.search(r"[{[].*[}\]]", text, re.DOTALL)
    if match:
        return match.group(0).strip()

    return ""


# ══════════════════════════════════════════════════════════════════════════════
# OpenAI API call
# ══════════════════════════════════════════════════════════════════════════════

def _call_openai(
    system_prompt: str,
    user_content: str,
    client: Optional[OpenAI] = None,
    max_retries: int = _MAX_API_RETRIES,
) -> Optional[str]:
    """Chat completion in JSON mode with exponential backoff."""
    if client is None:
        return None

    last_exception: Optional[Exception] = None
    effective_retries = max_retries

    attempt = 0
    while attempt < effective_retries:
        attempt += 1
        try:
            response = client.chat.completions.create(
                model=MODEL_NAME,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                temperature=0.1,
                response_format={"type": "json_object"},
            )
            return response.choices[0].message.content
        except RateLimitError as e:
            last_exception = e
            effective_retries = _RATE_LIMIT_MAX_RETRIES
            if attempt < effective_retries:
                wait = _RATE_LIMIT_BACKOFF_BASE * (2 ** (attempt - 1))
                logger.warning(f"Rate limited, retrying in {wait:.1f}s ({attempt}/{effective_retries})")
                time.sleep(wait)
            else:
                logger.error("Rate limit retries exhausted.")
                break
        except APIError as e:
            last_exception = e
            error_str = str(e).lower()
            is_transient = any(k in error_str for k in ("timeout", "connection", "unavailable"))
            if getattr(e, "status_code", None) in (500, 502, 503, 504):
                is_transient = True
            if attempt < effective_retries and is_transient:
                wait = _BACKOFF_BASE * (2 ** (attempt - 1))
                logger.warning(f"API error, retrying in {wait:.1f}s ({attempt}/{effective_retries})")
                time.sleep(wait)
            else:
                logger.error(f"API error: {e}")
                break

    logger.error(f"OpenAI call failed: {last_exception}")
    return None
