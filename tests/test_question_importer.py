import json

import fitz
import pytest

from conftest import make_question
from aptitude_test.models.question_model import Difficulty
from aptitude_test.services import question_importer
from aptitude_test.services.question_bank import QuestionBank


def _pdf_bytes(*pages):
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


LLM_REPLY = json.dumps({
    "questions": [
        {
            "question_text": "What is 2 + 2?",
            "options": ["3", "4", "5", "6"],
            "correct_answer": "B",
            "category": "Mathematics",
            "difficulty": "Easy",
        },
        {
            "question_text": "Which protocol resolves names?",
            "options": ["DNS", "ARP"],
            "correct_answer": "dns",
            "category": "Networking",
            "difficulty": "medium",
        },
        {
            "question_text": "Broken question",
            "options": ["x", "y"],
            "correct_answer": "z",
            "category": "Mathematics",
            "difficulty": "easy",
        },
    ]
})


@pytest.fixture
def fake_openai(monkeypatch):
    calls = []

    def _fake_call(system_prompt, user_content, client=None, max_retries=3):
        calls.append(user_content)
        return "```json\n" + LLM_REPLY + "\n```"

    monkeypatch.setattr(question_importer, "_make_client", lambda api_key: object())
    monkeypatch.setattr(question_importer, "_call_openai", _fake_call)
    return calls


def test_extract_questions_from_pdf(fake_openai):
    questions = question_importer.extract_questions_from_pdf(_pdf_bytes("1. What is 2 + 2?"), "sk-test")

    assert [q.question_text for q in questions] == ["What is 2 + 2?", "Which protocol resolves names?"]
    assert questions[0].correct_answer == "4"
    assert questions[0].difficulty is Difficulty.EASY
    assert questions[1].correct_answer == "DNS"
    assert questions[0].id.startswith("mathematics-")
    assert "[PAGE 1]" in fake_openai[0]


def test_overrides_replace_category_and_difficulty(fake_openai):
    questions = question_importer.extract_questions_from_pdf(
        _pdf_bytes("page one"), "sk-test", category="General Knowledge", difficulty=Difficulty.HARD
    )

    assert {q.category for q in questions} == {"General Knowledge"}
    assert {q.difficulty for q in questions} == {Difficulty.HARD}
    assert all(q.id.startswith("general-knowledge-") for q in questions)


def test_pages_are_grouped(fake_openai):
    pages = [f"page {i}" for i in range(question_importer.TEXT_PAGES_PER_GROUP + 1)]

    questions = question_importer.extract_questions_from_pdf(_pdf_bytes(*pages), "sk-test")

    assert len(fake_openai) == 2
    # both groups return the same questions; ids dedupe them
    assert len(questions) == 2


def test_model_supplied_ids_are_ignored(monkeypatch):
    replies = iter([
        [{"id": "1", "question_text": "What is 3 + 3?"}, {"id": None, "question_text": "What is 5 - 1?"}],
        [{"id": "1", "question_text": "What is 7 * 2?"}, {"id": None, "question_text": "What is 9 / 3?"}],
    ])

    def _fake_call(system_prompt, user_content, client=None, max_retries=3):
        items = [
            dict(item, options=["1", "2"], correct_answer="A", category="Mathematics", difficulty="easy")
            for item in next(replies)
        ]
        return json.dumps({"questions": items})

    monkeypatch.setattr(question_importer, "_make_client", lambda api_key: object())
    monkeypatch.setattr(question_importer, "_call_openai", _fake_call)
    pages = [f"page {i}" for i in range(question_importer.TEXT_PAGES_PER_GROUP + 1)]

    questions = question_importer.extract_questions_from_pdf(_pdf_bytes(*pages), "sk-test")

    assert len(questions) == 4
    assert len({q.id for q in questions}) == 4
    assert all(q.id.startswith("mathematics-") for q in questions)


def test_empty_pdf_is_rejected():
    with pytest.raises(ValueError):
        question_importer.extract_questions_from_pdf(b"", "sk-test")


def test_unreadable_pdf_is_rejected(monkeypatch):
    monkeypatch.setattr(question_importer, "_make_client", lambda api_key: object())

    with pytest.raises(ValueError):
        question_importer.extract_questions_from_pdf(b"definitely not a pdf", "sk-test")


def test_missing_api_key():
    with pytest.raises(RuntimeError):
        question_importer.extract_questions_from_pdf(_pdf_bytes("x"), "")


def test_clean_json_response():
    clean = question_importer._clean_json_response

    assert clean('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert clean('Here you go: [1, 2] thanks') == "[1, 2]"
    assert clean("no json here") == ""
    assert clean("") == ""


def test_match_answer_to_option():
    match = question_importer._match_answer_to_option
    options = ["Paris", "Rome", "Berlin"]

    assert match("Rome", options) == "Rome"
    assert match("(c)", options) == "Berlin"
    assert match("A", options) == "Paris"
    assert match("  berlin ", options) == "Berlin"
    assert match("Madrid", options) == ""
    assert match("", options) == ""


def test_parse_response_rejects_non_json():
    assert question_importer._parse_response_to_questions("not json") is None
    assert question_importer._parse_response_to_questions('{"questions": []}') == []


def test_merge_into_bank_skips_known_ids():
    bank = QuestionBank([make_question("q1"), make_question("q2")])

    merged, added = question_importer.merge_into_bank(
        bank, [make_question("q2"), make_question("q3")]
    )

    assert added == 1
    assert [q.id for q in merged] == ["q1", "q2", "q3"]
    assert len(bank) == 2
