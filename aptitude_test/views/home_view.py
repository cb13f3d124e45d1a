"""
views/home_view.py — test setup and history

  - single topic / mixed topics mode
  - topic and difficulty pickers with question counts
  - previous results of the current user
"""

from __future__ import annotations

import time

import streamlit as st

import config
from aptitude_test.errors import HistoryStoreError, InsufficientQuestions
from aptitude_test.models.question_model import Difficulty
from aptitude_test.models.result_model import TestResult
from aptitude_test.models.selection_model import SelectionMode, SelectionRequest
from aptitude_test.services.history_store import HistoryStore, record_result
from aptitude_test.services.question_bank import get_default_bank
from aptitude_test.services.selector import select_questions
from aptitude_test.services.test_session import TestSession


@st.cache_resource
def _history_store() -> HistoryStore:
    return HistoryStore(config.HISTORY_FILE)


def _on_complete(result: TestResult) -> None:
    st.session_state.last_result = result
    st.session_state.history_saved = record_result(
        _history_store(), result, st.session_state.get("user_id", config.DEFAULT_USER_ID)
    )


def _start_test(request: SelectionRequest) -> None:
    try:
        selected = select_questions(get_default_bank(), request)
    except InsufficientQuestions as e:
        st.session_state.setup_error = str(e)
        return

    for k in [k for k in st.session_state if k.startswith("radio_")]:
        del st.session_state[k]

    test = TestSession(on_complete=_on_complete)
    test.start(selected, config.TEST_DURATION_SECONDS)
    st.session_state.test_session = test
    st.session_state.last_tick_at = time.time()
    st.session_state.last_result = None
    st.session_state.history_saved = None
    st.session_state.setup_error = None
    st.session_state.page = "exam"


def _render_setup() -> None:
    bank = get_default_bank()
    availability = bank.availability()
    categories = bank.categories()

    st.markdown("### 📘 Start a New Test")

    mode = st.radio(
        "Test mode",
        options=[SelectionMode.SINGLE, SelectionMode.MIXED],
        format_func=lambda m: "Single Topic" if m is SelectionMode.SINGLE else "Mix Topics",
        horizontal=True,
        key="mode_selector",
    )
    difficulty = st.selectbox(
        "Difficulty",
        options=list(Difficulty),
        format_func=lambda d: d.value.capitalize(),
        key="difficulty_selector",
    )

    def _label(c: str) -> str:
        return f"{c} ({availability.get(c, {}).get(difficulty.value, 0)} questions)"

    if mode is SelectionMode.SINGLE:
        topic = st.selectbox("Category", options=categories, format_func=_label, key="topic_selector")
        topics = [topic] if topic else []
    else:
        topics = st.multiselect(
            "Topics", options=categories, default=categories[:1],
            format_func=_label, key="topics_selector",
        )

    if st.session_state.get("setup_error"):
        st.error(st.session_state.setup_error)

    if st.button("🧠 Start Test", type="primary", disabled=not topics):
        _start_test(SelectionRequest(mode=mode, topics=topics, difficulty=difficulty))
        st.rerun()


def _render_history() -> None:
    st.markdown("### 📈 Previous Test Results")
    user_id = st.session_state.get("user_id", config.DEFAULT_USER_ID)
    try:
        records = _history_store().list_for(user_id)
    except HistoryStoreError:
        st.error("Failed to load previous results")
        return

    if not records:
        st.info("You haven't taken any tests yet. Start a new test to see your results here.")
        return

    st.caption(f"{len(records)} Tests")
    st.dataframe(
        [
            {
                "Date": r.completed_at.strftime("%Y-%m-%d"),
                "Category": r.category,
                "Difficulty": r.difficulty.value.capitalize(),
                "Score": f"{r.score}/{r.total} ({r.percentage}%)",
            }
            for r in records
        ],
        hide_index=True,
        use_container_width=True,
    )


def render() -> None:
    """Render the home screen."""
    st.markdown("## Aptitude Tests")

    user_id = st.text_input("Your id", value=st.session_state.get("user_id", config.DEFAULT_USER_ID))
    if user_id.strip():
        st.session_state.user_id = user_id.strip()

    setup_col, history_col = st.columns(2)
    with setup_col:
        _render_setup()
    with history_col:
        _render_history()
