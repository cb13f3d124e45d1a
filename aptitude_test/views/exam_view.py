"""
views/exam_view.py — test taking screen

Layout:
  - st.sidebar : timer + question grid + submit
  - main area  : current question card + previous / next / submit

State:
  - st.session_state.test_session   (TestSession, owned by this flow)
  - the radio widget value is pushed into the session on every rerun
"""

from __future__ import annotations

import streamlit as st

from aptitude_test.errors import StateViolation
from aptitude_test.services.test_session import TestSession
from aptitude_test.views.components import question_card as qcard
from aptitude_test.views.components import sidebar as nav
from aptitude_test.views.components import timer as tmr


def _go_to_result(test: TestSession) -> None:
    """Submit (no-op when already completed) and show the result page."""
    test.submit()
    st.session_state.page = "result"
    st.rerun()


def _save_current_answer(test: TestSession, question_id: str) -> None:
    radio_key = f"radio_{question_id}"
    if test.is_running and st.session_state.get(radio_key):
        test.select_answer(question_id, st.session_state[radio_key])


def render() -> None:
    """Render the exam screen."""

    # ── Guard ────────────────────────────────────────────────────────────────
    test: TestSession | None = st.session_state.get("test_session")
    if test is None or not test.questions:
        st.warning("No test in progress. Go back to start one.")
        if st.button("Back", type="primary"):
            st.session_state.page = "home"
            st.rerun()
        return

    # ── Sidebar ──────────────────────────────────────────────────────────────
    with st.sidebar:
        st.markdown("### 📋 Questions")
        still_running = tmr.render(test)
        st.markdown('<hr class="apt-divider">', unsafe_allow_html=True)

        if not still_running or test.is_completed:
            if st.button("See results", key="timeout_result", type="primary"):
                _go_to_result(test)
            return

        nav.render(test)
        st.markdown('<hr class="apt-divider">', unsafe_allow_html=True)

        if test.unanswered_count > 0:
            st.markdown(
                f"<p style='font-size:0.8rem; color:#f59e0b;'>"
                f"⚠️ Unanswered: {test.unanswered_count}</p>",
                unsafe_allow_html=True,
            )
        if st.button("Submit Test", key="submit_sidebar", type="primary"):
            _save_current_answer(test, test.current_question.id)
            _go_to_result(test)

    total = len(test.questions)
    current_idx = test.current_index
    current_q = test.current_question

    st.markdown(f"## {test.selected_set.request.category_label} · "
                f"{test.selected_set.request.difficulty.value.capitalize()}")

    # ── Question card ────────────────────────────────────────────────────────
    selected = qcard.render(
        question=current_q,
        question_number=current_idx + 1,
        total=total,
        saved_answer=test.answers.get(current_q.id),
    )
    if selected:
        try:
            test.select_answer(current_q.id, selected)
        except StateViolation:
            st.session_state.page = "result"
            st.rerun()

    # ── Previous / next ──────────────────────────────────────────────────────
    nav_left, nav_center, nav_right = st.columns([1, 2, 1])

    with nav_left:
        if st.button("← Previous", key="prev_btn", disabled=current_idx == 0,
                     use_container_width=True):
            _save_current_answer(test, current_q.id)
            test.previous()
            st.rerun()

    with nav_center:
        st.markdown(
            f"<p style='text-align:center; font-size:0.85rem; color:#9ca3af; "
            f"padding-top:8px;'>{current_idx + 1} / {total}</p>",
            unsafe_allow_html=True,
        )

    with nav_right:
        if current_idx < total - 1:
            if st.button("Next Question →", key="next_btn",
                         type="primary", use_container_width=True):
                _save_current_answer(test, current_q.id)
                test.next()
                st.rerun()
        else:
            if st.button("Submit Test", key="submit_last",
                         type="primary", use_container_width=True):
                _save_current_answer(test, current_q.id)
                _go_to_result(test)
