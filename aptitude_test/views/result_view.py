"""
views/result_view.py — test result screen

  - score out of total and percentage
  - performance headline
  - correct / incorrect / unanswered counts
  - per-topic breakdown for mixed tests
  - review of incorrect answers
"""

from __future__ import annotations

import streamlit as st

from aptitude_test.models.result_model import TestResult
from aptitude_test.services.scoring_service import (
    calculate_topic_scores, get_incorrect_questions, performance_band,
)
from aptitude_test.services.test_session import TestSession


def _score_color(ratio: float) -> str:
    if ratio >= 0.7:
        return "#4ADE80"
    if ratio >= 0.4:
        return "#FBBF24"
    return "#F87171"


def _go_home() -> None:
    for key in ["test_session", "last_result", "history_saved", "last_tick_at"]:
        if key in st.session_state:
            del st.session_state[key]
    for k in [k for k in st.session_state if k.startswith("radio_")]:
        del st.session_state[k]
    st.session_state.page = "home"


def _stat_card(col, label: str, value: str, color: str) -> None:
    with col:
        st.markdown(
            f"<div style='text-align:center;'>"
            f"<p style='font-size:1.6rem; font-weight:700; color:{color}; margin:0;'>{value}</p>"
            f"<p style='font-size:0.8rem; color:#6b7280;'>{label}</p></div>",
            unsafe_allow_html=True,
        )


def render() -> None:
    """Render the result screen."""
    test: TestSession | None = st.session_state.get("test_session")
    result: TestResult | None = st.session_state.get("last_result")

    if test is None or result is None:
        st.warning("No result to show.")
        st.button("Back", type="primary", on_click=_go_home)
        return

    ratio = result.score / result.total if result.total else 0.0
    color = _score_color(ratio)

    _, col, _ = st.columns([0.8, 2.5, 0.8])
    with col:
        st.markdown("## 🏆 Test Results")
        st.markdown(
            f"<p style='text-align:center; font-size:3rem; font-weight:700; color:{color}; margin:0;'>"
            f"{result.score}</p>"
            f"<p style='text-align:center; color:#9ca3af;'>out of {result.total}</p>",
            unsafe_allow_html=True,
        )
        st.markdown(f"### {performance_band(result.score, result.total)}")
        st.write(f"You scored {result.percentage}% on this test")
        st.caption(f"{result.category} · {result.difficulty.value.capitalize()} · "
                   f"{result.elapsed_seconds // 60}:{result.elapsed_seconds % 60:02d} elapsed")

        if st.session_state.get("history_saved") is False:
            st.warning("Your result could not be saved to history.")

        s1, s2, s3 = st.columns(3)
        _stat_card(s1, "Correct", str(result.score), "#10b981")
        _stat_card(s2, "Incorrect", str(result.questions_answered - result.score), "#ef4444")
        _stat_card(s3, "Unanswered", str(result.total - result.questions_answered), "#f59e0b")

        st.button("Take Another Test", type="primary", use_container_width=True, on_click=_go_home)

    # ── Topic breakdown + review ─────────────────────────────────────────────
    answers = test.answers
    topic_scores = calculate_topic_scores(test.questions, answers)
    incorrect = get_incorrect_questions(test.questions, answers)

    tab_labels = [f"Review ({len(incorrect)})"]
    if len(topic_scores) > 1:
        tab_labels.insert(0, "By topic")
    tabs = st.tabs(tab_labels)

    if len(topic_scores) > 1:
        with tabs[0]:
            st.dataframe(topic_scores, hide_index=True, use_container_width=True)

    with tabs[-1]:
        if not incorrect:
            st.success("Every question answered correctly.")
        for q in incorrect:
            with st.expander(q.question_text):
                st.markdown(f"**Your answer:** {answers.get(q.id, '(unanswered)')}")
                st.markdown(f"**Correct answer:** {q.correct_answer}")
                if q.explanation:
                    st.caption(q.explanation)
