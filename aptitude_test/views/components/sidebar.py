"""
views/components/sidebar.py

Question number grid. Clicking a number jumps to that question.
"""

from __future__ import annotations

import streamlit as st

from aptitude_test.services.test_session import TestSession


def render(test: TestSession) -> None:
    """
    Progress bar and question grid in the sidebar.

    Answered questions are marked with ✓, the current one with ▶.
    """
    questions = test.questions
    total = len(questions)
    answered = test.answered_count
    answers = test.answers
    current_idx = test.current_index

    # ── Progress ─────────────────────────────────────────────────────────────
    st.markdown(
        f"""
        <div style="display:flex; justify-content:space-between;
                    font-size:0.8rem; color:#6b7280; margin-bottom:4px;">
            <span>Progress</span>
            <span><b>{answered}</b> / {total}</span>
        </div>
        """,
        unsafe_allow_html=True,
    )
    st.progress(answered / total if total > 0 else 0)

    # ── Question grid (5 columns) ────────────────────────────────────────────
    cols_per_row = 5

    for row_start in range(0, total, cols_per_row):
        row_qs = questions[row_start : row_start + cols_per_row]
        cols = st.columns(cols_per_row)
        for col_idx, q in enumerate(row_qs):
            q_idx = row_start + col_idx
            if q_idx == current_idx:
                label = f"▶{q_idx + 1}"
            elif q.id in answers:
                label = f"✓{q_idx + 1}"
            else:
                label = str(q_idx + 1)

            with cols[col_idx]:
                if st.button(label, key=f"nav_{q_idx}", help=f"Go to question {q_idx + 1}"):
                    test.go_to(q_idx)
                    st.rerun()
