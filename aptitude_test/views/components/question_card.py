"""
views/components/question_card.py

Renders one question as a card and returns the option the user picked.
"""

from __future__ import annotations

from typing import Optional

import streamlit as st

from aptitude_test.models.question_model import Question


def render(
    question: Question,
    question_number: int,
    total: int,
    saved_answer: Optional[str] = None,
) -> Optional[str]:
    """
    Args:
        question:        question to show
        question_number: 1-based position in the test
        total:           number of questions in the test
        saved_answer:    previously recorded answer, if any

    Returns:
        The selected option, or None when nothing is selected.
    """

    # ── Header ───────────────────────────────────────────────────────────────
    st.markdown(
        f"""
        <div style="display:flex; align-items:center; gap:10px; margin-bottom:12px;">
            <span class="question-number-badge">Question {question_number} of {total}</span>
            <span style="font-size:0.8rem; color:#9ca3af;">{question.category}</span>
        </div>
        """,
        unsafe_allow_html=True,
    )
    st.progress((question_number - 1) / total if total else 0)

    # ── Prompt ───────────────────────────────────────────────────────────────
    st.markdown(
        f"""
        <div class="question-card">
            <p style="font-size:1.05rem; font-weight:600; color:#1a1a2e;
                      line-height:1.7; margin:0;">
                {question.question_text}
            </p>
        </div>
        """,
        unsafe_allow_html=True,
    )

    # ── Options ──────────────────────────────────────────────────────────────
    # index only seeds the widget on first render, reruns keep the keyed value
    default_index = question.options.index(saved_answer) if saved_answer in question.options else None

    return st.radio(
        "Choose an answer",
        options=question.options,
        index=default_index,
        key=f"radio_{question.id}",
        label_visibility="collapsed",
    )
