"""
views/components/timer.py

Countdown display for the running test.
Streamlit only re-renders on interaction, so the wall-clock seconds since
the last render are replayed as session ticks before drawing.
"""

import time

import streamlit as st

from aptitude_test.services.test_session import TestSession

_WARNING_SECONDS = 60


def sync(test: TestSession) -> None:
    """Apply the whole seconds elapsed since the previous sync."""
    now = time.time()
    last = st.session_state.get("last_tick_at", now)
    elapsed = int(now - last)
    if elapsed > 0 and test.is_running:
        test.advance(elapsed)
        st.session_state.last_tick_at = last + elapsed
    elif "last_tick_at" not in st.session_state:
        st.session_state.last_tick_at = now


def render(test: TestSession) -> bool:
    """
    Show the remaining time.

    Returns:
        True:  time left
        False: time is up
    """
    sync(test)
    remaining = test.time_remaining

    minutes, seconds = divmod(remaining, 60)
    time_str = f"{minutes:02d}:{seconds:02d}"

    is_warning = remaining < _WARNING_SECONDS
    css_class = "timer-display timer-warning" if is_warning else "timer-display"
    icon = "⚠️ " if is_warning else "⏱ "

    st.markdown(
        f'<div class="{css_class}">{icon}{time_str}</div>',
        unsafe_allow_html=True,
    )

    if remaining == 0:
        st.warning("⏰ Time is up. Your answers have been submitted.")
        return False
    return True
