"""
app.py — Streamlit entry point

    streamlit run aptitude_test/app.py
"""

import logging
import os
import sys

_ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

import streamlit as st

from aptitude_test.views import exam_view, home_view, result_view

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

_PAGES = {
    "home": home_view.render,
    "exam": exam_view.render,
    "result": result_view.render,
}

_CSS = """
<style>
.timer-display { font-size:1.4rem; font-weight:700; color:#4F46E5; text-align:center; }
.timer-warning { color:#ef4444; }
.question-number-badge { background:#6366F1; color:white; border-radius:12px;
                         padding:2px 10px; font-size:0.8rem; font-weight:600; }
.question-card { border:1px solid #e5e7eb; border-radius:8px; padding:16px; margin-bottom:12px; }
.apt-divider { border:none; border-top:1px solid #e5e7eb; margin:12px 0; }
</style>
"""


def main() -> None:
    st.set_page_config(page_title="Aptitude Tests", page_icon="🧠", layout="wide")
    st.markdown(_CSS, unsafe_allow_html=True)

    if "page" not in st.session_state:
        st.session_state.page = "home"

    _PAGES.get(st.session_state.page, home_view.render)()


main()
