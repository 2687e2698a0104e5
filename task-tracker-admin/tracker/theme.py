import os

import streamlit as st
from streamlit.errors import StreamlitAPIException


def set_theme(
    page_title: str = "Task Tracker",
    page_icon: str = "✅",
    layout: str = "wide",
    initial_sidebar_state: str = "expanded",
):
    """Configure the Streamlit page and inject the tracker CSS.

    Safe to call at the top of every page. Streamlit only honours the first
    set_page_config per run, the CSS is injected every time.
    """
    try:
        st.set_page_config(
            page_title=page_title,
            page_icon=page_icon,
            layout=layout,
            initial_sidebar_state=initial_sidebar_state,
        )
    except StreamlitAPIException:
        # set_page_config can only be called once per run
        pass

    theme_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'assets', 'theme.css')

    try:
        with open(theme_file, 'r', encoding='utf-8') as f:
            st.markdown(f"<style>{f.read()}</style>", unsafe_allow_html=True)
    except FileNotFoundError:
        st.error(f"Theme file not found at {theme_file}.")


def priority_badge(priority: str) -> str:
    return f'<span class="tt-priority tt-priority-{priority}">{priority}</span>'
