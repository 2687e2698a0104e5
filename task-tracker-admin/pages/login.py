import streamlit as st

from tracker import ui
from tracker.errors import AuthError, GatewayError


ui.flush_notices()
ctx = ui.get_session_context()

_, mid, _ = st.columns([1, 1.2, 1])
with mid:
    st.markdown("<h2 class='tt-login-title'>Login</h2>", unsafe_allow_html=True)
    with st.form("login-form"):
        username = st.text_input("Username", placeholder="Enter username")
        password = st.text_input("Password", type="password", placeholder="••••••••")
        submitted = st.form_submit_button("Sign In", type="primary", use_container_width=True)

    if submitted:
        try:
            ctx.login(ui.get_client(), username.strip(), password)
        except AuthError:
            st.error("Invalid credentials. Please try again.")
        except GatewayError as exc:
            st.error(f"Could not reach the server: {exc}")
        else:
            ui.get_cache().clear()
            st.rerun()
