import streamlit as st

from tracker import ui
from tracker.view_state import UserViewState


ui.require_page("users")

ui.flush_notices()
head, action = st.columns([4, 1])
with head:
    st.title("Users")

state = ui.activate_view("users", UserViewState)
with action:
    if st.button("+ Add User", key="users-add", use_container_width=True):
        state.close_row_menu()
        state.open_create()

users = ui.load_users()
if users is not None:
    ui.render_user_list(state, users, "users")

ui.user_dialog(state)
