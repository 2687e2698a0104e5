import streamlit as st

from tracker import ui
from tracker.view_state import MODAL_NONE, TaskViewState, UserViewState, task_controls


ui.require_page("dashboard")
ctx = ui.get_session_context()
controls = task_controls(ctx.session)
is_admin = bool(controls)

ui.flush_notices()
ui.page_header("dashboard")

view = "tasks"
if "users_tab" in controls:
    view = st.radio(
        "View",
        ["tasks", "users"],
        horizontal=True,
        format_func=str.capitalize,
        key="dashboard-view",
        label_visibility="collapsed",
    )


def render_tasks() -> None:
    scope = "index" if is_admin else "my"
    state = ui.activate_view(f"dashboard-tasks-{scope}", lambda: TaskViewState(scope))

    st.markdown('<div class="tt-filters-bar">', unsafe_allow_html=True)
    fcol, acol = st.columns([4, 1])
    with fcol:
        ui.render_filters(state, "dash")
    with acol:
        if "add_task" in controls and st.button("+ Add Task", key="dash-add-task", use_container_width=True):
            state.close_row_menu()
            state.open_create()
    st.markdown('</div>', unsafe_allow_html=True)

    tasks = ui.load_tasks(scope)
    if tasks is not None:
        visible = state.visible_tasks(tasks)
        st.caption(f"{len(visible)} of {len(tasks)} tasks")
        if not visible:
            st.info("No tasks match the selected filters.")
        for task in visible:
            c1, c2, c3 = st.columns([7, 1.4, 0.6])
            with c1:
                ui.task_card(task, show_assignee="assignee" in controls)
            with c2:
                ui.completion_checkbox(state, task, "dash")
            with c3:
                if "row_menu" in controls:
                    ui.row_menu(state, task, "dash-task", on_view=lambda t=task: state.open_view(t))

    if "add_task" in controls and state.active_modal != MODAL_NONE:
        ui.task_dialog(state, ui.load_users() or [])
    elif state.viewing is not None:
        ui.task_view_dialog(state)


def render_users() -> None:
    state = ui.activate_view("dashboard-users", UserViewState)
    if st.button("+ Register New User", key="dash-add-user"):
        state.close_row_menu()
        state.open_create()
    users = ui.load_users()
    if users is not None:
        ui.render_user_list(state, users, "dash-user")
    ui.user_dialog(state)


if view == "users":
    render_users()
else:
    render_tasks()
