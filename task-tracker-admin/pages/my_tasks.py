import html

import streamlit as st

from tracker import ui
from tracker.session import can_see_admin_views
from tracker.theme import priority_badge
from tracker.view_state import TaskViewState


ui.require_page("tasks")
ctx = ui.get_session_context()
is_admin = can_see_admin_views(ctx.session)
scope = "all" if is_admin else "my"

ui.flush_notices()
st.title("My Tasks")

state = ui.activate_view(f"tasks-{scope}", lambda: TaskViewState(scope))
ui.render_filters(state, "tasks")

tasks = ui.load_tasks(scope)
if tasks is None:
    st.stop()

visible = state.visible_tasks(tasks)
if not visible:
    st.info("No tasks match the selected filters.")
    st.stop()

header = st.columns([2, 3, 1.2, 1, 1.4])
for col, label in zip(header, ["Title", "Description", "Due Date", "Priority", "Status"]):
    col.markdown(f"<div class='tt-table-head'>{label}</div>", unsafe_allow_html=True)

for task in visible:
    row_css = "tt-row-done" if task.completed else "tt-row"
    cols = st.columns([2, 3, 1.2, 1, 1.4])
    cols[0].markdown(f"<div class='{row_css}'><b>{html.escape(task.title)}</b></div>", unsafe_allow_html=True)
    cols[1].markdown(f"<div class='{row_css}'>{html.escape(task.description)}</div>", unsafe_allow_html=True)
    cols[2].markdown(f"{task.due_date:%d %b %Y}")
    cols[3].markdown(priority_badge(task.priority), unsafe_allow_html=True)
    with cols[4]:
        ui.completion_checkbox(state, task, "tasks", label="Completed" if task.completed else "Mark Complete")

st.download_button(
    "Export CSV",
    ui.tasks_to_df(visible, show_assignee=is_admin).to_csv(index=False).encode("utf-8"),
    file_name="tasks.csv",
    mime="text/csv",
)
