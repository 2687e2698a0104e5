"""Streamlit glue shared by the tracker pages.

Everything that touches ``st.session_state`` lives here: the per-browser
session context, HTTP client, query cache and view states, plus the widgets
the task and user pages have in common.
"""

from __future__ import annotations

import html
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd
import streamlit as st

from tracker.config import TrackerConfig
from tracker.errors import AuthError, GatewayError, MalformedRecord, MutationError, ValidationError
from tracker.gateway import TrackerClient
from tracker.models import PRIORITIES, PRIORITY_FILTERS, ROLES, STATUS_FILTERS, Task, User
from tracker.page_catalog import get_page, resolve_page
from tracker.query_cache import QueryCache, QueryKey
from tracker.session import SessionContext, SessionStateCredentialStore
from tracker.theme import priority_badge
from tracker.view_state import (
    MODAL_EDIT,
    MODAL_NONE,
    TOGGLE_IN_FLIGHT,
    ListViewState,
    TaskViewState,
    UserViewState,
    task_form_defaults,
    user_form_defaults,
)


logger = logging.getLogger(__name__)

_NOTICES = "_tracker_notices"
_VIEWS = "_tracker_views"


# ---------------- per-session objects ----------------

@st.cache_resource(show_spinner=False)
def get_config() -> TrackerConfig:
    return TrackerConfig.from_env()


def get_session_context() -> SessionContext:
    """Return this browser session's context, hydrating it on first use."""
    ctx = st.session_state.get("session_ctx")
    if ctx is None:
        ctx = SessionContext(SessionStateCredentialStore(st.session_state))
        ctx.hydrate()
        st.session_state["session_ctx"] = ctx
    return ctx


def get_client() -> TrackerClient:
    client = st.session_state.get("tracker_client")
    if client is None:
        cfg = get_config()
        ctx = get_session_context()
        client = TrackerClient(
            base_url=cfg.api_url,
            token_provider=lambda: ctx.token,
            verify_ssl=cfg.verify_ssl,
            timeout_seconds=cfg.timeout_seconds,
        )
        st.session_state["tracker_client"] = client
    return client


def get_cache() -> QueryCache:
    if "query_cache" not in st.session_state:
        st.session_state["query_cache"] = QueryCache()
    return st.session_state["query_cache"]


def activate_view(name: str, factory: Callable[[], ListViewState]) -> Any:
    """Mount the view state for ``name`` and unmount every other view.

    Responses that arrive for an unmounted view are not applied to it.
    """
    views: Dict[str, ListViewState] = st.session_state.setdefault(_VIEWS, {})
    if name not in views:
        views[name] = factory()
    for other_name, other in views.items():
        if other_name != name and other.mounted:
            other.unmount()
    views[name].mount()
    return views[name]


# ---------------- session lifecycle ----------------

def _reset_session_state() -> None:
    get_cache().clear()
    st.session_state.pop(_VIEWS, None)


def logout() -> None:
    get_session_context().logout()
    _reset_session_state()
    st.rerun()


def expire_session() -> None:
    """The backend no longer accepts the credential: drop it and go to login."""
    get_session_context().logout()
    _reset_session_state()
    notify("Your session has expired. Please sign in again.", "warning")
    st.rerun()


def resolve_role(ctx: SessionContext, client: TrackerClient) -> None:
    if ctx.session is None or ctx.session.role_resolved:
        return
    try:
        ctx.resolve_profile(client)
    except AuthError:
        expire_session()
    except (GatewayError, MalformedRecord) as exc:
        # Stay least privileged; the next rerun tries again.
        logger.warning("Could not resolve profile: %s", exc)


def require_page(key: str) -> None:
    """Redirect away from ``key`` if the current session may not see it."""
    ctx = get_session_context()
    target = resolve_page(key, ctx.session)
    if target.key != key:
        st.switch_page(target.path)


# ---------------- notifications ----------------

def notify(message: str, kind: str = "error") -> None:
    st.session_state.setdefault(_NOTICES, []).append((kind, message))


def flush_notices() -> None:
    for kind, message in st.session_state.pop(_NOTICES, []):
        if kind == "success":
            st.toast(message, icon="✅")
        elif kind == "warning":
            st.warning(message)
        else:
            st.error(message)


# ---------------- data loading ----------------

def load(key: QueryKey, fetch: Callable[[], Any]) -> Optional[Any]:
    """Read ``key`` through the cache; render the failure and return None on error."""
    cache = get_cache()
    try:
        return cache.get(key, fetch)
    except AuthError:
        expire_session()
    except MalformedRecord as exc:
        logger.warning("Malformed data for %s: %s", key, exc)
        st.error(f"Some records from the server could not be read, so the list is not shown. ({exc})")
    except GatewayError as exc:
        st.error(str(exc))
        if st.button("Retry", key=f"retry-{'-'.join(key)}"):
            cache.invalidate(key)
            st.rerun()
    return None


def load_tasks(scope: str) -> Optional[List[Task]]:
    client = get_client()
    return load(("tasks", scope), lambda: client.list_tasks(scope))


def load_users() -> Optional[List[User]]:
    client = get_client()
    return load(("users",), client.list_users)


# ---------------- shared widgets ----------------

def render_sidebar(ctx: SessionContext, title: str) -> None:
    with st.sidebar:
        st.markdown(f"<div class='tt-brand'>{html.escape(title)}</div>", unsafe_allow_html=True)
        if ctx.session is None:
            return
        role = ctx.session.role if ctx.session.role_resolved else "…"
        st.caption(f"Signed in as **{ctx.session.username}** ({role})")
        if st.button("Logout", key="logout", use_container_width=True):
            logout()


def render_filters(state: TaskViewState, key_prefix: str) -> None:
    c1, c2 = st.columns(2)
    with c1:
        status = st.selectbox(
            "Status",
            STATUS_FILTERS,
            index=STATUS_FILTERS.index(state.status_filter),
            format_func=str.capitalize,
            key=f"{key_prefix}-status",
        )
    with c2:
        priority = st.selectbox(
            "Priority",
            PRIORITY_FILTERS,
            index=PRIORITY_FILTERS.index(state.priority_filter),
            format_func=str.capitalize,
            key=f"{key_prefix}-priority",
        )
    if (status, priority) != state.filters:
        state.set_filters(status, priority)
        state.close_row_menu()


def tasks_to_df(tasks: Sequence[Task], *, show_assignee: bool = False) -> pd.DataFrame:
    columns = ["Title", "Description", "Due Date", "Priority", "Status"]
    if show_assignee:
        columns.append("Assigned To")
    rows = []
    for t in tasks:
        row = {
            "Title": t.title,
            "Description": t.description,
            "Due Date": t.due_date,
            "Priority": t.priority.capitalize(),
            "Status": "Completed" if t.completed else "Pending",
        }
        if show_assignee:
            row["Assigned To"] = t.assigned_to.username if t.assigned_to else ""
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def _on_toggle(state: TaskViewState, task: Task, widget_key: str) -> None:
    try:
        state.toggle_complete(get_client(), get_cache(), task)
    except AuthError:
        get_session_context().logout()
        _reset_session_state()
        notify("Your session has expired. Please sign in again.", "warning")
    except MutationError as exc:
        # Show the last confirmed value again.
        st.session_state[widget_key] = task.completed
        notify(f"Could not update task: {exc}")


def completion_checkbox(state: TaskViewState, task: Task, key_prefix: str, label: str = "Completed") -> None:
    widget_key = f"{key_prefix}-done-{task.id}-{int(task.completed)}"
    st.checkbox(
        label,
        value=task.completed,
        key=widget_key,
        disabled=state.toggle_state(task) == TOGGLE_IN_FLIGHT,
        on_change=_on_toggle,
        args=(state, task, widget_key),
    )


def task_card_html(task: Task, *, show_assignee: bool) -> str:
    """Card markup for one task; backend text is escaped."""
    css = "tt-task-card tt-done" if task.completed else "tt-task-card"
    meta = f"{priority_badge(task.priority)} Due: {task.due_date:%d %b %Y}"
    if show_assignee:
        assignee = task.assigned_to.username if task.assigned_to else "—"
        meta += f" • Assigned to: {html.escape(assignee)}"
    return (
        f"<div class='{css}'><div class='tt-task-title'>{html.escape(task.title)}</div>"
        f"<div class='tt-task-desc'>{html.escape(task.description)}</div>"
        f"<div class='tt-task-meta'>{meta}</div></div>"
    )


def task_card(task: Task, *, show_assignee: bool) -> None:
    st.markdown(task_card_html(task, show_assignee=show_assignee), unsafe_allow_html=True)


def row_menu(state: ListViewState, record: Any, key_prefix: str, *, on_view: Optional[Callable[[], None]] = None) -> None:
    """The ⋮ action menu of one row, with its delete confirmation."""
    if st.button("⋮", key=f"{key_prefix}-menu-{record.id}"):
        state.toggle_row_menu(record.id)
        st.rerun()
    if state.expanded_row_id != record.id:
        return
    if on_view is not None and st.button("View", key=f"{key_prefix}-view-{record.id}", use_container_width=True):
        on_view()
        st.rerun()
    if st.button("Edit", key=f"{key_prefix}-edit-{record.id}", use_container_width=True):
        state.open_edit(record)
        st.rerun()
    if state.pending_delete_id == record.id:
        st.warning("Are you sure?")
        c1, c2 = st.columns(2)
        if c1.button("Delete", key=f"{key_prefix}-confirm-{record.id}", type="primary"):
            try:
                state.confirm_delete(get_client(), get_cache())
                notify("Deleted", "success")
            except AuthError:
                expire_session()
            except MutationError as exc:
                notify(f"Delete failed: {exc}")
            st.rerun()
        if c2.button("Cancel", key=f"{key_prefix}-cancel-{record.id}"):
            state.cancel_delete()
            st.rerun()
    elif st.button("Delete", key=f"{key_prefix}-delete-{record.id}", use_container_width=True):
        state.request_delete(record.id)
        st.rerun()


def _submit(state: ListViewState, form: Dict[str, Any], saved_message: str) -> None:
    try:
        closed = state.submit_modal(get_client(), get_cache(), form)
    except ValidationError as exc:
        st.error(str(exc))
        return
    except AuthError:
        expire_session()
        return
    except MutationError as exc:
        st.error(f"Failed to save: {exc}")
        return
    if closed:
        notify(saved_message, "success")
        st.rerun()


def _field_error(state: ListViewState, field: str) -> None:
    if field in state.form_errors:
        st.caption(f":red[{state.form_errors[field]}]")


def task_dialog(state: TaskViewState, users: Sequence[User]) -> None:
    """Create/edit dialog for the open task modal."""
    if state.active_modal == MODAL_NONE:
        return
    editing = state.editing if state.active_modal == MODAL_EDIT else None

    @st.dialog("Edit Task" if editing else "Create Task")
    def _dlg() -> None:
        defaults = task_form_defaults(editing)
        user_ids = [u.id for u in users]
        labels = {u.id: u.full_name for u in users}
        with st.form(key=f"task-form-{defaults.get('id', 'new')}"):
            title = st.text_input("Title", value=defaults["title"])
            _field_error(state, "title")
            description = st.text_area("Description", value=defaults["description"], height=100)
            _field_error(state, "description")
            priority = st.selectbox(
                "Priority", PRIORITIES, index=PRIORITIES.index(defaults["priority"]), format_func=str.capitalize
            )
            due = st.date_input("Due Date", value=defaults["dueDate"] or date.today())
            _field_error(state, "dueDate")
            assignee_index = user_ids.index(defaults["assignedToUserId"]) if defaults["assignedToUserId"] in user_ids else None
            assignee = st.selectbox(
                "Assign To",
                user_ids,
                index=assignee_index,
                format_func=lambda uid: labels.get(uid, str(uid)),
                placeholder="-- Select User --",
            )
            _field_error(state, "assignedToUserId")
            submitted = st.form_submit_button("Update" if editing else "Create", type="primary")
        if submitted:
            form = {
                "title": title,
                "description": description,
                "priority": priority,
                "dueDate": due,
                "assignedToUserId": assignee,
            }
            if editing:
                form["id"] = editing.id
            _submit(state, form, "Task saved")
        if st.button("Close", key="task-dialog-close"):
            state.close_modal()
            st.rerun()

    _dlg()


def task_view_dialog(state: TaskViewState) -> None:
    """Read-only task details."""
    task = state.viewing
    if task is None:
        return

    @st.dialog("View Task")
    def _dlg() -> None:
        st.text_input("Title", value=task.title, disabled=True)
        st.text_area("Description", value=task.description, disabled=True)
        st.text_input("Priority", value=task.priority.capitalize(), disabled=True)
        st.date_input("Due Date", value=task.due_date, disabled=True)
        if st.button("Close", key="task-view-close"):
            state.close_modal()
            st.rerun()

    _dlg()


def user_dialog(state: UserViewState) -> None:
    """Create/edit dialog for the open user modal."""
    if state.active_modal == MODAL_NONE:
        return
    editing = state.editing if state.active_modal == MODAL_EDIT else None

    @st.dialog("Edit User" if editing else "Register New User")
    def _dlg() -> None:
        defaults = user_form_defaults(editing)
        with st.form(key=f"user-form-{defaults.get('id', 'new')}"):
            first = st.text_input("First Name", value=defaults["firstName"])
            _field_error(state, "firstName")
            last = st.text_input("Last Name", value=defaults["lastName"])
            _field_error(state, "lastName")
            username = st.text_input("Username", value=defaults["username"])
            _field_error(state, "username")
            password = ""
            if editing is None:
                password = st.text_input("Password", type="password")
                _field_error(state, "password")
            department = st.text_input("Department", value=defaults["department"])
            _field_error(state, "department")
            role = st.selectbox("Role", ROLES, index=ROLES.index(defaults["role"]), format_func=str.capitalize)
            submitted = st.form_submit_button("Update" if editing else "Create", type="primary")
        if submitted:
            form = {
                "firstName": first,
                "lastName": last,
                "username": username,
                "password": password,
                "department": department,
                "role": role,
            }
            if editing:
                form["id"] = editing.id
            _submit(state, form, "User saved")
        if st.button("Close", key="user-dialog-close"):
            state.close_modal()
            st.rerun()

    _dlg()


def page_header(key: str) -> None:
    page = get_page(key)
    st.title(f"{page.icon} {page.title}")


def user_row_html(user: User) -> str:
    details = " • ".join(html.escape(v) for v in (user.username, user.department, user.role))
    return (
        f"<div class='tt-user-row'><b>{html.escape(user.full_name)}</b>"
        f"<div class='tt-task-meta'>{details}</div></div>"
    )


def render_user_list(state: UserViewState, users: Sequence[User], key_prefix: str) -> None:
    if not users:
        st.info("No users yet.")
        return
    for user in users:
        c1, c2 = st.columns([8, 1])
        with c1:
            st.markdown(user_row_html(user), unsafe_allow_html=True)
        with c2:
            row_menu(state, user, key_prefix)
