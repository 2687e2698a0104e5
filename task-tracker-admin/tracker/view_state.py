"""UI state for the task and user list views.

These objects hold no Streamlit widgets. Pages keep one instance per view in
``st.session_state`` and translate clicks into the transitions below, so the
rules can be tested without a browser.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from tracker.errors import MalformedRecord, ValidationError
from tracker.models import PRIORITIES, PRIORITY_FILTERS, ROLES, ROLE_USER, STATUS_FILTERS, Task, User, parse_due_date
from tracker.query_cache import QueryCache, QueryKey
from tracker.session import Session, can_see_admin_views
from tracker.task_view import derive_view


logger = logging.getLogger(__name__)

MODAL_NONE = "none"
MODAL_CREATE = "create"
MODAL_EDIT = "edit"

TOGGLE_SETTLED_FALSE = "settled-false"
TOGGLE_SETTLED_TRUE = "settled-true"
TOGGLE_IN_FLIGHT = "in-flight"

TASK_ADMIN_CONTROLS = ("add_task", "row_menu", "assignee", "users_tab")


def task_controls(session: Optional[Session]) -> Tuple[str, ...]:
    """Admin-only controls a task view may render for this session."""
    return TASK_ADMIN_CONTROLS if can_see_admin_views(session) else ()


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_task_form(form: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the request body for a task form or raise ValidationError."""
    errors: Dict[str, str] = {}
    for field in ("title", "description"):
        if _blank(form.get(field)):
            errors[field] = "Required"
    priority = str(form.get("priority") or "").lower()
    if priority not in PRIORITIES:
        errors["priority"] = "Choose low, medium or high"

    due: Optional[date] = None
    if _blank(form.get("dueDate")):
        errors["dueDate"] = "Required"
    else:
        try:
            due = parse_due_date(form.get("dueDate"))
        except MalformedRecord:
            errors["dueDate"] = "Not a valid date"

    assignee = form.get("assignedToUserId")
    assignee_id: Optional[int] = None
    if _blank(assignee):
        errors["assignedToUserId"] = "Select a user"
    else:
        try:
            assignee_id = int(assignee)
        except (TypeError, ValueError):
            errors["assignedToUserId"] = "Select a user"

    if errors:
        raise ValidationError(errors)
    return {
        "title": str(form["title"]).strip(),
        "description": str(form["description"]).strip(),
        "priority": priority,
        "dueDate": due.isoformat(),
        "assignedToUserId": assignee_id,
    }


def validate_user_form(form: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the request body for a user form or raise ValidationError.

    The password is required only when creating (no ``id``) and is left out
    of updates when blank.
    """
    errors: Dict[str, str] = {}
    for field in ("firstName", "lastName", "username", "department"):
        if _blank(form.get(field)):
            errors[field] = "Required"
    creating = _blank(form.get("id"))
    if creating and _blank(form.get("password")):
        errors["password"] = "Required"
    role = str(form.get("role") or ROLE_USER).lower()
    if role not in ROLES:
        errors["role"] = "Choose user or admin"
    if errors:
        raise ValidationError(errors)

    payload = {field: str(form[field]).strip() for field in ("firstName", "lastName", "username", "department")}
    payload["role"] = role
    if not _blank(form.get("password")):
        payload["password"] = str(form["password"])
    return payload


def task_form_defaults(task: Optional[Task]) -> Dict[str, Any]:
    if task is None:
        return {"title": "", "description": "", "priority": "medium", "dueDate": None, "assignedToUserId": None}
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "dueDate": task.due_date,
        "assignedToUserId": task.assigned_to.id if task.assigned_to else None,
    }


def user_form_defaults(user: Optional[User]) -> Dict[str, Any]:
    if user is None:
        return {"firstName": "", "lastName": "", "username": "", "password": "", "department": "", "role": ROLE_USER}
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "username": user.username,
        "department": user.department,
        "role": user.role,
    }


class ListViewState:
    """State shared by the task and user list views.

    ``cache_key`` is the query identity the view reads; ``invalidates`` lists
    the cache prefixes a successful mutation marks stale.

    The mount token guards against a response landing on a view the user
    has left. Under Streamlit a widget callback finishes before the next
    script run mounts another view, so the guard only fires for callers that
    finish a request outside that order.
    """

    cache_key: QueryKey = ()
    invalidates: Sequence[QueryKey] = ()

    def __init__(self) -> None:
        self.active_modal = MODAL_NONE
        self.editing: Any = None
        self.expanded_row_id: Optional[int] = None
        self.pending_delete_id: Optional[int] = None
        self.form_errors: Dict[str, str] = {}
        self._mount_token = 0
        self._mounted = True

    # ---------------- lifecycle ----------------

    def mount(self) -> int:
        self._mount_token += 1
        self._mounted = True
        return self._mount_token

    def unmount(self) -> None:
        self._mounted = False
        self._mount_token += 1

    @property
    def mounted(self) -> bool:
        return self._mounted

    def _is_current(self, token: int) -> bool:
        return self._mounted and token == self._mount_token

    # ---------------- modal ----------------

    def open_create(self) -> None:
        self.active_modal = MODAL_CREATE
        self.editing = None
        self.form_errors = {}

    def open_edit(self, record: Any) -> None:
        self.active_modal = MODAL_EDIT
        self.editing = record
        self.form_errors = {}
        self.expanded_row_id = None

    def close_modal(self) -> None:
        self.active_modal = MODAL_NONE
        self.editing = None
        self.form_errors = {}

    def submit_modal(self, client: Any, cache: QueryCache, form: Mapping[str, Any]) -> bool:
        """Validate and send the open form.

        Returns True when the modal was closed. Raises ValidationError (no
        request sent) or MutationError; in both cases the modal stays open.
        """
        try:
            payload = self._validate(form)
        except ValidationError as exc:
            self.form_errors = exc.fields
            raise
        self.form_errors = {}
        record_id = form.get("id")
        token = self._mount_token
        if _blank(record_id):
            self._create(client, payload)
        else:
            self._update(client, int(record_id), payload)
        self._invalidate(cache)
        if not self._is_current(token):
            logger.debug("Form response arrived after %s was unmounted", type(self).__name__)
            return False
        self.close_modal()
        return True

    # ---------------- row menu ----------------

    def toggle_row_menu(self, record_id: int) -> None:
        self.expanded_row_id = None if self.expanded_row_id == record_id else record_id

    def close_row_menu(self) -> None:
        self.expanded_row_id = None

    # ---------------- delete ----------------

    def request_delete(self, record_id: int) -> None:
        self.pending_delete_id = record_id

    def cancel_delete(self) -> None:
        self.pending_delete_id = None

    def confirm_delete(self, client: Any, cache: QueryCache) -> bool:
        """Send the delete confirmed by the user; raises MutationError on failure."""
        record_id = self.pending_delete_id
        if record_id is None:
            return False
        token = self._mount_token
        self._delete(client, record_id)
        cache.remove_record(self.cache_key[:1], record_id)
        self._invalidate(cache)
        if not self._is_current(token):
            return False
        self.pending_delete_id = None
        if self.expanded_row_id == record_id:
            self.expanded_row_id = None
        return True

    def _invalidate(self, cache: QueryCache) -> None:
        for prefix in self.invalidates:
            cache.invalidate(prefix)

    # subclass hooks
    def _validate(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def _create(self, client: Any, payload: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def _update(self, client: Any, record_id: int, payload: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def _delete(self, client: Any, record_id: int) -> Any:
        raise NotImplementedError


class TaskViewState(ListViewState):
    invalidates = (("tasks",), ("analytics",))

    def __init__(self, scope: str = "my") -> None:
        super().__init__()
        self.scope = scope
        self.cache_key = ("tasks", scope)
        self.status_filter = "all"
        self.priority_filter = "all"
        self.viewing: Optional[Task] = None
        # task id -> completed value requested but not yet confirmed
        self.in_flight: Dict[int, bool] = {}

    @property
    def filters(self) -> Tuple[str, str]:
        return self.status_filter, self.priority_filter

    def set_filters(self, status: str = "all", priority: str = "all") -> None:
        if status not in STATUS_FILTERS:
            raise ValueError(f"unknown status filter {status!r}")
        if priority not in PRIORITY_FILTERS:
            raise ValueError(f"unknown priority filter {priority!r}")
        self.status_filter = status
        self.priority_filter = priority

    def visible_tasks(self, tasks: Sequence[Task]) -> List[Task]:
        return derive_view(tasks, self.status_filter, self.priority_filter)

    def open_view(self, task: Task) -> None:
        self.viewing = task
        self.expanded_row_id = None

    def close_modal(self) -> None:
        super().close_modal()
        self.viewing = None

    def toggle_state(self, task: Task) -> str:
        if task.id in self.in_flight:
            return TOGGLE_IN_FLIGHT
        return TOGGLE_SETTLED_TRUE if task.completed else TOGGLE_SETTLED_FALSE

    def toggle_complete(self, client: Any, cache: QueryCache, task: Task) -> bool:
        """Ask the backend to flip ``task.completed``.

        The checkbox keeps showing the cached value; the refetch after a
        successful update is what changes it. Returns False when a toggle for
        this task is already in flight.

        ``in_flight`` holds the task only while the request is out. Streamlit
        runs the callback to completion before rendering again, so the
        checkbox is never drawn disabled there; the state still rejects a
        re-entrant toggle for the same task.
        """
        if task.id in self.in_flight:
            return False
        target = not task.completed
        self.in_flight[task.id] = target
        token = self._mount_token
        try:
            client.update_task(task.id, {"completed": target})
        finally:
            self.in_flight.pop(task.id, None)
        self._invalidate(cache)
        return self._is_current(token)

    def _validate(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        return validate_task_form(form)

    def _create(self, client: Any, payload: Dict[str, Any]) -> Any:
        return client.create_task(payload)

    def _update(self, client: Any, record_id: int, payload: Dict[str, Any]) -> Any:
        return client.update_task_details(record_id, payload)

    def _delete(self, client: Any, record_id: int) -> Any:
        return client.delete_task(record_id)


class UserViewState(ListViewState):
    cache_key = ("users",)
    invalidates = (("users",), ("analytics",))

    def _validate(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        return validate_user_form(form)

    def _create(self, client: Any, payload: Dict[str, Any]) -> Any:
        return client.register_user(payload)

    def _update(self, client: Any, record_id: int, payload: Dict[str, Any]) -> Any:
        return client.update_user(record_id, payload)

    def _delete(self, client: Any, record_id: int) -> Any:
        return client.delete_user(record_id)
