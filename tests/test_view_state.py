from datetime import date

import pytest

from conftest import make_task
from tracker.errors import AuthError, MutationError, ValidationError
from tracker.session import Session
from tracker.view_state import (
    MODAL_CREATE,
    MODAL_EDIT,
    MODAL_NONE,
    TOGGLE_IN_FLIGHT,
    TOGGLE_SETTLED_FALSE,
    TOGGLE_SETTLED_TRUE,
    TaskViewState,
    UserViewState,
    task_controls,
    task_form_defaults,
    validate_task_form,
    validate_user_form,
)


def _task_form(**overrides):
    form = {
        "title": "Ship it",
        "description": "Release 1.0",
        "priority": "high",
        "dueDate": date(2025, 5, 1),
        "assignedToUserId": 2,
    }
    form.update(overrides)
    return form


def test_create_with_empty_title_sends_nothing(client, cache):
    state = TaskViewState()
    state.open_create()
    with pytest.raises(ValidationError) as exc:
        state.submit_modal(client, cache, _task_form(title="  "))
    assert "title" in exc.value.fields
    assert client.calls == []
    assert state.active_modal == MODAL_CREATE
    assert "title" in state.form_errors


def test_create_closes_modal_and_invalidates(client, cache):
    cache.get(("tasks", "my"), lambda: [])
    cache.get(("analytics",), lambda: [])
    state = TaskViewState()
    state.open_create()
    assert state.submit_modal(client, cache, _task_form())
    assert client.calls == [
        (
            "create_task",
            {
                "title": "Ship it",
                "description": "Release 1.0",
                "priority": "high",
                "dueDate": "2025-05-01",
                "assignedToUserId": 2,
            },
        )
    ]
    assert state.active_modal == MODAL_NONE
    assert cache.is_stale(("tasks", "my"))
    assert cache.is_stale(("analytics",))


def test_form_with_id_updates(client, cache):
    task = make_task(5)
    state = TaskViewState()
    state.open_edit(task)
    assert state.active_modal == MODAL_EDIT
    state.submit_modal(client, cache, _task_form(id=5))
    assert client.calls[0][0] == "update_task_details"
    assert client.calls[0][1] == 5


def test_failed_submit_keeps_modal_open(client, cache, mutation_error):
    client.fail["create_task"] = mutation_error
    state = TaskViewState()
    state.open_create()
    with pytest.raises(MutationError):
        state.submit_modal(client, cache, _task_form())
    assert state.active_modal == MODAL_CREATE


def test_failed_toggle_leaves_cached_task_unchanged(client, cache, mutation_error):
    task = make_task(1, completed=False)
    cache.get(("tasks", "my"), lambda: [task])
    client.fail["update_task"] = mutation_error
    state = TaskViewState()

    with pytest.raises(MutationError):
        state.toggle_complete(client, cache, task)

    assert client.calls == [("update_task", 1, {"completed": True})]
    assert cache.peek(("tasks", "my")) == [task]
    assert not cache.is_stale(("tasks", "my"))
    assert state.toggle_state(task) == TOGGLE_SETTLED_FALSE


def test_toggle_sends_negated_value_and_invalidates(client, cache):
    task = make_task(1, completed=True)
    cache.get(("tasks", "my"), lambda: [task])
    state = TaskViewState()
    assert state.toggle_complete(client, cache, task)
    assert client.calls == [("update_task", 1, {"completed": False})]
    assert cache.is_stale(("tasks", "my"))
    assert state.toggle_state(task) == TOGGLE_SETTLED_TRUE


def test_second_toggle_ignored_while_in_flight(client, cache):
    task = make_task(1)
    state = TaskViewState()
    state.in_flight[task.id] = True
    assert state.toggle_state(task) == TOGGLE_IN_FLIGHT
    assert not state.toggle_complete(client, cache, task)
    assert client.calls == []


def test_toggle_after_unmount_is_not_applied(client, cache):
    task = make_task(1)
    state = TaskViewState()
    state.mount()

    class UnmountingClient(type(client)):
        def update_task(self, task_id, payload):
            super().update_task(task_id, payload)
            state.unmount()

    assert not state.toggle_complete(UnmountingClient(), cache, task)


def test_submit_after_unmount_leaves_modal(client, cache):
    state = TaskViewState()
    state.open_create()

    class UnmountingClient(type(client)):
        def create_task(self, payload):
            state.unmount()
            return super().create_task(payload)

    assert not state.submit_modal(UnmountingClient(), cache, _task_form())
    assert state.active_modal == MODAL_CREATE


def test_delete_requires_confirmation(client, cache):
    cache.get(("tasks", "my"), lambda: [make_task(1), make_task(2)])
    state = TaskViewState()
    state.toggle_row_menu(2)
    state.request_delete(2)
    assert client.calls == []

    state.cancel_delete()
    assert not state.confirm_delete(client, cache)
    assert client.calls == []

    state.request_delete(2)
    assert state.confirm_delete(client, cache)
    assert client.calls == [("delete_task", 2)]
    assert [t.id for t in cache.peek(("tasks", "my"))] == [1]
    assert state.pending_delete_id is None
    assert state.expanded_row_id is None


def test_failed_delete_keeps_pending(client, cache, mutation_error):
    client.fail["delete_task"] = mutation_error
    state = TaskViewState()
    state.request_delete(3)
    with pytest.raises(MutationError):
        state.confirm_delete(client, cache)
    assert state.pending_delete_id == 3


def test_row_menu_toggles_and_edit_closes_it():
    state = TaskViewState()
    state.toggle_row_menu(4)
    assert state.expanded_row_id == 4
    state.toggle_row_menu(4)
    assert state.expanded_row_id is None
    state.toggle_row_menu(4)
    state.open_edit(make_task(4))
    assert state.expanded_row_id is None


def test_open_view_and_close():
    task = make_task(1)
    state = TaskViewState()
    state.open_view(task)
    assert state.viewing is task
    state.close_modal()
    assert state.viewing is None


def test_set_filters_rejects_unknown():
    state = TaskViewState()
    state.set_filters("pending", "low")
    assert state.filters == ("pending", "low")
    with pytest.raises(ValueError):
        state.set_filters("archived", "low")


def test_visible_tasks_uses_filters():
    state = TaskViewState()
    state.set_filters("completed", "all")
    tasks = [make_task(1), make_task(2, completed=True)]
    assert [t.id for t in state.visible_tasks(tasks)] == [2]


def test_task_controls_by_role():
    user = Session(user_id="2", username="bob", role="user", token="t", role_resolved=True)
    admin = Session(user_id="1", username="ada", role="admin", token="t", role_resolved=True)
    unresolved = Session(user_id="1", username="ada", role="admin", token="t")
    assert task_controls(user) == ()
    assert task_controls(None) == ()
    assert task_controls(unresolved) == ()
    assert "add_task" in task_controls(admin)


def test_validate_task_form_reports_every_missing_field():
    with pytest.raises(ValidationError) as exc:
        validate_task_form({"priority": "medium"})
    assert set(exc.value.fields) == {"title", "description", "dueDate", "assignedToUserId"}


def test_task_form_defaults_prefill():
    defaults = task_form_defaults(make_task(3, priority="low"))
    assert defaults["id"] == 3
    assert defaults["priority"] == "low"
    assert defaults["assignedToUserId"] == 2
    assert task_form_defaults(None)["title"] == ""


def test_user_form_password_only_required_on_create():
    base = {"firstName": "Bo", "lastName": "B", "username": "bo", "department": "QA", "role": "user"}
    with pytest.raises(ValidationError) as exc:
        validate_user_form(base)
    assert set(exc.value.fields) == {"password"}
    payload = validate_user_form({**base, "id": 4, "password": ""})
    assert "password" not in payload
    assert validate_user_form({**base, "password": "pw"})["password"] == "pw"


def test_user_view_state_routes_to_user_endpoints(client, cache):
    state = UserViewState()
    form = {"firstName": "Bo", "lastName": "B", "username": "bo", "department": "QA", "role": "admin", "password": "pw"}
    state.open_create()
    state.submit_modal(client, cache, form)
    state.open_create()
    state.submit_modal(client, cache, {**form, "id": 4})
    state.request_delete(4)
    state.confirm_delete(client, cache)
    assert [c[0] for c in client.calls] == ["register_user", "update_user", "delete_user"]


def test_auth_error_propagates_from_toggle(client, cache, auth_error):
    client.fail["update_task"] = auth_error
    state = TaskViewState()
    with pytest.raises(AuthError):
        state.toggle_complete(client, cache, make_task(1))
    assert state.in_flight == {}


def test_toggle_is_in_flight_while_request_is_out(client, cache):
    task = make_task(1)
    state = TaskViewState()
    seen = []

    class ObservingClient(type(client)):
        def update_task(self, task_id, payload):
            seen.append(state.toggle_state(task))
            # A re-entrant toggle for the same task is rejected.
            seen.append(state.toggle_complete(self, cache, task))
            super().update_task(task_id, payload)

    observing = ObservingClient()
    assert state.toggle_complete(observing, cache, task)
    assert seen == [TOGGLE_IN_FLIGHT, False]
    assert [c[0] for c in observing.calls] == ["update_task"]
    assert state.toggle_state(task) == TOGGLE_SETTLED_FALSE
