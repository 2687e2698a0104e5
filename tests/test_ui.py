from conftest import make_task
from tracker import ui
from tracker.models import User
from tracker.session import SessionContext, SessionStateCredentialStore
from tracker.view_state import TaskViewState


def _use_state(monkeypatch, client, cache):
    state = {}
    monkeypatch.setattr(ui.st, "session_state", state)
    monkeypatch.setattr(ui, "get_client", lambda: client)
    monkeypatch.setattr(ui, "get_cache", lambda: cache)
    return state


def test_failed_toggle_resets_checkbox_and_queues_error(monkeypatch, client, cache, mutation_error):
    state = _use_state(monkeypatch, client, cache)
    client.fail["update_task"] = mutation_error
    task = make_task(1, completed=False)
    cache.get(("tasks", "my"), lambda: [task])
    widget_key = "dash-done-1-0"
    # The click already flipped the widget.
    state[widget_key] = True

    ui._on_toggle(TaskViewState(), task, widget_key)

    assert state[widget_key] is False
    kind, message = state["_tracker_notices"][0]
    assert kind == "error"
    assert "Could not update task" in message
    assert cache.peek(("tasks", "my")) == [task]


def test_successful_toggle_queues_nothing(monkeypatch, client, cache):
    state = _use_state(monkeypatch, client, cache)
    state["dash-done-1-0"] = True
    ui._on_toggle(TaskViewState(), make_task(1), "dash-done-1-0")
    assert "_tracker_notices" not in state
    assert client.calls == [("update_task", 1, {"completed": True})]


def test_toggle_with_rejected_credential_logs_out(monkeypatch, client, cache, auth_error):
    state = _use_state(monkeypatch, client, cache)
    ctx = SessionContext(SessionStateCredentialStore(state))
    ctx.store.save({"token": "t"})
    monkeypatch.setattr(ui, "get_session_context", lambda: ctx)
    client.fail["update_task"] = auth_error

    ui._on_toggle(TaskViewState(), make_task(1), "dash-done-1-0")

    assert SessionStateCredentialStore.KEY not in state
    assert state["_tracker_notices"][0][0] == "warning"


def test_task_card_escapes_backend_text():
    task = make_task(1, title="<script>alert(1)</script>")
    markup = ui.task_card_html(task, show_assignee=True)
    assert "<script>" not in markup
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in markup
    assert markup.count("<div") == markup.count("</div>")


def test_user_row_escapes_backend_text():
    user = User(id=1, first_name="</div>", last_name="X", username="<b>bo</b>", department="R&D")
    markup = ui.user_row_html(user)
    assert "&lt;/div&gt; X" in markup
    assert "&lt;b&gt;bo&lt;/b&gt;" in markup
    assert "R&amp;D" in markup
    assert markup.count("<div") == markup.count("</div>")
