from datetime import date

import pytest

from tracker.errors import AuthError, MutationError
from tracker.models import Assignee, Task, User
from tracker.query_cache import QueryCache


class FakeClient:
    """Records calls; ``fail`` maps a method name to the exception it raises."""

    def __init__(self):
        self.calls = []
        self.fail = {}
        self.me = User(id=1, first_name="Ada", last_name="Admin", username="ada", department="Ops", role="admin")
        self.token = None

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail:
            raise self.fail[name]

    def login(self, username, password):
        self._record("login", username, password)
        return self.token

    def get_me(self):
        self._record("get_me")
        return self.me

    def create_task(self, payload):
        self._record("create_task", payload)
        return {"id": 99, **payload}

    def update_task_details(self, task_id, payload):
        self._record("update_task_details", task_id, payload)

    def update_task(self, task_id, payload):
        self._record("update_task", task_id, payload)

    def delete_task(self, task_id):
        self._record("delete_task", task_id)

    def register_user(self, payload):
        self._record("register_user", payload)

    def update_user(self, user_id, payload):
        self._record("update_user", user_id, payload)

    def delete_user(self, user_id):
        self._record("delete_user", user_id)


def make_task(task_id, *, completed=False, due="2025-01-10", priority="medium", title=None):
    return Task(
        id=task_id,
        title=title or f"Task {task_id}",
        description="desc",
        priority=priority,
        due_date=date.fromisoformat(due),
        completed=completed,
        assigned_to=Assignee(id=2, username="bob"),
    )


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def mutation_error():
    return MutationError("PUT /api/tasks/1/update failed: boom", status_code=500)


@pytest.fixture
def auth_error():
    return AuthError("Not authenticated")
