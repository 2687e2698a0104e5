"""Filter and order task lists for display.

Every task list in the UI goes through :func:`derive_view`, so the dashboard
and the "My Tasks" page always agree on what is shown and in which order.
"""

from __future__ import annotations

from datetime import date
from typing import Any, List, Mapping, Sequence, Tuple, TypeVar, Union

from tracker.errors import MalformedRecord
from tracker.models import PRIORITY_FILTERS, PRIORITY_RANK, STATUS_FILTERS, Task, parse_due_date


TaskLike = TypeVar("TaskLike", bound=Union[Task, Mapping[str, Any]])


def _fields(task: Union[Task, Mapping[str, Any]]) -> Tuple[bool, date, str]:
    if isinstance(task, Task):
        return task.completed, task.due_date, task.priority
    if not isinstance(task, Mapping):
        raise MalformedRecord(f"task record is not an object: {task!r}")
    record_id = task.get("id")
    completed = task.get("completed", False)
    if not isinstance(completed, bool):
        raise MalformedRecord(f"task {record_id}: completed flag is not a boolean", record_id=record_id)
    priority = str(task.get("priority") or "").lower()
    if priority not in PRIORITY_RANK:
        raise MalformedRecord(f"task {record_id}: unknown priority {task.get('priority')!r}", record_id=record_id)
    return completed, parse_due_date(task.get("dueDate"), record_id=record_id), priority


def matches(task: Union[Task, Mapping[str, Any]], status: str = "all", priority: str = "all") -> bool:
    completed, _, task_priority = _fields(task)
    if status == "completed" and not completed:
        return False
    if status == "pending" and completed:
        return False
    if priority != "all" and task_priority != priority:
        return False
    return True


def sort_key(task: Union[Task, Mapping[str, Any]]) -> Tuple[bool, date, int]:
    """Incomplete first, then earliest due date, then high > medium > low."""
    completed, due, priority = _fields(task)
    return completed, due, PRIORITY_RANK[priority]


def derive_view(tasks: Sequence[TaskLike], status: str = "all", priority: str = "all") -> List[TaskLike]:
    """Return the tasks passing both selectors, in display order.

    Accepts :class:`Task` objects or raw backend dicts and returns the same
    objects it was given; the input sequence is not modified. Raises
    :class:`MalformedRecord` if any record cannot be ordered, so a list is
    never shown half-sorted.
    """
    if status not in STATUS_FILTERS:
        raise ValueError(f"unknown status filter {status!r}")
    if priority not in PRIORITY_FILTERS:
        raise ValueError(f"unknown priority filter {priority!r}")

    # Keys are computed for every record first so a bad record anywhere fails
    # the whole derivation, even if the filters would have dropped it.
    keyed = [(sort_key(t), t) for t in tasks]
    kept = [(key, t) for key, t in keyed if matches(t, status, priority)]
    kept.sort(key=lambda pair: pair[0])
    return [t for _, t in kept]


def parse_tasks(raw_tasks: Sequence[Mapping[str, Any]]) -> List[Task]:
    """Parse a backend task list, failing on the first malformed record."""
    if not isinstance(raw_tasks, (list, tuple)):
        raise MalformedRecord(f"expected a list of tasks, got {type(raw_tasks).__name__}")
    return [Task.from_dict(raw) for raw in raw_tasks]
