"""Records exchanged with the task tracker backend.

The backend speaks camelCase JSON; records here are snake_case frozen
dataclasses so views can share them without copying.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

from tracker.errors import MalformedRecord


PRIORITIES = ("low", "medium", "high")
# Lower rank sorts first.
PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}

STATUS_FILTERS = ("all", "completed", "pending")
PRIORITY_FILTERS = ("all",) + PRIORITIES

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


def parse_due_date(value: Any, *, record_id: Optional[object] = None) -> date:
    """Return the calendar date of a wire ``dueDate`` value.

    Accepts ``YYYY-MM-DD`` and full ISO timestamps; the time of day is dropped.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise MalformedRecord(f"task {record_id}: missing due date", record_id=record_id)
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise MalformedRecord(f"task {record_id}: unparseable due date {value!r}", record_id=record_id) from None


def _require_id(raw: Mapping[str, Any], kind: str) -> int:
    value = raw.get("id")
    if isinstance(value, bool) or value is None:
        raise MalformedRecord(f"{kind} record without id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedRecord(f"{kind} record with invalid id {value!r}") from None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class Assignee:
    id: int
    username: str


@dataclass(frozen=True)
class Task:
    id: int
    title: str
    description: str
    priority: str
    due_date: date
    completed: bool
    assigned_to: Optional[Assignee] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK[self.priority]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Task":
        if not isinstance(raw, Mapping):
            raise MalformedRecord(f"task record is not an object: {raw!r}")
        task_id = _require_id(raw, "task")
        priority = _text(raw.get("priority")).lower()
        if priority not in PRIORITY_RANK:
            raise MalformedRecord(f"task {task_id}: unknown priority {raw.get('priority')!r}", record_id=task_id)
        completed = raw.get("completed", False)
        if not isinstance(completed, bool):
            raise MalformedRecord(f"task {task_id}: completed flag is not a boolean", record_id=task_id)

        assigned_to = None
        assignee_raw = raw.get("assignedTo")
        if isinstance(assignee_raw, Mapping) and assignee_raw.get("id") is not None:
            try:
                assignee_id = int(assignee_raw["id"])
            except (TypeError, ValueError):
                raise MalformedRecord(
                    f"task {task_id}: invalid assignee id {assignee_raw['id']!r}", record_id=task_id
                ) from None
            assigned_to = Assignee(id=assignee_id, username=_text(assignee_raw.get("username")))

        return cls(
            id=task_id,
            title=_text(raw.get("title")),
            description=_text(raw.get("description")),
            priority=priority,
            due_date=parse_due_date(raw.get("dueDate"), record_id=task_id),
            completed=completed,
            assigned_to=assigned_to,
            created_at=raw.get("createdAt"),
            updated_at=raw.get("updatedAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "dueDate": self.due_date.isoformat(),
            "completed": self.completed,
            "assignedTo": (
                {"id": self.assigned_to.id, "username": self.assigned_to.username}
                if self.assigned_to
                else None
            ),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class User:
    id: int
    first_name: str
    last_name: str
    username: str
    department: str
    role: str = ROLE_USER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "User":
        if not isinstance(raw, Mapping):
            raise MalformedRecord(f"user record is not an object: {raw!r}")
        role = _text(raw.get("role")).lower()
        return cls(
            id=_require_id(raw, "user"),
            first_name=_text(raw.get("firstName")),
            last_name=_text(raw.get("lastName")),
            username=_text(raw.get("username")),
            department=_text(raw.get("department")),
            # Unknown roles get the least privileged rendering.
            role=role if role in ROLES else ROLE_USER,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "username": self.username,
            "department": self.department,
            "role": self.role,
        }


@dataclass(frozen=True)
class AnalyticsRow:
    employee_id: int
    username: str
    department: str
    completed_tasks: int
    total_tasks: int

    @property
    def completion_rate(self) -> float:
        if self.total_tasks <= 0:
            return 0.0
        return self.completed_tasks / self.total_tasks

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "AnalyticsRow":
        try:
            return cls(
                employee_id=int(raw["employeeId"]),
                username=_text(raw.get("username")),
                department=_text(raw.get("department")),
                completed_tasks=int(raw.get("completedTasks") or 0),
                total_tasks=int(raw.get("totalTasks") or 0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedRecord(f"analytics row is malformed: {exc}") from None
