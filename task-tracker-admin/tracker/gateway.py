from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from tracker.errors import AuthError, GatewayError, MalformedRecord, MutationError
from tracker.models import AnalyticsRow, Task, User
from tracker.task_view import parse_tasks


logger = logging.getLogger(__name__)

TASK_LIST_ENDPOINTS = {
    "index": "/api/tasks",
    "all": "/api/tasks/all",
    "my": "/api/tasks/my",
}


@dataclass(frozen=True)
class GatewayResponse:
    ok: bool
    status_code: int
    url: str
    method: str
    data: Any = None
    error: Optional[str] = None

    @property
    def unauthorized(self) -> bool:
        return self.status_code == 401

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "status_code": self.status_code,
            "url": self.url,
            "method": self.method,
            "data": self.data,
            "error": self.error,
        }


def _error_detail(parsed: Any, text: Optional[str], status_code: int) -> str:
    if isinstance(parsed, dict):
        message = parsed.get("message") or parsed.get("detail") or parsed.get("error")
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        if message:
            return str(message)
    if text:
        return text[:500]
    return f"HTTP {status_code}"


class TrackerClient:
    """HTTP client for the task tracker REST backend.

    ``token_provider`` is called before every request so the client always
    sends the credential currently held by the session context.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        verify_ssl: bool = True,
        timeout_seconds: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.token_provider = token_provider
        self.verify_ssl = bool(verify_ssl)
        self.timeout_seconds = float(timeout_seconds)
        self._session = session or requests.Session()

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(self, method: str, path: str, *, json_body: Any = None) -> GatewayResponse:
        method_u = (method or "GET").upper().strip()
        if not path.startswith("/"):
            path = "/" + path
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method_u, url)

        try:
            resp = self._session.request(
                method_u,
                url,
                json=json_body,
                headers=self._build_headers(),
                verify=self.verify_ssl,
                timeout=self.timeout_seconds,
            )
        except requests.Timeout:
            logger.warning("%s %s timed out after %ss", method_u, url, self.timeout_seconds)
            return GatewayResponse(
                ok=False,
                status_code=0,
                url=url,
                method=method_u,
                error=f"Request timed out after {self.timeout_seconds:g}s",
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method_u, url, exc)
            return GatewayResponse(ok=False, status_code=0, url=url, method=method_u, error=str(exc))

        text = resp.text or ""
        parsed: Any = None
        if text:
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None

        status = int(resp.status_code)
        if 200 <= status < 300:
            return GatewayResponse(ok=True, status_code=status, url=url, method=method_u, data=parsed)

        logger.warning("%s %s returned HTTP %s", method_u, url, status)
        return GatewayResponse(
            ok=False,
            status_code=status,
            url=url,
            method=method_u,
            data=parsed,
            error=_error_detail(parsed, text, status),
        )

    # ---------------- helpers ----------------

    def _read(self, path: str) -> Any:
        resp = self.request("GET", path)
        if resp.unauthorized:
            raise AuthError(resp.error or "Not authenticated")
        if not resp.ok:
            raise GatewayError(f"Could not load {path}: {resp.error}", status_code=resp.status_code)
        return resp.data

    def _mutate(self, method: str, path: str, body: Any = None) -> Any:
        resp = self.request(method, path, json_body=body)
        if resp.unauthorized:
            raise AuthError(resp.error or "Not authenticated")
        if not resp.ok:
            raise MutationError(f"{method} {path} failed: {resp.error}", status_code=resp.status_code)
        return resp.data

    @staticmethod
    def _as_list(data: Any, what: str) -> List[Any]:
        if not isinstance(data, list):
            raise MalformedRecord(f"expected a list of {what}, got {type(data).__name__}")
        return data

    # ---------------- auth ----------------

    def login(self, username: str, password: str) -> str:
        """Return the access token for valid credentials."""
        resp = self.request("POST", "/api/auth/login", json_body={"username": username, "password": password})
        if resp.status_code in (400, 401, 403):
            raise AuthError("Invalid credentials. Please try again.")
        if not resp.ok:
            raise GatewayError(f"Login failed: {resp.error}", status_code=resp.status_code)
        token = resp.data.get("access_token") if isinstance(resp.data, dict) else None
        if not token:
            raise AuthError("Invalid credentials. Please try again.")
        return str(token)

    def register_user(self, payload: Dict[str, Any]) -> Any:
        return self._mutate("POST", "/api/auth/register", payload)

    # ---------------- users ----------------

    def get_me(self) -> User:
        return User.from_dict(self._read("/api/users/me"))

    def list_users(self) -> List[User]:
        return [User.from_dict(u) for u in self._as_list(self._read("/api/users"), "users")]

    def get_analytics(self) -> List[AnalyticsRow]:
        rows = self._as_list(self._read("/api/users/analytics"), "analytics rows")
        return [AnalyticsRow.from_dict(r) for r in rows]

    def update_user(self, user_id: int, payload: Dict[str, Any]) -> Any:
        return self._mutate("PUT", f"/api/users/{int(user_id)}", payload)

    def delete_user(self, user_id: int) -> None:
        self._mutate("DELETE", f"/api/users/{int(user_id)}")

    # ---------------- tasks ----------------

    def list_tasks(self, scope: str = "my") -> List[Task]:
        try:
            path = TASK_LIST_ENDPOINTS[scope]
        except KeyError:
            raise ValueError(f"unknown task list scope {scope!r}") from None
        return parse_tasks(self._as_list(self._read(path), "tasks"))

    def create_task(self, payload: Dict[str, Any]) -> Any:
        return self._mutate("POST", "/api/tasks/create", payload)

    def update_task_details(self, task_id: int, payload: Dict[str, Any]) -> Any:
        return self._mutate("PUT", f"/api/tasks/{int(task_id)}/details", payload)

    def update_task(self, task_id: int, payload: Dict[str, Any]) -> Any:
        return self._mutate("PUT", f"/api/tasks/{int(task_id)}/update", payload)

    def delete_task(self, task_id: int) -> None:
        self._mutate("DELETE", f"/api/tasks/{int(task_id)}")
