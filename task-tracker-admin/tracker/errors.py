"""Error taxonomy for the task tracker client.

Every error here is recoverable from the user's point of view: pages catch
them, show a notification and keep the current view state.
"""

from __future__ import annotations

from typing import Dict, Optional


class TrackerError(Exception):
    """Base class for all tracker client errors."""


class ValidationError(TrackerError):
    """A form is missing required fields. No request was sent."""

    def __init__(self, fields: Dict[str, str]) -> None:
        self.fields = dict(fields)
        names = ", ".join(sorted(self.fields))
        super().__init__(f"Please fill all fields ({names})")


class AuthError(TrackerError):
    """The backend rejected the credentials (401-class response)."""


class GatewayError(TrackerError):
    """A read request failed (HTTP error, timeout or transport error)."""

    def __init__(self, message: str, *, status_code: int = 0) -> None:
        self.status_code = int(status_code)
        super().__init__(message)


class MutationError(GatewayError):
    """A create, update or delete request failed after submission."""


class MalformedRecord(TrackerError):
    """A record from the backend is missing fields or has unparseable values."""

    def __init__(self, message: str, *, record_id: Optional[object] = None) -> None:
        self.record_id = record_id
        super().__init__(message)
