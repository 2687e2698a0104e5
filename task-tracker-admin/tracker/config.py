from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional


_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


def _env(name: str) -> Optional[str]:
    raw = os.environ.get(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _env_flag(name: str, default: bool) -> bool:
    raw = (_env(name) or "").lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return default


def _env_number(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class TrackerConfig:
    """Runtime configuration for the task tracker UI.

    Env vars:
    - TRACKER_API_URL (default http://localhost:3000)
    - TRACKER_API_TIMEOUT_SECONDS (default 15)
    - TRACKER_VERIFY_SSL (default true)
    - TRACKER_LOG_LEVEL (default INFO)
    - TRACKER_APP_TITLE (default "Task Tracker")
    """

    api_url: str
    timeout_seconds: float
    verify_ssl: bool
    log_level: str
    app_title: str

    DEFAULT_API_URL: str = "http://localhost:3000"
    DEFAULT_TIMEOUT_SECONDS: float = 15.0
    DEFAULT_LOG_LEVEL: str = "INFO"
    DEFAULT_APP_TITLE: str = "Task Tracker"

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        return cls(
            api_url=(_env("TRACKER_API_URL") or cls.DEFAULT_API_URL).rstrip("/"),
            timeout_seconds=_env_number("TRACKER_API_TIMEOUT_SECONDS", cls.DEFAULT_TIMEOUT_SECONDS),
            verify_ssl=_env_flag("TRACKER_VERIFY_SSL", True),
            log_level=(_env("TRACKER_LOG_LEVEL") or cls.DEFAULT_LOG_LEVEL).upper(),
            app_title=_env("TRACKER_APP_TITLE") or cls.DEFAULT_APP_TITLE,
        )


def configure_logging(level: str = TrackerConfig.DEFAULT_LOG_LEVEL) -> None:
    """Attach a stream handler to the ``tracker`` logger once per process.

    Streamlit re-executes the entry script on every interaction, so this
    must be idempotent.
    """
    logger = logging.getLogger("tracker")
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if any(getattr(h, "_tracker_handler", False) for h in logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._tracker_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
