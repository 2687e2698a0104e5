"""Authenticated session for one browser session.

The role claim inside the credential is decoded without verifying its
signature. It only decides what the UI renders; the backend re-checks every
request on its own.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, MutableMapping, Optional

from jose import JWTError, jwt

from tracker.errors import AuthError
from tracker.models import ROLE_ADMIN, ROLE_USER, ROLES


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    user_id: str
    username: str
    role: str
    token: str
    # True once /api/users/me confirmed the role.
    role_resolved: bool = False
    expires_at: Optional[float] = None

    @property
    def is_admin(self) -> bool:
        return self.role_resolved and self.role == ROLE_ADMIN

    def summary(self) -> Dict[str, Any]:
        return {"id": self.user_id, "username": self.username, "role": self.role}


def can_see_admin_views(session: Optional[Session]) -> bool:
    """Single capability check used by navigation, routing and rendering."""
    return session is not None and session.is_admin


def decode_credential(token: str) -> Session:
    """Build a session from the claims of an access token (unverified)."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise AuthError(f"Unreadable access token: {exc}") from None
    if not isinstance(claims, dict) or claims.get("sub") is None:
        raise AuthError("Access token has no subject")

    role = str(claims.get("role") or "").lower()
    exp = claims.get("exp")
    return Session(
        user_id=str(claims["sub"]),
        username=str(claims.get("username") or ""),
        role=role if role in ROLES else ROLE_USER,
        token=token,
        expires_at=float(exp) if isinstance(exp, (int, float)) else None,
    )


class SessionStateCredentialStore:
    """Keep ``{"token": ..., "user": {...}}`` in one browser session's state.

    ``state`` is ``st.session_state`` in the app and a plain dict in tests, so
    a credential is never visible to another browser session.
    """

    KEY = "tracker_credential"

    def __init__(self, state: Optional[MutableMapping[str, Any]] = None) -> None:
        self.state = state if state is not None else {}

    def load(self) -> Optional[Dict[str, Any]]:
        payload = self.state.get(self.KEY)
        return dict(payload) if isinstance(payload, dict) else None

    def save(self, payload: Dict[str, Any]) -> None:
        self.state[self.KEY] = dict(payload)

    def clear(self) -> None:
        self.state.pop(self.KEY, None)


class SessionContext:
    """Owns the current :class:`Session` and its stored credential.

    Lifecycle: :meth:`hydrate` once on app start, :meth:`login` replaces the
    session, :meth:`logout` clears session and stored credential together.
    """

    def __init__(self, store: Any = None, *, clock=time.time) -> None:
        self.store = store if store is not None else SessionStateCredentialStore()
        self.session: Optional[Session] = None
        self._clock = clock

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def is_admin(self) -> bool:
        return can_see_admin_views(self.session)

    @property
    def token(self) -> Optional[str]:
        return self.session.token if self.session else None

    def _expired(self, session: Session) -> bool:
        return session.expires_at is not None and session.expires_at <= self._clock()

    def hydrate(self) -> Optional[Session]:
        """Restore the session from the credential store, if still usable."""
        payload = self.store.load()
        token = payload.get("token") if payload else None
        if not token:
            self.session = None
            return None
        try:
            session = decode_credential(str(token))
        except AuthError as exc:
            logger.info("Discarding stored credential: %s", exc)
            self.logout()
            return None
        if self._expired(session):
            logger.info("Stored credential for %s has expired", session.username)
            self.logout()
            return None
        self.session = session
        logger.info("Restored session for %s", session.username)
        return session

    def login(self, client: Any, username: str, password: str) -> Session:
        """Authenticate against the backend; raises AuthError on rejection."""
        token = client.login(username, password)
        session = decode_credential(token)
        self.session = session
        self.store.save({"token": token, "user": session.summary()})
        logger.info("Logged in as %s", session.username)
        return session

    def resolve_profile(self, client: Any) -> Optional[Session]:
        """Confirm the role with /api/users/me.

        Until this succeeds the session renders as least privileged.
        """
        if self.session is None:
            return None
        if self.session.role_resolved:
            return self.session
        me = client.get_me()
        self.session = replace(self.session, role=me.role, role_resolved=True)
        self.store.save({"token": self.session.token, "user": self.session.summary()})
        return self.session

    def logout(self) -> None:
        if self.session is not None:
            logger.info("Logged out %s", self.session.username)
        self.session = None
        self.store.clear()
