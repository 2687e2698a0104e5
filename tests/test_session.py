import pytest
from jose import jwt

from tracker.errors import AuthError
from tracker.session import (
    SessionContext,
    SessionStateCredentialStore,
    can_see_admin_views,
    decode_credential,
)

NOW = 1_700_000_000


def _token(role="admin", exp=NOW + 3600, **extra):
    claims = {"sub": "1", "username": "ada", "role": role, "exp": exp}
    claims.update(extra)
    return jwt.encode(claims, "test-secret", algorithm="HS256")


def _ctx(store=None):
    return SessionContext(store or SessionStateCredentialStore(), clock=lambda: NOW)


def test_decode_credential_reads_claims():
    session = decode_credential(_token())
    assert session.user_id == "1"
    assert session.username == "ada"
    assert session.role == "admin"
    assert session.expires_at == NOW + 3600
    # Role stays advisory until the backend confirms it.
    assert not session.is_admin


def test_decode_unknown_role_is_user():
    assert decode_credential(_token(role="root")).role == "user"


def test_decode_garbage_raises():
    with pytest.raises(AuthError):
        decode_credential("not-a-token")


def test_login_persists_credential(client):
    client.token = _token()
    store = SessionStateCredentialStore()
    ctx = _ctx(store)
    ctx.login(client, "ada", "pw")
    assert ctx.is_authenticated
    assert ctx.token == client.token
    assert store.load() == {"token": client.token, "user": {"id": "1", "username": "ada", "role": "admin"}}


def test_resolve_profile_unlocks_admin(client):
    client.token = _token()
    ctx = _ctx()
    ctx.login(client, "ada", "pw")
    assert not ctx.is_admin
    ctx.resolve_profile(client)
    assert ctx.is_admin
    assert can_see_admin_views(ctx.session)


def test_resolve_profile_uses_backend_role(client):
    client.token = _token(role="admin")
    client.me = client.me.__class__(id=1, first_name="A", last_name="B", username="ada", department="", role="user")
    ctx = _ctx()
    ctx.login(client, "ada", "pw")
    ctx.resolve_profile(client)
    assert not ctx.is_admin


def test_failed_login_leaves_no_session(client, auth_error):
    client.fail["login"] = auth_error
    ctx = _ctx()
    with pytest.raises(AuthError):
        ctx.login(client, "ada", "bad")
    assert ctx.session is None


def test_logout_clears_session_and_store(client):
    client.token = _token()
    store = SessionStateCredentialStore()
    ctx = _ctx(store)
    ctx.login(client, "ada", "pw")
    ctx.logout()
    assert ctx.session is None
    assert store.load() is None


def test_hydrate_restores_from_session_state():
    state = {}
    token = _token(role="user")
    SessionStateCredentialStore(state).save({"token": token, "user": {"id": "1"}})
    ctx = _ctx(SessionStateCredentialStore(state))
    session = ctx.hydrate()
    assert session is not None
    assert session.role == "user"
    assert ctx.token == token


def test_hydrate_drops_expired_credential():
    state = {}
    SessionStateCredentialStore(state).save({"token": _token(exp=NOW - 1)})
    ctx = _ctx(SessionStateCredentialStore(state))
    assert ctx.hydrate() is None
    assert SessionStateCredentialStore.KEY not in state


def test_hydrate_ignores_garbage_payload():
    state = {SessionStateCredentialStore.KEY: "not a dict"}
    assert _ctx(SessionStateCredentialStore(state)).hydrate() is None


def test_hydrate_with_empty_store():
    assert _ctx().hydrate() is None


def test_browser_sessions_never_share_a_credential(client):
    alice_state, bob_state = {}, {}
    client.token = _token(role="admin", username="alice")
    alice = _ctx(SessionStateCredentialStore(alice_state))
    alice.login(client, "alice", "pw")
    alice.resolve_profile(client)

    bob = _ctx(SessionStateCredentialStore(bob_state))
    assert bob.hydrate() is None
    assert bob.token is None
    assert not bob.is_admin
    assert bob_state == {}

    # Logging out elsewhere leaves alice signed in.
    bob.logout()
    assert alice.token == client.token
    assert _ctx(SessionStateCredentialStore(alice_state)).hydrate().username == "alice"
