from datetime import datetime, timedelta, timezone

import pytest

from fakestore import FakeIdentityProvider, FakeStore
from pathshala.auth.service import SessionGate, SessionState, is_admin
from pathshala.auth.schemas import Identity
from pathshala.common.errors import InvalidCredentials, SessionConflict, StoreError

pytestmark = pytest.mark.anyio("asyncio")

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
EMAIL = "karim@example.com"


def _gate(store, provider, admin_email="admin@admin.com"):
    return SessionGate(store, provider, admin_email=admin_email, session_ttl=timedelta(hours=24), clock=lambda: NOW)


@pytest.fixture
def provider():
    p = FakeIdentityProvider()
    p.add(EMAIL, "secret", "user-1")
    p.add("admin@admin.com", "root", "admin-1")
    return p


def _session_row(age):
    return {
        "id": "user-1",
        "email": EMAIL,
        "user_id": "user-1",
        "device_info": "ফোন",
        "created_at": (NOW - age).isoformat(),
    }


async def test_login_writes_session_and_profile(provider):
    store = FakeStore()
    gate = _gate(store, provider)
    identity = await gate.login(EMAIL, "secret", "laptop")
    assert identity.id == "user-1"
    assert gate.state is SessionState.authenticated
    assert not gate.is_admin
    [session] = store.rows("user_sessions")
    assert session["id"] == "user-1"
    assert session["email"] == EMAIL
    assert session["device_info"] == "laptop"
    [profile] = store.rows("user_profiles")
    assert profile["display_name"] == "karim"
    assert profile["points"] == 0


async def test_recent_session_blocks_login_before_sign_in(provider):
    store = FakeStore({"user_sessions": [_session_row(timedelta(hours=1))]})
    gate = _gate(store, provider)
    with pytest.raises(SessionConflict):
        await gate.login(EMAIL, "secret")
    assert provider.sign_in_calls == []
    assert gate.state is SessionState.failed
    assert len(store.rows("user_sessions")) == 1


async def test_stale_session_is_replaced(provider):
    store = FakeStore({"user_sessions": [_session_row(timedelta(hours=25))]})
    gate = _gate(store, provider)
    await gate.login(EMAIL, "secret", "tablet")
    deletes = [c for c in store.calls if c[0] == "delete" and c[1] == "user_sessions"]
    inserts = [c for c in store.calls if c[0] == "insert" and c[1] == "user_sessions"]
    assert deletes and inserts
    assert store.calls.index(deletes[0]) < store.calls.index(inserts[0])
    [session] = store.rows("user_sessions")
    assert session["device_info"] == "tablet"
    assert session["created_at"] == NOW.isoformat()


async def test_bad_password_leaves_no_session(provider):
    store = FakeStore()
    gate = _gate(store, provider)
    with pytest.raises(InvalidCredentials):
        await gate.login(EMAIL, "wrong")
    assert store.rows("user_sessions") == []
    assert gate.state is SessionState.failed
    assert gate.failure is not None


async def test_existing_profile_is_not_duplicated(provider):
    store = FakeStore({"user_profiles": [{"id": "p1", "user_id": "user-1", "display_name": "করিম", "points": 40}]})
    await _gate(store, provider).login(EMAIL, "secret")
    assert len(store.rows("user_profiles")) == 1
    assert store.rows("user_profiles")[0]["points"] == 40


async def test_admin_flag_comes_from_configured_email(provider):
    provider.add("mentor@school.edu", "pw", "t-1")
    gate = _gate(FakeStore(), provider, admin_email="mentor@school.edu")
    await gate.login("Mentor@School.edu", "pw")
    assert gate.is_admin
    assert is_admin(Identity(id="x", email="MENTOR@school.edu"), "mentor@school.edu")
    assert not is_admin(None, "mentor@school.edu")


async def test_logout_clears_session(provider):
    store = FakeStore()
    gate = _gate(store, provider)
    await gate.login(EMAIL, "secret")
    result = await gate.logout()
    assert result.session_cleared and result.signed_out
    assert store.rows("user_sessions") == []
    assert provider.signed_out == ["token-user-1"]
    assert gate.state is SessionState.anonymous
    assert gate.identity is None


async def test_logout_still_signs_out_when_session_delete_fails(provider):
    store = FakeStore()
    gate = _gate(store, provider)
    await gate.login(EMAIL, "secret")
    store.fail("user_sessions", "delete", StoreError(kind="transient"))
    result = await gate.logout()
    assert result.session_cleared is False
    assert result.signed_out is True
    assert gate.state is SessionState.anonymous
    # The record stays until it goes stale
    assert len(store.rows("user_sessions")) == 1


async def test_logout_reports_remote_sign_out_failure(provider):
    store = FakeStore()
    gate = _gate(store, provider)
    await gate.login(EMAIL, "secret")
    provider.fail_sign_out = True
    result = await gate.logout()
    assert result.session_cleared is True
    assert result.signed_out is False
    assert gate.identity is None
