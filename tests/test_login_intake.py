from __future__ import annotations

import pytest

from rememberme.core.accounts.intake import LoginIntake
from rememberme.core.errors import IdentityIntegrityError, LoginRejectedError, ValidationError
from rememberme.core.identity.codec import generate_identifier


def _envelope(**data):
    return {"success": True, "data": data, "message": "ok"}


def test_login_stores_account_without_token_in_profile(store, log):
    intake = LoginIntake(store, logger=log)
    uid = generate_identifier(True)
    profile = intake.accept_login(_envelope(id=uid, username="root", isAdmin=True, token="t1", stats={"loginCount": 2}))
    assert "token" not in profile
    assert profile["stats"]["loginCount"] == 3
    assert profile["lastLoginAt"] == profile["stats"]["lastActiveAt"]
    assert store.get_token("root") == "t1"
    assert store.get_account("root")["id"] == uid
    assert store.get_active() == "root"


def test_login_with_large_avatar_round_trips(store):
    avatar = "data:image/png;base64," + "A" * 9000
    profile = LoginIntake(store).accept_login(
        _envelope(id=generate_identifier(False), username="pic", isAdmin=False, token="t", avatar=avatar)
    )
    assert profile["avatar"] == avatar
    assert store.get_account("pic")["avatar"] == avatar


def test_rejected_envelope_uses_server_message(store):
    with pytest.raises(LoginRejectedError) as ei:
        LoginIntake(store).accept_login({"success": False, "data": None, "message": "bad password"})
    assert ei.value.user_message == "bad password"
    assert store.list_all_usernames() == set()


def test_missing_token_is_rejected(store):
    with pytest.raises(ValidationError):
        LoginIntake(store).accept_login(_envelope(id=generate_identifier(False), username="x", isAdmin=False))


def test_non_mapping_envelope(store):
    with pytest.raises(ValidationError):
        LoginIntake(store).accept_login(["not", "an", "envelope"])  # type: ignore[arg-type]


def test_role_mismatch_is_not_stored(store, log):
    intake = LoginIntake(store, logger=log)
    with pytest.raises(IdentityIntegrityError) as ei:
        intake.accept_login(_envelope(id=generate_identifier(False), username="sneaky", isAdmin=True, token="t"))
    assert ei.value.reason == "role_mismatch"
    assert store.get_token("sneaky") is None
    assert any("sneaky" in m for m in log.messages("ERROR"))


def test_corrupt_identifier_is_not_stored(store):
    with pytest.raises(IdentityIntegrityError) as ei:
        LoginIntake(store).accept_login(_envelope(id="0100-0000", username="x", isAdmin=False, token="t"))
    assert ei.value.reason == "invalid_identifier"
    assert store.get_token("x") is None


def test_registration_fills_defaults(store):
    profile = LoginIntake(store).accept_registration(
        _envelope(id=generate_identifier(False), username="new", isAdmin=False, token="t", preferences={"theme": "dark"})
    )
    assert profile["preferences"] == {"theme": "dark", "language": "zh-CN"}
    assert profile["stats"]["loginCount"] == 1
    assert profile["createdAt"] == profile["lastLoginAt"]
    assert store.get_current_account()["username"] == "new"
