"""
Smoke tests for the SQLRepository against a temporary SQLite database.
"""
from __future__ import annotations

from datetime import timedelta

from booknet.db.models import TokenPurpose

from conftest import T0


def _issue(repo, user, code, purpose, created_at=T0):
    return repo.create_token(
        user.id, code, purpose, created_at=created_at, expires_at=created_at + timedelta(minutes=15)
    )


def test_user_roundtrip_with_default_role(repo, make_user):
    user = make_user("ada@example.com")

    loaded = repo.get_user_by_email("ada@example.com")
    assert loaded is not None
    assert loaded.id == user.id
    assert loaded.full_name == "Ada Lovelace"
    assert [role.name for role in loaded.roles] == ["USER"]
    assert repo.get_user(user.id).email == "ada@example.com"
    assert repo.get_user_by_email("other@example.com") is None


def test_token_lookup_is_scoped_by_purpose(repo, make_user):
    user = make_user()
    _issue(repo, user, "123456", TokenPurpose.FORGOT_PASSWORD)

    assert repo.get_token("123456") is not None
    assert repo.get_token_for_purpose("123456", TokenPurpose.FORGOT_PASSWORD) is not None
    assert repo.get_token_for_purpose("123456", TokenPurpose.ACCOUNT_ACTIVATION) is None


def test_colliding_codes_resolve_to_most_recent(repo, make_user):
    first = make_user("a@example.com")
    second = make_user("b@example.com")
    _issue(repo, first, "111111", TokenPurpose.ACCOUNT_ACTIVATION)
    _issue(repo, second, "111111", TokenPurpose.ACCOUNT_ACTIVATION, created_at=T0 + timedelta(minutes=1))

    token = repo.get_token_for_purpose("111111", TokenPurpose.ACCOUNT_ACTIVATION)
    assert token.user_id == second.id


def test_activate_user_updates_user_and_token(repo, make_user):
    user = make_user(enabled=False)
    token = _issue(repo, user, "222222", TokenPurpose.ACCOUNT_ACTIVATION)

    assert repo.activate_user(user.id, token.id, T0 + timedelta(minutes=1)) is True

    assert repo.get_user(user.id).enabled is True
    assert repo.get_token("222222").validated_at is not None


def test_activate_user_skips_expired_or_missing_token(repo, make_user):
    user = make_user(enabled=False)
    token = _issue(repo, user, "222222", TokenPurpose.ACCOUNT_ACTIVATION)

    assert repo.activate_user(user.id, token.id, T0 + timedelta(minutes=16)) is False
    assert repo.activate_user(user.id, token.id + 100, T0) is False

    assert repo.get_user(user.id).enabled is False
    assert repo.get_token("222222").validated_at is None


def test_reset_user_password_consumes_token(repo, make_user):
    user = make_user()
    token = _issue(repo, user, "333333", TokenPurpose.FORGOT_PASSWORD)
    repo.mark_token_validated(token.id, T0)

    assert repo.reset_user_password(user.id, "new-hash", token.id, T0 + timedelta(minutes=2)) is True

    assert repo.get_user(user.id).password == "new-hash"
    assert repo.get_token("333333") is None


def test_reset_user_password_needs_a_verified_live_token(repo, make_user):
    user = make_user()
    original_hash = user.password
    unverified = _issue(repo, user, "333333", TokenPurpose.FORGOT_PASSWORD)
    verified = _issue(repo, user, "666666", TokenPurpose.FORGOT_PASSWORD)
    repo.mark_token_validated(verified.id, T0)

    assert repo.reset_user_password(user.id, "new-hash", unverified.id, T0) is False
    assert repo.reset_user_password(user.id, "new-hash", verified.id, T0 + timedelta(minutes=16)) is False

    assert repo.get_user(user.id).password == original_hash
    assert len(repo.get_tokens_for_user(user.id)) == 2


def test_reset_user_password_only_once_per_token(repo, make_user):
    user = make_user()
    token = _issue(repo, user, "333333", TokenPurpose.FORGOT_PASSWORD)
    repo.mark_token_validated(token.id, T0)

    assert repo.reset_user_password(user.id, "first-hash", token.id, T0) is True
    assert repo.reset_user_password(user.id, "second-hash", token.id, T0) is False

    assert repo.get_user(user.id).password == "first-hash"


def test_delete_expired_tokens_counts_rows(repo, make_user):
    user = make_user()
    _issue(repo, user, "444444", TokenPurpose.ACCOUNT_ACTIVATION)
    _issue(repo, user, "555555", TokenPurpose.FORGOT_PASSWORD, created_at=T0 + timedelta(hours=1))

    removed = repo.delete_expired_tokens(T0 + timedelta(minutes=30))

    assert removed == 1
    assert [t.token for t in repo.get_tokens_for_user(user.id)] == ["555555"]


def test_update_user_photo(repo, make_user):
    user = make_user()
    repo.update_user_photo(user.id, "users/1/1700000000000.png")
    assert repo.get_user(user.id).photo == "users/1/1700000000000.png"
