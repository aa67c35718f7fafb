from datetime import datetime, timedelta, timezone

import pytest

from farm_advisory.auth import LocalIdentityProvider
from farm_advisory.errors import InvalidInput, Unauthorized


class ClockStub:
    def __init__(self):
        self.now = datetime(2024, 2, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def idp(store):
    clock = ClockStub()
    return LocalIdentityProvider(store, token_ttl=timedelta(hours=1), clock=clock), clock


def test_create_user_normalizes_email_and_hides_hash(idp):
    provider, _ = idp
    user = provider.create_user("  Asha@Example.com ", "s3cret-pass", {"name": "Asha"})

    assert user.email == "asha@example.com"
    assert user.user_metadata == {"name": "Asha"}
    assert "password_hash" not in user.model_dump()


def test_duplicate_email_is_rejected(idp):
    provider, _ = idp
    provider.create_user("asha@example.com", "s3cret-pass", {})

    with pytest.raises(InvalidInput):
        provider.create_user("ASHA@example.com", "another-pass", {})


def test_short_password_is_rejected(idp):
    provider, _ = idp
    with pytest.raises(InvalidInput):
        provider.create_user("asha@example.com", "123", {})


def test_sign_in_issues_token_resolving_to_user(idp):
    provider, _ = idp
    user = provider.create_user("asha@example.com", "s3cret-pass", {})

    session = provider.sign_in("asha@example.com", "s3cret-pass")

    assert session.access_token
    assert session.user.id == user.id
    assert provider.get_user(session.access_token).id == user.id


def test_sign_in_with_wrong_password_fails(idp):
    provider, _ = idp
    provider.create_user("asha@example.com", "s3cret-pass", {})

    with pytest.raises(Unauthorized):
        provider.sign_in("asha@example.com", "wrong-pass")
    with pytest.raises(Unauthorized):
        provider.sign_in("nobody@example.com", "s3cret-pass")


def test_unknown_and_expired_tokens_do_not_resolve(idp, store):
    provider, clock = idp
    provider.create_user("asha@example.com", "s3cret-pass", {})
    session = provider.sign_in("asha@example.com", "s3cret-pass")

    assert provider.get_user("made-up") is None
    assert provider.get_user("") is None

    clock.now += timedelta(hours=2)
    assert provider.get_user(session.access_token) is None
    assert store.get(f"auth_token:{session.access_token}") is None


def test_sign_out_revokes_token_and_is_idempotent(idp):
    provider, _ = idp
    provider.create_user("asha@example.com", "s3cret-pass", {})
    session = provider.sign_in("asha@example.com", "s3cret-pass")

    provider.sign_out(session.access_token)
    provider.sign_out(session.access_token)

    assert provider.get_user(session.access_token) is None
