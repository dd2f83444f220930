from calendar import timegm
from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from sensorhub.auth.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    InvalidSignature,
    TokenExpired,
    create_access_token,
    create_refresh_token,
    hash_password,
    issue_token,
    verify_password,
    verify_token,
)

ana = SimpleNamespace(id=7, email="ana@x.com", name="Ana", role="usuario")


def test_issued_token_verifies_and_carries_identity_claims():
    token, expires_at = create_access_token(ana)

    claims = verify_token(token)

    assert claims["sub"] == "7"
    assert claims["typ"] == TOKEN_TYPE_ACCESS
    assert claims["correo"] == "ana@x.com"
    assert claims["rol"] == "usuario"
    assert claims["exp"] == timegm(expires_at.utctimetuple())


def test_refresh_token_outlives_access_token():
    _, access_exp = create_access_token(ana)
    refresh_token, refresh_exp = create_refresh_token(ana)

    assert refresh_exp > access_exp
    assert verify_token(refresh_token)["typ"] == TOKEN_TYPE_REFRESH


def test_tokens_issued_back_to_back_are_distinct():
    first, _ = create_access_token(ana)
    second, _ = create_access_token(ana)

    assert first != second


def test_expired_token_is_reported_as_expired():
    token, _ = issue_token(ana.id, {}, timedelta(seconds=-30))

    with pytest.raises(TokenExpired):
        verify_token(token)


def test_token_signed_with_another_key_is_rejected():
    forged = jwt.encode({"sub": "7", "typ": "access"}, "some-other-secret", algorithm="HS256")

    with pytest.raises(InvalidSignature):
        verify_token(forged)


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c"])
def test_malformed_token_is_rejected(garbage):
    with pytest.raises(InvalidSignature):
        verify_token(garbage)


def test_password_hash_round_trip():
    hashed = hash_password("secret1")

    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)


def test_password_over_bcrypt_limit_is_refused():
    with pytest.raises(ValueError):
        hash_password("x" * 73)
