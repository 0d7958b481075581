from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from market_service.app.config import AuthConfig
from market_service.app.errors import AuthenticationError
from market_service.app.security import (
    create_access_token,
    decode_access_token,
    generate_otp,
    hash_otp,
    hash_password,
    verify_password,
)


CONFIG = AuthConfig(jwt_secret="unit-test-secret")


def test_password_hash_verifies_only_the_original_password() -> None:
    hashed = hash_password("correct horse")

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("correct horse", "not-a-bcrypt-hash")


def test_generate_otp_is_six_digits() -> None:
    for _ in range(20):
        code = generate_otp()
        assert len(code) == 6
        assert code.isdigit()


def test_otp_hash_is_bound_to_email() -> None:
    assert hash_otp("a@example.com", "123456", "s") == hash_otp("a@example.com", "123456", "s")
    assert hash_otp("a@example.com", "123456", "s") != hash_otp("b@example.com", "123456", "s")


def test_access_token_round_trip() -> None:
    token = create_access_token("64b000000000000000000001", CONFIG)

    assert decode_access_token(token, CONFIG) == "64b000000000000000000001"


def test_expired_token_is_rejected() -> None:
    issued = datetime.now(timezone.utc) - timedelta(days=CONFIG.token_ttl_days + 1)
    token = create_access_token("user", CONFIG, now=issued)

    with pytest.raises(AuthenticationError) as exc_info:
        decode_access_token(token, CONFIG)
    assert exc_info.value.message == "token expired"


def test_token_signed_with_other_secret_is_rejected() -> None:
    token = create_access_token("user", AuthConfig(jwt_secret="other"))

    with pytest.raises(AuthenticationError):
        decode_access_token(token, CONFIG)


def test_token_without_subject_is_rejected() -> None:
    token = jwt.encode(
        {"exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        CONFIG.jwt_secret,
        algorithm="HS256",
    )

    with pytest.raises(AuthenticationError):
        decode_access_token(token, CONFIG)
