"""비밀번호 해시, OTP 해시, 액세스 토큰 발급/검증."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from .config import AuthConfig
from .errors import AuthenticationError


OTP_DIGITS = 6


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # 저장된 해시 형식이 잘못된 경우
        return False


def generate_otp() -> str:
    """6자리 숫자 코드. 앞자리 0 도 허용한다."""
    return f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"


def hash_otp(email: str, code: str, secret: str) -> str:
    """이메일에 묶인 OTP 해시. 다른 이메일의 코드로는 일치하지 않는다."""
    message = f"{email}:{code}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def create_access_token(user_id: str, config: AuthConfig, now: datetime | None = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=config.token_ttl_days),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: AuthConfig) -> str:
    """토큰을 검증하고 user id(sub) 를 반환한다.

    만료, 서명 불일치, sub 누락은 모두 AuthenticationError 로 통일한다.
    """

    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("invalid token") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthenticationError("invalid token")
    return subject
