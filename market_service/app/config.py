from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from common.models.user import DEFAULT_SIGNUP_GRANT


JWT_SECRET = "JWT_SECRET"
JWT_EXPIRE_DAYS = "JWT_EXPIRE_DAYS"
OTP_TTL_MINUTES = "OTP_TTL_MINUTES"
OTP_MAX_ATTEMPTS = "OTP_MAX_ATTEMPTS"
SMTP_HOST = "SMTP_HOST"
SMTP_PORT = "SMTP_PORT"
SMTP_USE_TLS = "SMTP_USE_TLS"
EMAIL_USER = "EMAIL_USER"
EMAIL_PASS = "EMAIL_PASS"
EMAIL_SENDER_NAME = "EMAIL_SENDER_NAME"
SIGNUP_GRANT_POINTS = "SIGNUP_GRANT_POINTS"
ADMIN_EMAILS = "ADMIN_EMAILS"
UPLOAD_DIR = "UPLOAD_DIR"
CORS_ALLOWED_ORIGINS = "CORS_ALLOWED_ORIGINS"
NOTIFICATION_CONSUMER_ENABLED = "NOTIFICATION_CONSUMER_ENABLED"
DEBUG = "DEBUG"


@dataclass(slots=True)
class AuthConfig:
    """JWT 서명 설정."""

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl_days: int = 7


@dataclass(slots=True)
class OtpConfig:
    ttl_minutes: int = 10
    max_attempts: int = 5


@dataclass(slots=True)
class MailConfig:
    """SMTP 발송 설정. username/password 가 비어 있으면 메일 기능은 비활성이다."""

    host: str = "smtp.gmail.com"
    port: int = 587
    username: str | None = None
    password: str | None = None
    sender_name: str = "ReWear"
    use_tls: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.username and self.password)


@dataclass(slots=True)
class LedgerConfig:
    """포인트 원장 설정.

    - signup_grant: 가입 시 한 번 지급하는 포인트. 포인트가 새로 생기는 유일한 경로다.
    - admin_emails: 이 목록의 이메일로 가입하면 administrator 역할을 받는다.
    """

    signup_grant: int = DEFAULT_SIGNUP_GRANT
    admin_emails: frozenset[str] = field(default_factory=frozenset)


@dataclass(slots=True)
class MediaConfig:
    upload_dir: str = "uploads"
    public_prefix: str = "/uploads"


@dataclass(slots=True)
class AppConfig:
    """market-service 전체 설정."""

    auth: AuthConfig
    otp: OtpConfig
    mail: MailConfig
    ledger: LedgerConfig
    media: MediaConfig
    cors_allowed_origins: list[str]
    notification_consumer_enabled: bool = False
    debug: bool = False


def _read_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer if set, got: {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got: {value}")
    return value


def _read_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _read_csv(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_auth_config() -> AuthConfig:
    secret = os.getenv(JWT_SECRET)
    if not secret:
        raise RuntimeError(
            f"{JWT_SECRET} environment variable is required for market-service",
        )
    return AuthConfig(
        jwt_secret=secret,
        token_ttl_days=_read_int(JWT_EXPIRE_DAYS, 7),
    )


def load_otp_config() -> OtpConfig:
    return OtpConfig(
        ttl_minutes=_read_int(OTP_TTL_MINUTES, 10),
        max_attempts=_read_int(OTP_MAX_ATTEMPTS, 5),
    )


def load_mail_config() -> MailConfig:
    return MailConfig(
        host=os.getenv(SMTP_HOST) or "smtp.gmail.com",
        port=_read_int(SMTP_PORT, 587),
        username=os.getenv(EMAIL_USER) or None,
        password=os.getenv(EMAIL_PASS) or None,
        sender_name=os.getenv(EMAIL_SENDER_NAME) or "ReWear",
        use_tls=_read_bool(SMTP_USE_TLS, True),
    )


def load_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        signup_grant=_read_int(SIGNUP_GRANT_POINTS, DEFAULT_SIGNUP_GRANT, minimum=0),
        admin_emails=frozenset(email.lower() for email in _read_csv(ADMIN_EMAILS)),
    )


def load_media_config() -> MediaConfig:
    return MediaConfig(upload_dir=os.getenv(UPLOAD_DIR) or "uploads")


def load_cors_origins() -> list[str]:
    origins = _read_csv(CORS_ALLOWED_ORIGINS)
    return origins or ["http://localhost:5173"]


def load_notification_consumer_enabled() -> bool:
    return _read_bool(NOTIFICATION_CONSUMER_ENABLED, False)


def load_debug() -> bool:
    return _read_bool(DEBUG, False)


def load_config() -> AppConfig:
    """market-service 설정을 환경 변수에서 읽어 AppConfig 로 반환한다."""

    return AppConfig(
        auth=load_auth_config(),
        otp=load_otp_config(),
        mail=load_mail_config(),
        ledger=load_ledger_config(),
        media=load_media_config(),
        cors_allowed_origins=load_cors_origins(),
        notification_consumer_enabled=load_notification_consumer_enabled(),
        debug=load_debug(),
    )


@lru_cache
def get_config() -> AppConfig:
    """FastAPI 의존성으로 쓰는 설정 싱글톤."""
    return load_config()
