"""가입(OTP), 로그인, 내 정보 조회/수정."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends
from pymongo.database import Database

from common.models.user import User, UserProfile, UserRole
from common.mongo.client import get_database

from ..config import AppConfig, get_config
from ..errors import (
    InvalidCredentialsError,
    InvalidOtpError,
    MailDeliveryError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
)
from ..mailer import MailerInterface, SmtpMailer, build_otp_message
from ..models.otp import OtpCode
from ..repositories.interfaces import OtpRepositoryInterface, UserRepositoryInterface
from ..repositories.otp_repository import OtpRepository
from ..repositories.user_repository import UserRepository
from ..security import (
    create_access_token,
    generate_otp,
    hash_otp,
    hash_password,
    verify_password,
)


logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class AuthService:
    """이메일 OTP 가입과 비밀번호 로그인.

    - 유저는 OTP 검증을 통과한 뒤에만 만들어진다.
    - 가입 시 지급하는 포인트가 시스템에서 포인트가 생기는 유일한 경로다.
    """

    def __init__(
        self,
        user_repo: UserRepositoryInterface,
        otp_repo: OtpRepositoryInterface,
        mailer: MailerInterface,
        config: AppConfig,
    ) -> None:
        self._user_repo = user_repo
        self._otp_repo = otp_repo
        self._mailer = mailer
        self._config = config

    def send_otp(self, email: str | None) -> None:
        email = normalize_email(email)
        if not email or "@" not in email:
            raise ValidationError("email is required")

        code = generate_otp()
        now = datetime.now(timezone.utc)
        self._otp_repo.save(
            OtpCode(
                email=email,
                code_hash=self._hash(email, code),
                attempts=0,
                expires_at=now + timedelta(minutes=self._config.otp.ttl_minutes),
                created_at=now,
                updated_at=now,
            )
        )

        subject, body = build_otp_message(code, self._config.otp.ttl_minutes)
        try:
            self._mailer.send(email, subject, body)
        except MailDeliveryError:
            # 받지 못한 코드가 남아 있지 않도록 지운다.
            self._otp_repo.discard(email)
            raise

        logger.info("otp sent")

    def register(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        otp: str | None,
    ) -> UserProfile:
        name = (name or "").strip()
        email = normalize_email(email)
        otp = (otp or "").strip()
        if not name or not email or not password or not otp:
            raise ValidationError("name, email, password and otp are required")

        if self._user_repo.find_by_email(email) is not None:
            raise UserAlreadyExistsError()

        now = datetime.now(timezone.utc)
        consumed = self._otp_repo.consume(email, self._hash(email, otp), now)
        if consumed is None:
            self._otp_repo.record_failed_attempt(email, self._config.otp.max_attempts)
            raise InvalidOtpError()

        role = (
            UserRole.ADMINISTRATOR
            if email in self._config.ledger.admin_emails
            else UserRole.MEMBER
        )
        created = self._user_repo.insert(
            User(
                name=name,
                email=email,
                password_hash=hash_password(password),
                balance=self._config.ledger.signup_grant,
                role=role,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("user registered", extra={"user_id": created.id})
        return UserProfile.from_user(created)

    def login(self, email: str | None, password: str | None) -> tuple[str, UserProfile]:
        """성공 시 (액세스 토큰, 프로필). 없는 이메일과 틀린 비밀번호는 같은 오류다."""
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("email and password are required")

        user = self._user_repo.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        assert user.id is not None
        token = create_access_token(user.id, self._config.auth)
        return token, UserProfile.from_user(user)

    def get_user(self, user_id: str) -> UserProfile:
        user = self._user_repo.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return UserProfile.from_user(user)

    def update_profile(self, user_id: str, name: str | None) -> UserProfile:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name is required")

        updated = self._user_repo.update_profile(user_id, name)
        if updated is None:
            raise UserNotFoundError()
        return UserProfile.from_user(updated)

    def _hash(self, email: str, code: str) -> str:
        return hash_otp(email, code, self._config.auth.jwt_secret)


def get_user_repository(
    db: Database = Depends(get_database),
) -> UserRepositoryInterface:
    """FastAPI DI용 UserRepository 팩토리."""

    return UserRepository(db)


def get_otp_repository(
    db: Database = Depends(get_database),
) -> OtpRepositoryInterface:
    return OtpRepository(db)


def get_mailer(config: AppConfig = Depends(get_config)) -> MailerInterface:
    return SmtpMailer(config.mail)


def get_auth_service(
    user_repo: UserRepositoryInterface = Depends(get_user_repository),
    otp_repo: OtpRepositoryInterface = Depends(get_otp_repository),
    mailer: MailerInterface = Depends(get_mailer),
    config: AppConfig = Depends(get_config),
) -> AuthService:
    """FastAPI DI용 AuthService 팩토리."""

    return AuthService(user_repo=user_repo, otp_repo=otp_repo, mailer=mailer, config=config)
