"""마켓 서비스 예외 계층.

서비스 레이어는 HTTP 를 모르고 이 예외들만 던진다. main.py 의 예외 핸들러가
status_code / code 를 보고 {"detail": {"code", "message"}} 응답으로 바꾼다.
"""

from __future__ import annotations


class MarketError(Exception):
    """호출자에게 그대로 보여줘도 되는 도메인 오류의 베이스."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# 4xx: 입력 ------------------------------------------------------------------
class ValidationError(MarketError):
    status_code = 400
    code = "validation_error"
    default_message = "invalid request"


class InvalidCredentialsError(MarketError):
    status_code = 400
    code = "invalid_credentials"
    default_message = "invalid credentials"


# 4xx: 조회 실패 ---------------------------------------------------------------
class NotFoundError(MarketError):
    status_code = 404
    code = "not_found"
    default_message = "resource not found"


class UserNotFoundError(NotFoundError):
    code = "user_not_found"
    default_message = "user not found"


class ItemNotFoundError(NotFoundError):
    code = "item_not_found"
    default_message = "item not found"


# 4xx: 상태 충돌 (상태가 바뀌기 전에는 재시도해도 같은 결과) ------------------------
class ConflictError(MarketError):
    status_code = 400
    code = "conflict"
    default_message = "request conflicts with current state"


class UserAlreadyExistsError(ConflictError):
    code = "user_already_exists"
    default_message = "user already exists"


class InvalidOtpError(ConflictError):
    code = "invalid_otp"
    default_message = "invalid or expired otp"


class ItemNotApprovedError(ConflictError):
    code = "item_not_approved"
    default_message = "item not approved"


class ItemNotAvailableError(ConflictError):
    code = "item_not_available"
    default_message = "item not available"


class SelfRedemptionError(ConflictError):
    code = "self_redemption"
    default_message = "cannot redeem your own item"


class InsufficientPointsError(ConflictError):
    code = "insufficient_points"
    default_message = "not enough points to redeem"


# 4xx: 인증/인가 --------------------------------------------------------------
class AuthenticationError(MarketError):
    status_code = 401
    code = "unauthenticated"
    default_message = "authentication required"


class AuthorizationError(MarketError):
    status_code = 403
    code = "forbidden"
    default_message = "administrator role required"


# 5xx: 외부 의존성 ------------------------------------------------------------
class DependencyError(MarketError):
    status_code = 503
    code = "dependency_unavailable"
    default_message = "dependency unavailable"


class MailDeliveryError(DependencyError):
    status_code = 500
    code = "mail_unavailable"
    default_message = "email service unavailable. please try again later."


class StorageUnavailableError(DependencyError):
    code = "storage_unavailable"
    default_message = "storage unavailable. nothing was changed."
