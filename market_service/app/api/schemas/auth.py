from __future__ import annotations

from pydantic import BaseModel

from common.models.user import UserProfile, UserRole
from common.types.datetime import UtcDateTime


# 필드 누락은 서비스에서 ValidationError(400) 로 처리하므로 모두 Optional 로 받는다.
class SendOtpRequest(BaseModel):
    email: str | None = None


class RegisterRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    otp: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class UpdateProfileRequest(BaseModel):
    name: str | None = None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    points: int
    created_at: UtcDateTime
    updated_at: UtcDateTime

    @classmethod
    def from_domain(cls, profile: UserProfile) -> "UserResponse":
        return cls(
            id=profile.id,
            name=profile.name,
            email=profile.email,
            role=profile.role,
            points=profile.balance,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class UserEnvelope(BaseModel):
    user: UserResponse
