from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..deps import get_current_user_id
from ..schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SendOtpRequest,
    UpdateProfileRequest,
    UserEnvelope,
    UserResponse,
)
from ..schemas.common import MessageResponse
from ...services.auth_service import AuthService, get_auth_service


router = APIRouter()


@router.post("/send-otp", response_model=MessageResponse, summary="가입 OTP 발송")
def send_otp(
    body: SendOtpRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    service.send_otp(body.email)
    return MessageResponse(message="OTP sent to email")


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="OTP 검증 후 가입",
)
def register(
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    profile = service.register(body.name, body.email, body.password, body.otp)
    return RegisterResponse(
        message="User registered successfully",
        user=UserResponse.from_domain(profile),
    )


@router.post("/login", response_model=LoginResponse, summary="로그인")
def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    token, profile = service.login(body.email, body.password)
    return LoginResponse(token=token, user=UserResponse.from_domain(profile))


@router.get("/user", response_model=UserEnvelope, summary="내 정보 조회")
def get_me(
    user_id: str = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
) -> UserEnvelope:
    return UserEnvelope(user=UserResponse.from_domain(service.get_user(user_id)))


@router.patch("/user", response_model=UserEnvelope, summary="내 이름 수정")
def update_me(
    body: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
) -> UserEnvelope:
    profile = service.update_profile(user_id, body.name)
    return UserEnvelope(user=UserResponse.from_domain(profile))
