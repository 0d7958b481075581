"""인증/인가 의존성."""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from common.models.user import User

from ..config import AppConfig, get_config
from ..errors import AuthenticationError, AuthorizationError
from ..repositories.interfaces import UserRepositoryInterface
from ..security import decode_access_token
from ..services.auth_service import get_user_repository


# auto_error=False: 헤더가 없을 때도 403 대신 우리 오류 포맷(401)으로 응답한다.
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    config: AppConfig = Depends(get_config),
) -> str:
    """Bearer 토큰을 검증하고 user id 를 반환한다. 유저 존재 여부는 보지 않는다."""

    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    user_id = decode_access_token(credentials.credentials, config.auth)
    request.state.user_id = user_id
    return user_id


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    user_repo: UserRepositoryInterface = Depends(get_user_repository),
) -> User:
    user = user_repo.find_by_id(user_id)
    if user is None:
        # 토큰은 유효하지만 유저가 사라진 경우
        raise AuthenticationError("user no longer exists")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError()
    return user
