"""공통 스키마 정의."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """모든 오류 응답의 형태: {"detail": {"code", "message"}}."""

    detail: ErrorDetail


class MessageResponse(BaseModel):
    message: str
