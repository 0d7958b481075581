from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, model_validator


class OtpCode(BaseModel):
    """이메일로 발송한 가입용 일회용 코드.

    - 원문 코드는 저장하지 않고 code_hash 만 보관한다.
    - 이메일당 하나만 존재하며, 새 요청이 오면 이전 코드를 덮어쓴다.
    """

    email: str
    code_hash: str
    attempts: int = 0
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _validate_expiry(self) -> "OtpCode":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be greater than created_at")
        return self
