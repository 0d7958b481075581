from __future__ import annotations

from common.mongo.types import BaseDocument, MongoDateTime

from ...models.otp import OtpCode


class OtpDocument(BaseDocument):
    """MongoDB otp_codes 컬렉션 도큐먼트. expires_at 에 TTL 인덱스가 걸려 있다."""

    email: str
    code_hash: str
    attempts: int = 0
    expires_at: MongoDateTime

    @classmethod
    def from_domain(cls, otp: OtpCode) -> "OtpDocument":
        return cls.model_validate(otp.model_dump())

    def to_domain(self) -> OtpCode:
        return OtpCode(
            email=self.email,
            code_hash=self.code_hash,
            attempts=self.attempts,
            expires_at=self.expires_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
