from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, field_validator, model_validator


class ProxySession(BaseModel):
    """프록시 세션 ID 와 업스트림 자격증명을 연결하는 도메인 모델.

    - session_id 는 프록시가 만든 불투명 값이며 브라우저 쿠키로만 노출된다.
    - upstream_credential 은 브라우저에 절대 노출되지 않는다.
    - expires_at 은 생성 시점에 고정되며 사용해도 연장되지 않는다.
    """

    session_id: str
    upstream_credential: str
    expires_at: datetime
    created_at: datetime

    @field_validator("session_id", "upstream_credential")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def _validate_expiry(self) -> "ProxySession":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be greater than created_at")
        return self

    @classmethod
    def issue(
        cls,
        session_id: str,
        upstream_credential: str,
        ttl_seconds: int,
        now: datetime | None = None,
    ) -> "ProxySession":
        created_at = now or datetime.now(timezone.utc)
        return cls(
            session_id=session_id,
            upstream_credential=upstream_credential,
            expires_at=created_at + timedelta(seconds=ttl_seconds),
            created_at=created_at,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        current = now or datetime.now(timezone.utc)
        return self.expires_at <= current
