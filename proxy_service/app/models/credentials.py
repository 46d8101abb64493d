from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import BaseModel, field_validator


class LoginCredentials(BaseModel):
    """로그인 폼에서 받은 사용자 자격증명. 두 필드 모두 비어 있지 않은 문자열이어야 한다."""

    username: str
    password: str

    @field_validator("username", "password", mode="before")
    @classmethod
    def _non_empty_string(cls, value: object) -> str:
        # 폼 파일 파트(UploadFile) 같은 비문자열 값을 문자열로 강제 변환하지 않는다.
        if not isinstance(value, str):
            raise ValueError("must be a string")
        if not value:
            raise ValueError("must not be empty")
        return value


@dataclass(slots=True, frozen=True)
class UpstreamCredential:
    """업스트림 세션 쿠키 한 쌍 (name=value)."""

    cookie_name: str
    value: str

    @property
    def header_value(self) -> str:
        """업스트림 Cookie 헤더에 그대로 넣을 문자열."""
        return f"{self.cookie_name}={self.value}"


def extract_upstream_credential(
    set_cookie_values: Iterable[str],
    cookie_name: str,
) -> UpstreamCredential | None:
    """Set-Cookie 헤더 값들에서 업스트림 세션 쿠키를 찾는다.

    여러 Set-Cookie 헤더가 하나로 합쳐져 들어와도 찾을 수 있도록 헤더 전체를 스캔한다.
    찾지 못하면 None.
    """

    pattern = re.compile(rf"(?:^|[\s,;]){re.escape(cookie_name)}=([^;,\s]+)")
    for header in set_cookie_values:
        if not header:
            continue
        match = pattern.search(header)
        if match:
            value = match.group(1).strip('"')
            if value:
                return UpstreamCredential(cookie_name=cookie_name, value=value)
    return None
