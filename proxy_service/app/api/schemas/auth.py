from __future__ import annotations

from pydantic import BaseModel


class LoginResponse(BaseModel):
    authenticated: bool
    message: str


class LogoutResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    detail: str
