from datetime import datetime

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    # Optional so missing fields are reported together by the service, not by the parser.
    email: str | None = None
    password: str | None = None


class RegisterRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    full_name: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str | None = None
    new_password: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    created_at: datetime


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    errors: list[str] = []
