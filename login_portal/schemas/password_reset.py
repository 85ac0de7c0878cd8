from pydantic import BaseModel


class ForgotPasswordRequest(BaseModel):
    email: str | None = None


class ResetPasswordRequest(BaseModel):
    token: str | None = None
    new_password: str | None = None
