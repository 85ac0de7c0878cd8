"""
Typed failures raised by the auth core.

Each error carries an external ``message`` that is safe to show the caller and
an internal ``reason`` that is only ever logged. Several distinct reasons share
one message on purpose (unknown user vs. wrong password, revoked vs. expired
token) so callers cannot tell them apart.
"""


class AuthError(Exception):
    code = "auth_error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None, reason: str | None = None):
        self.message = message or self.default_message
        self.reason = reason or self.code
        super().__init__(self.message)

    @property
    def errors(self) -> list[str]:
        return [self.message]

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "errors": self.errors}


class ValidationError(AuthError):
    code = "validation_error"
    status_code = 422
    default_message = "Invalid input"

    def __init__(self, errors: list[str] | str, reason: str | None = None):
        self._errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self._errors), reason=reason or "invalid_input")

    @property
    def errors(self) -> list[str]:
        return list(self._errors)


class AuthenticationError(AuthError):
    code = "authentication_error"
    status_code = 401
    default_message = "Invalid email or password"


class Unauthorized(AuthError):
    code = "unauthorized"
    status_code = 401
    default_message = "Not authenticated"


class NotFoundError(AuthError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidTokenError(AuthError):
    code = "invalid_token"
    status_code = 400
    default_message = "Invalid or expired reset token"


class ConflictError(AuthError):
    code = "conflict"
    status_code = 409
    default_message = "Conflict"


class ForbiddenError(AuthError):
    code = "forbidden"
    status_code = 403
    default_message = "Forbidden"
