from fastapi import APIRouter, Depends, Request

from login_portal.core.config import get_settings
from login_portal.core.deps import get_auth_service
from login_portal.core.rate_limit import limiter
from login_portal.schemas.auth import MessageResponse
from login_portal.schemas.password_reset import ForgotPasswordRequest, ResetPasswordRequest
from login_portal.services.auth import AuthService

router = APIRouter(prefix="/password", tags=["password"])
settings = get_settings()


@router.post("/forgot", response_model=MessageResponse)
@limiter.limit(settings.PASSWORD_RESET_RATE_LIMIT)
def forgot_password(request: Request, payload: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    return MessageResponse(message=auth.request_password_reset(payload.email))


@router.post("/reset", response_model=MessageResponse)
@limiter.limit(settings.PASSWORD_RESET_RATE_LIMIT)
def reset_password(request: Request, payload: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    auth.reset_password(payload.token, payload.new_password)
    return MessageResponse(message="Password has been reset")
