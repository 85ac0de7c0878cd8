from fastapi import APIRouter, Depends, Request

from login_portal.core.config import get_settings
from login_portal.core.deps import CurrentSession, get_auth_service, get_current_session, get_current_user, oauth2_scheme
from login_portal.core.errors import ForbiddenError
from login_portal.core.rate_limit import limiter
from login_portal.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from login_portal.services.auth import AuthService
from login_portal.stores.base import UserRecord

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.login(payload.email, payload.password)
    return LoginResponse(
        token=result.token,
        expires_at=result.expires_at,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(token: str | None = Depends(oauth2_scheme), auth: AuthService = Depends(get_auth_service)):
    auth.logout(token)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
def me(current_user: UserRecord = Depends(get_current_user)):
    return current_user


@router.post("/register", response_model=UserResponse, status_code=201)
@limiter.limit("10/minute")
def register(request: Request, payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    if not get_settings().ALLOW_PUBLIC_SIGNUP:
        raise ForbiddenError("Public signup is disabled", reason="signup_disabled")
    return auth.register(payload.email, payload.password, payload.full_name)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    session: CurrentSession = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
):
    auth.change_password(session.user, session.jti, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed")
