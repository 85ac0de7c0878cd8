from fastapi import APIRouter

from login_portal.api.routes import auth, dashboard, password_reset
from login_portal.schemas.auth import ErrorResponse

# Every AuthError is rendered by the app-level handler in this shape.
error_responses = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}

api_router = APIRouter(responses=error_responses)
api_router.include_router(auth.router)
api_router.include_router(password_reset.router)
api_router.include_router(dashboard.router)
