from fastapi import APIRouter, Depends

from login_portal.core.deps import get_current_user
from login_portal.schemas.auth import UserResponse
from login_portal.schemas.dashboard import DashboardResponse
from login_portal.stores.base import UserRecord

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
def dashboard(current_user: UserRecord = Depends(get_current_user)):
    name = current_user.full_name or current_user.email
    return DashboardResponse(greeting=f"Welcome, {name}", user=UserResponse.model_validate(current_user))
