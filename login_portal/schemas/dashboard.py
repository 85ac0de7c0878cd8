from pydantic import BaseModel

from login_portal.schemas.auth import UserResponse


class DashboardResponse(BaseModel):
    greeting: str
    user: UserResponse
