from login_portal.api.routes import auth, dashboard, password_reset

__all__ = [
    "auth",
    "password_reset",
    "dashboard",
]
