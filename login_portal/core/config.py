from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Ignore unknown env vars so a shared .env can carry settings for the UI as well.
    model_config = SettingsConfigDict(env_file=(".env", "../.env"), case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "LoginPortal"
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"

    SECRET_KEY: str = "change_me"
    SESSION_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_ALGORITHM: str = "HS512"
    JWT_ISSUER: str = "login-portal"
    JWT_AUDIENCE: str = "login-portal-api"

    # Revoke a user's other sessions on every successful login.
    SINGLE_ACTIVE_SESSION: bool = False

    DATABASE_URL: str = "sqlite:///./login_portal.db"
    # "sql" keeps users and tokens in DATABASE_URL; "memory" is process-local.
    STORE_BACKEND: str = "sql"

    REDIS_URL: str = "redis://redis:6379/0"
    CELERY_BROKER_URL: str = "redis://redis:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/2"

    BACKEND_CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["http://localhost:4200"])
    ALLOWED_HOSTS: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "testserver"])
    FRONTEND_URL: str = "http://localhost:4200"

    ENABLE_API_DOCS: bool = False
    ALLOW_PUBLIC_SIGNUP: bool = False

    # "smtp" sends inline, "celery" queues delivery, "log" only records the attempt.
    NOTIFIER_BACKEND: str = "smtp"
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "no-reply@login-portal.local"
    SMTP_USE_TLS: bool = True

    PASSWORD_RESET_TOKEN_TTL_MINUTES: int = 30
    # Reset requests for unknown emails answer "Email not found". Set to false to
    # answer every request with the generic acknowledgment instead.
    PASSWORD_RESET_REVEALS_UNKNOWN_EMAIL: bool = True

    LOGIN_RATE_LIMIT: str = "20/minute"
    PASSWORD_RESET_RATE_LIMIT: str = "5/minute"
    RATE_LIMIT_ENABLED: bool = True

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @model_validator(mode="after")
    def _prod_guards(self):
        if self.ENVIRONMENT.lower() == "production":
            if self.ENABLE_API_DOCS:
                raise ValueError("ENABLE_API_DOCS must be false in production")
            if not self.SECRET_KEY or len(self.SECRET_KEY) < 32:
                raise ValueError("SECRET_KEY must be 32+ chars in production")
            if any(h == "*" for h in self.ALLOWED_HOSTS):
                raise ValueError('ALLOWED_HOSTS must not contain "*" in production')
            self.LOG_JSON = True
        elif not self.ALLOWED_HOSTS:
            self.ALLOWED_HOSTS = ["*"]
        if self.STORE_BACKEND not in ("sql", "memory"):
            raise ValueError('STORE_BACKEND must be "sql" or "memory"')
        if self.NOTIFIER_BACKEND not in ("smtp", "celery", "log"):
            raise ValueError('NOTIFIER_BACKEND must be "smtp", "celery" or "log"')
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
