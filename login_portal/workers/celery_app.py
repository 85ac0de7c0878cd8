from celery import Celery

from login_portal.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "login_portal",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["login_portal.workers.tasks"],
)

celery_app.conf.beat_schedule = {
    "purge-expired-tokens": {
        "task": "login_portal.workers.tasks.purge_expired_tokens",
        "schedule": 3600.0,
    },
}
