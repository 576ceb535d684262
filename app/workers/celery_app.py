from celery import Celery
from app.core.config import settings

celery_app = Celery(
    settings.APP_NAME,
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["app.workers.tasks.notifications"],
)

celery_app.conf.task_always_eager = bool(settings.CELERY_TASK_ALWAYS_EAGER)
celery_app.conf.task_acks_late = False
celery_app.conf.task_ignore_result = True
celery_app.conf.timezone = "UTC"
