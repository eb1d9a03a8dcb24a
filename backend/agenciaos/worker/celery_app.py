# agenciaos/worker/celery_app.py
from celery import Celery
from kombu import Queue

from agenciaos.core.config import settings

celery_app = Celery(
    "agenciaos_tasks",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "agenciaos.worker.tasks_ebook",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_queue=settings.CELERY_EBOOK_QUEUE,
    task_queues=(Queue(settings.CELERY_EBOOK_QUEUE),),
    task_routes={"ebook.*": {"queue": settings.CELERY_EBOOK_QUEUE}},
    # Estágios longos (10+ chamadas ao LLM); sem retry automático
    task_time_limit=60 * 30,
    worker_hijack_root_logger=False,
)
