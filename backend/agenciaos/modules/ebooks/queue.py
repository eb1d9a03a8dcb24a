# agenciaos/modules/ebooks/queue.py

import uuid
from typing import Any, Dict, Optional, Protocol

from bson import ObjectId
from fastapi import Depends
from loguru import logger

from agenciaos.core.config import settings
from agenciaos.core.logging_config import trace_id_var
from .models import EbookJobInDB
from .repository import EbookJobRepository, get_ebook_job_repository

# Nome registrado de cada task Celery, por estágio
STAGE_TASKS: Dict[str, str] = {
    "description": "ebook.generate_description",
    "content": "ebook.generate_content",
    "pdf": "ebook.generate_pdf",
}

class TaskDispatcher(Protocol):
    def dispatch(self, task_name: str, job_id: str, kwargs: Dict[str, Any]) -> None: ...

class CeleryTaskDispatcher:
    """Envia a task por nome; a API não importa o código do worker."""

    def __init__(self, app=None):
        if app is None:
            from agenciaos.worker.celery_app import celery_app
            app = celery_app
        self.app = app

    def dispatch(self, task_name: str, job_id: str, kwargs: Dict[str, Any]) -> None:
        self.app.send_task(
            task_name,
            kwargs=kwargs,
            task_id=job_id,
            queue=settings.CELERY_EBOOK_QUEUE,
        )

class EbookJobQueue:
    """Grava o registro do job e despacha a task do estágio."""

    def __init__(self, job_repo: EbookJobRepository, dispatcher: TaskDispatcher):
        self.job_repo = job_repo
        self.dispatcher = dispatcher

    @staticmethod
    def new_job_id() -> str:
        return str(uuid.uuid4())

    async def enqueue(
        self,
        job_id: str,
        step: str,
        ebook_id: ObjectId,
        agency_id: ObjectId,
        options: Optional[Dict[str, Any]] = None,
    ) -> EbookJobInDB:
        log = logger.bind(service="EbookJobQueue", job_id=job_id, ebook_id=str(ebook_id), step=step)
        job = await self.job_repo.create_job(job_id, ebook_id, agency_id, step)
        try:
            self.dispatcher.dispatch(STAGE_TASKS[step], job_id, {
                "job_id": job_id,
                "ebook_id": str(ebook_id),
                "agency_id": str(agency_id),
                "step": step,
                "options": options or {},
                "trace_id": trace_id_var.get(),
            })
        except Exception as e:
            # Sem isso o job ficaria "waiting" para sempre
            log.error(f"Dispatch failed: {e}")
            await self.job_repo.mark_failed(job_id, f"Failed to dispatch job: {e}")
            raise
        log.info("Ebook job enqueued.")
        return job

async def get_task_dispatcher() -> TaskDispatcher:
    return CeleryTaskDispatcher()

async def get_ebook_job_queue(
    job_repo: EbookJobRepository = Depends(get_ebook_job_repository),
    dispatcher: TaskDispatcher = Depends(get_task_dispatcher),
) -> EbookJobQueue:
    return EbookJobQueue(job_repo, dispatcher)
