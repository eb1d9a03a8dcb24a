# agenciaos/worker/tasks_ebook.py

import asyncio
from typing import Any, Dict, Optional

from celery import signals
from loguru import logger

from agenciaos.core.config import settings
from agenciaos.core.database import create_mongo_client, resolve_db_name
from agenciaos.core.logging_config import new_trace_id, setup_logging, trace_id_var
from agenciaos.modules.ebooks.generator import EbookGenerator
from agenciaos.modules.ebooks.pipeline import EbookPipeline
from agenciaos.modules.ebooks.repository import EbookJobRepository, EbookRepository
from agenciaos.services.llm_client import OpenAIClient
from agenciaos.services.pdf_renderer import MarkupGoPdfRenderer
from agenciaos.services.storage import LocalFileStorage
from agenciaos.worker.celery_app import celery_app

@signals.setup_logging.connect
def configure_worker_logging(**kwargs):
    # Impede o Celery de configurar o logging raiz; Loguru assume
    setup_logging()

async def _run_stage(step: str, job_id: str, ebook_id: str, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Cada task roda no seu próprio event loop (asyncio.run), então o client Motor
    é criado e fechado aqui, nunca compartilhado entre tasks.
    """
    client = create_mongo_client()
    try:
        db = client[resolve_db_name(settings.MONGODB_URI, settings.MONGODB_DB_NAME)]
        pipeline = EbookPipeline(
            EbookRepository(db),
            EbookJobRepository(db),
            EbookGenerator(OpenAIClient()),
            MarkupGoPdfRenderer(),
            LocalFileStorage(),
        )
        return await pipeline.run(step, job_id, ebook_id, options)
    finally:
        client.close()

def _execute(task, step: str, job_id: str, ebook_id: str, agency_id: str,
             options: Optional[Dict[str, Any]], trace_id: Optional[str]) -> Dict[str, Any]:
    current_trace_id = trace_id or new_trace_id("task")
    token = trace_id_var.set(current_trace_id)
    log = logger.bind(
        trace_id=current_trace_id, task_name=task.name, job_id=task.request.id or job_id,
        ebook_id=ebook_id, agency_id=agency_id,
    )
    log.info(f"Received ebook {step} task.")
    try:
        result = asyncio.run(_run_stage(step, job_id, ebook_id, options))
        log.success(f"Ebook {step} task finished.")
        return result
    except Exception as e:
        # Pipeline já marcou job (e ebook, se for o caso); sem retry automático
        log.error(f"Ebook {step} task failed: {e}")
        raise
    finally:
        trace_id_var.reset(token)

@celery_app.task(bind=True, name="ebook.generate_description", max_retries=0, acks_late=True)
def generate_description_task(self, job_id: str, ebook_id: str, agency_id: str, step: str = "description",
                              options: Optional[Dict[str, Any]] = None, trace_id: Optional[str] = None):
    """Gera a estrutura (descrição + 10 capítulos) do ebook."""
    return _execute(self, "description", job_id, ebook_id, agency_id, options, trace_id)

@celery_app.task(bind=True, name="ebook.generate_content", max_retries=0, acks_late=True)
def generate_content_task(self, job_id: str, ebook_id: str, agency_id: str, step: str = "content",
                          options: Optional[Dict[str, Any]] = None, trace_id: Optional[str] = None):
    """Gera introdução, capítulos e conclusão a partir da descrição aprovada."""
    return _execute(self, "content", job_id, ebook_id, agency_id, options, trace_id)

@celery_app.task(bind=True, name="ebook.generate_pdf", max_retries=0, acks_late=True)
def generate_pdf_task(self, job_id: str, ebook_id: str, agency_id: str, step: str = "pdf",
                      options: Optional[Dict[str, Any]] = None, trace_id: Optional[str] = None):
    return _execute(self, "pdf", job_id, ebook_id, agency_id, options, trace_id)
