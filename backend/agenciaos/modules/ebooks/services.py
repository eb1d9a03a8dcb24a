# agenciaos/modules/ebooks/services.py

from typing import Any, Callable, Dict, Optional, get_args

from fastapi import HTTPException, status
from loguru import logger

from agenciaos.core.tenant import TenantContext
from agenciaos.models.api_common import AcceptedResponse, PaginatedResponse, Pagination
from .models import (
    EBOOK_STATUSES, EbookAPI, EbookCreateAPI, EbookInDB, EbookUpdateAPI, JobAPI, JobStatusResponse,
    QueueContentAPI, QueueDescriptionAPI, QueuePdfAPI, can_transition,
)
from .queue import EbookJobQueue
from .repository import EbookJobRepository, EbookRepository

EbookNotFound = HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ebook not found")

class EbookService:

    async def get_ebook(self, tenant: TenantContext, ebook_id: str, ebook_repo: EbookRepository) -> EbookInDB:
        """Busca escopada na agência; id de outra agência = 404."""
        ebook = await ebook_repo.get_for_agency(ebook_id, tenant.agency_id)
        if ebook is None:
            raise EbookNotFound
        return ebook

    async def list_ebooks(
        self,
        tenant: TenantContext,
        ebook_repo: EbookRepository,
        page: int = 1,
        limit: int = 10,
        status_filter: Optional[str] = None,
    ) -> PaginatedResponse[EbookAPI]:
        query: Dict[str, Any] = {}
        if status_filter:
            normalized = status_filter.strip().upper()
            if normalized not in get_args(EBOOK_STATUSES):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid status: {status_filter}")
            query["status"] = normalized

        total = await ebook_repo.count_for_agency(tenant.agency_id, query)
        ebooks = await ebook_repo.list_for_agency(
            tenant.agency_id, query, skip=(page - 1) * limit, limit=limit, sort=[("created_at", -1)]
        )
        return PaginatedResponse[EbookAPI](
            items=[EbookAPI.from_db(e) for e in ebooks],
            pagination=Pagination.build(page, limit, total),
        )

    async def create_ebook(self, tenant: TenantContext, data: EbookCreateAPI, ebook_repo: EbookRepository) -> EbookInDB:
        ebook = await ebook_repo.create({
            "title": data.title,
            "status": "DRAFT",
            "description": None,
            "content": None,
            "pdf_url": None,
            "agency_id": tenant.agency_id,
            "metadata": {
                "target_audience": data.target_audience,
                "industry": data.industry,
                "created_by": str(tenant.user_id),
                "job_id": None,
                "last_job_step": None,
            },
        })
        logger.bind(service="EbookService", ebook_id=str(ebook.id)).info(f"Ebook created by {tenant.user_id}.")
        return ebook

    async def update_ebook(
        self,
        tenant: TenantContext,
        ebook_id: str,
        data: EbookUpdateAPI,
        ebook_repo: EbookRepository,
    ) -> EbookInDB:
        ebook = await self.get_ebook(tenant, ebook_id, ebook_repo)
        fields = data.model_dump(exclude_unset=True)
        # null em title/description/content = campo não enviado
        for name in ("title", "description", "content"):
            if fields.get(name) is None:
                fields.pop(name, None)
        new_status = fields.pop("status", None)
        if new_status is not None and new_status != ebook.status and not can_transition(ebook.status, new_status):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition: {ebook.status} -> {new_status}",
            )

        if new_status is None:
            updated = await ebook_repo.update_for_agency(ebook.id, tenant.agency_id, fields)
        else:
            updated = await ebook_repo.transition_status(ebook.id, new_status, fields, agency_id=tenant.agency_id)
            if updated is None:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Ebook status changed concurrently")
        if updated is None:
            raise EbookNotFound
        return updated

    async def delete_ebook(self, tenant: TenantContext, ebook_id: str, ebook_repo: EbookRepository):
        # PDF em disco fica órfão
        if not await ebook_repo.delete_for_agency(ebook_id, tenant.agency_id):
            raise EbookNotFound

    # --- Estágios ---

    async def _enqueue_stage(
        self,
        tenant: TenantContext,
        ebook: EbookInDB,
        step: str,
        ebook_repo: EbookRepository,
        job_queue: EbookJobQueue,
        new_status: Optional[str] = None,
        guard_status: Optional[str] = None,
        fields: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> AcceptedResponse:
        """
        Grava jobId/lastJobStep (e o status, se houver) por compare-and-set e só
        então cria o job. Erro inesperado marca o ebook como ERROR.
        """
        log = logger.bind(service="EbookService", ebook_id=str(ebook.id), step=step)
        job_id = job_queue.new_job_id()
        update = {**(fields or {}), "metadata.job_id": job_id, "metadata.last_job_step": step}

        updated = await ebook_repo.transition_status(
            ebook.id, new_status, update, agency_id=tenant.agency_id, guard_status=guard_status
        )
        if updated is None:
            log.warning(f"Stage refused for status {ebook.status}.")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ebook status {ebook.status} does not allow the {step} stage",
            )
        try:
            await job_queue.enqueue(job_id, step, ebook.id, tenant.agency_id, options)
        except Exception as e:
            log.exception(f"Failed to enqueue {step} job: {e}")
            await ebook_repo.mark_error(ebook.id, agency_id=tenant.agency_id)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to enqueue {step} job")
        return AcceptedResponse(message=f"Ebook {step} job added to the queue", job_id=job_id)

    async def enqueue_description(
        self,
        tenant: TenantContext,
        data: QueueDescriptionAPI,
        ebook_repo: EbookRepository,
        job_queue: EbookJobQueue,
        charge: Optional[Callable[[], Any]] = None,
    ) -> AcceptedResponse:
        ebook = await self.get_ebook(tenant, data.ebook_id, ebook_repo)
        if charge:
            charge()
        title = (data.title or "").strip() or ebook.title
        return await self._enqueue_stage(
            tenant, ebook, "description", ebook_repo, job_queue,
            guard_status="DESCRIPTION_GENERATED",
            options={"title": title},
        )

    async def enqueue_content(
        self,
        tenant: TenantContext,
        data: QueueContentAPI,
        ebook_repo: EbookRepository,
        job_queue: EbookJobQueue,
        charge: Optional[Callable[[], Any]] = None,
    ) -> AcceptedResponse:
        ebook = await self.get_ebook(tenant, data.ebook_id, ebook_repo)
        if charge:
            charge()
        return await self._enqueue_stage(
            tenant, ebook, "content", ebook_repo, job_queue,
            new_status="DESCRIPTION_APPROVED",
            fields={"description": data.approved_description.model_dump()},
        )

    async def enqueue_pdf(
        self,
        tenant: TenantContext,
        data: QueuePdfAPI,
        ebook_repo: EbookRepository,
        job_queue: EbookJobQueue,
        charge: Optional[Callable[[], Any]] = None,
    ) -> AcceptedResponse:
        ebook = await self.get_ebook(tenant, data.ebook_id, ebook_repo)
        if ebook.content is None or ebook.description is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ebook needs description and content before generating the PDF",
            )
        if charge:
            charge()
        return await self._enqueue_stage(
            tenant, ebook, "pdf", ebook_repo, job_queue,
            guard_status="GENERATING_PDF",
            options={"template": data.template},
        )

    async def get_job_status(self, tenant: TenantContext, job_id: str, job_repo: EbookJobRepository) -> JobStatusResponse:
        job = await job_repo.get_by_id(job_id)
        if job is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
        if job.agency_id != tenant.agency_id:
            logger.warning(f"Agency {tenant.agency_id} tried to read job {job_id} of agency {job.agency_id}.")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return JobStatusResponse(job=JobAPI.from_db(job))

async def get_ebook_service() -> EbookService:
    return EbookService()
