# agenciaos/modules/ebooks/routers.py

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from loguru import logger

from agenciaos.core.rate_limit import AgencyRateLimiter, consume_rate_limit, get_rate_limiter
from agenciaos.core.tenant import CurrentTenant
from agenciaos.models.api_common import AcceptedResponse, PaginatedResponse, StatusResponse
from .models import (
    EbookAPI, EbookCreateAPI, EbookUpdateAPI, JobStatusResponse,
    QueueContentAPI, QueueDescriptionAPI, QueuePdfAPI,
)
from .queue import EbookJobQueue, get_ebook_job_queue
from .repository import EbookJobRepository, EbookRepository, get_ebook_job_repository, get_ebook_repository
from .services import EbookService, get_ebook_service

ebook_router = APIRouter()

# --- Estágios (fila) ---

@ebook_router.post(
    "/queue/description",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Enqueue the outline generation stage",
    tags=["Ebooks"]
)
async def queue_description(
    data: QueueDescriptionAPI,
    response: Response,
    tenant: CurrentTenant,
    ebook_service: EbookService = Depends(get_ebook_service),
    ebook_repo: EbookRepository = Depends(get_ebook_repository),
    job_queue: EbookJobQueue = Depends(get_ebook_job_queue),
    rate_limiter: AgencyRateLimiter = Depends(get_rate_limiter),
):
    log = logger.bind(ebook_id=data.ebook_id, agency_id=str(tenant.agency_id))
    # 1 unidade "ai" só depois que o ebook foi encontrado na agência
    charge = lambda: consume_rate_limit(rate_limiter, tenant, "ai", response)
    try:
        return await ebook_service.enqueue_description(tenant, data, ebook_repo, job_queue, charge=charge)
    except HTTPException:
        raise
    except Exception as e:
        log.exception(f"Unexpected error enqueuing description stage: {e}")
        await ebook_repo.mark_error(data.ebook_id, agency_id=tenant.agency_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error enqueuing job.")

@ebook_router.post(
    "/queue/content",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Store the approved outline and enqueue the content stage",
    tags=["Ebooks"]
)
async def queue_content(
    data: QueueContentAPI,
    response: Response,
    tenant: CurrentTenant,
    ebook_service: EbookService = Depends(get_ebook_service),
    ebook_repo: EbookRepository = Depends(get_ebook_repository),
    job_queue: EbookJobQueue = Depends(get_ebook_job_queue),
    rate_limiter: AgencyRateLimiter = Depends(get_rate_limiter),
):
    log = logger.bind(ebook_id=data.ebook_id, agency_id=str(tenant.agency_id))
    charge = lambda: consume_rate_limit(rate_limiter, tenant, "ai", response)
    try:
        return await ebook_service.enqueue_content(tenant, data, ebook_repo, job_queue, charge=charge)
    except HTTPException:
        raise
    except Exception as e:
        log.exception(f"Unexpected error enqueuing content stage: {e}")
        await ebook_repo.mark_error(data.ebook_id, agency_id=tenant.agency_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error enqueuing job.")

@ebook_router.post(
    "/queue/pdf",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Enqueue the PDF rendering stage",
    tags=["Ebooks"]
)
async def queue_pdf(
    data: QueuePdfAPI,
    response: Response,
    tenant: CurrentTenant,
    ebook_service: EbookService = Depends(get_ebook_service),
    ebook_repo: EbookRepository = Depends(get_ebook_repository),
    job_queue: EbookJobQueue = Depends(get_ebook_job_queue),
    rate_limiter: AgencyRateLimiter = Depends(get_rate_limiter),
):
    log = logger.bind(ebook_id=data.ebook_id, agency_id=str(tenant.agency_id))
    charge = lambda: consume_rate_limit(rate_limiter, tenant, "ai", response)
    try:
        return await ebook_service.enqueue_pdf(tenant, data, ebook_repo, job_queue, charge=charge)
    except HTTPException:
        raise
    except Exception as e:
        log.exception(f"Unexpected error enqueuing pdf stage: {e}")
        await ebook_repo.mark_error(data.ebook_id, agency_id=tenant.agency_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error enqueuing job.")

@ebook_router.get(
    "/queue/status/{job_id}",
    response_model=JobStatusResponse,
    summary="Status of an ebook stage job",
    tags=["Ebooks"]
)
async def queue_status(
    tenant: CurrentTenant,
    job_id: str = Path(..., description="ID do job retornado pelo enqueue"),
    ebook_service: EbookService = Depends(get_ebook_service),
    job_repo: EbookJobRepository = Depends(get_ebook_job_repository),
):
    return await ebook_service.get_job_status(tenant, job_id, job_repo)

# --- CRUD ---

@ebook_router.get("", response_model=PaginatedResponse[EbookAPI], summary="List ebooks of the agency", tags=["Ebooks"])
async def list_ebooks(
    tenant: CurrentTenant,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: str | None = Query(None, alias="status"),
    ebook_service: EbookService = Depends(get_ebook_service),
    ebook_repo: EbookRepository = Depends(get_ebook_repository),
):
    return await ebook_service.list_ebooks(tenant, ebook_repo, page=page, limit=limit, status_filter=status_filter)

@ebook_router.post(
    "",
    response_model=EbookAPI,
    status_code=status.HTTP_201_CREATED,
    summary="Create a DRAFT ebook",
    tags=["Ebooks"]
)
async def create_ebook(
    data: EbookCreateAPI,
    tenant: CurrentTenant,
    ebook_service: EbookService = Depends(get_ebook_service),
    ebook_repo: EbookRepository = Depends(get_ebook_repository),
):
    try:
        ebook = await ebook_service.create_ebook(tenant, data, ebook_repo)
        return EbookAPI.from_db(ebook)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error creating ebook: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error creating ebook.")

@ebook_router.get("/{ebook_id}", response_model=EbookAPI, summary="Get an ebook", tags=["Ebooks"])
async def get_ebook(
    tenant: CurrentTenant,
    ebook_id: str = Path(..., description="ID do ebook (ObjectId)"),
    ebook_service: EbookService = Depends(get_ebook_service),
    ebook_repo: EbookRepository = Depends(get_ebook_repository),
):
    return EbookAPI.from_db(await ebook_service.get_ebook(tenant, ebook_id, ebook_repo))

@ebook_router.put("/{ebook_id}", response_model=EbookAPI, summary="Update an ebook", tags=["Ebooks"])
async def update_ebook(
    data: EbookUpdateAPI,
    tenant: CurrentTenant,
    ebook_id: str = Path(..., description="ID do ebook (ObjectId)"),
    ebook_service: EbookService = Depends(get_ebook_service),
    ebook_repo: EbookRepository = Depends(get_ebook_repository),
):
    try:
        return EbookAPI.from_db(await ebook_service.update_ebook(tenant, ebook_id, data, ebook_repo))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating ebook {ebook_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error updating ebook.")

@ebook_router.delete("/{ebook_id}", response_model=StatusResponse, summary="Delete an ebook", tags=["Ebooks"])
async def delete_ebook(
    tenant: CurrentTenant,
    ebook_id: str = Path(..., description="ID do ebook (ObjectId)"),
    ebook_service: EbookService = Depends(get_ebook_service),
    ebook_repo: EbookRepository = Depends(get_ebook_repository),
):
    await ebook_service.delete_ebook(tenant, ebook_id, ebook_repo)
    return StatusResponse(status="success", message="Ebook deleted")
