# agenciaos/modules/clients/routers.py
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from typing import Optional
from loguru import logger

from agenciaos.core.tenant import CurrentTenant
from agenciaos.models.api_common import PaginatedResponse, StatusResponse
from .models import ClientAPI, ClientCreateAPI, ClientUpdateAPI
from .repository import ClientRepository, get_client_repository
from .services import ClientService, get_client_service, to_api

clients_router = APIRouter()

@clients_router.get("", response_model=PaginatedResponse[ClientAPI], summary="List / search clients", tags=["Clients"])
async def list_clients(
    tenant: CurrentTenant,
    search: Optional[str] = Query(None, description="Busca em nome, email e empresa"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=1000),
    client_service: ClientService = Depends(get_client_service),
    client_repo: ClientRepository = Depends(get_client_repository),
):
    return await client_service.list_clients(tenant, client_repo, search=search, page=page, limit=limit)

@clients_router.post("", response_model=ClientAPI, status_code=status.HTTP_201_CREATED, summary="Create a client", tags=["Clients"])
async def create_client(
    data: ClientCreateAPI,
    tenant: CurrentTenant,
    client_service: ClientService = Depends(get_client_service),
    client_repo: ClientRepository = Depends(get_client_repository),
):
    try:
        return to_api(await client_service.create_client(tenant, data, client_repo))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error creating client: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error creating client.")

@clients_router.get("/{client_id}", response_model=ClientAPI, summary="Get a client", tags=["Clients"])
async def get_client(
    tenant: CurrentTenant,
    client_id: str = Path(..., description="ID do cliente (ObjectId)"),
    client_service: ClientService = Depends(get_client_service),
    client_repo: ClientRepository = Depends(get_client_repository),
):
    return to_api(await client_service.get_client(tenant, client_id, client_repo))

@clients_router.put("/{client_id}", response_model=ClientAPI, summary="Update a client", tags=["Clients"])
async def update_client(
    data: ClientUpdateAPI,
    tenant: CurrentTenant,
    client_id: str = Path(..., description="ID do cliente (ObjectId)"),
    client_service: ClientService = Depends(get_client_service),
    client_repo: ClientRepository = Depends(get_client_repository),
):
    try:
        return to_api(await client_service.update_client(tenant, client_id, data, client_repo))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating client {client_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error updating client.")

@clients_router.delete("/{client_id}", response_model=StatusResponse, summary="Delete a client", tags=["Clients"])
async def delete_client(
    tenant: CurrentTenant,
    client_id: str = Path(..., description="ID do cliente (ObjectId)"),
    client_service: ClientService = Depends(get_client_service),
    client_repo: ClientRepository = Depends(get_client_repository),
):
    await client_service.delete_client(tenant, client_id, client_repo)
    return StatusResponse(status="success", message="Client deleted")
