# agenciaos/modules/clients/services.py
from typing import Optional

from fastapi import HTTPException, status
from loguru import logger

from agenciaos.core.tenant import TenantContext
from agenciaos.models.api_common import PaginatedResponse, Pagination
from .models import ClientAPI, ClientCreateAPI, ClientInDB, ClientUpdateAPI
from .repository import ClientRepository

ClientNotFound = HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

def to_api(client: ClientInDB) -> ClientAPI:
    return ClientAPI.model_validate(client.model_dump())

class ClientService:

    async def get_client(self, tenant: TenantContext, client_id: str, client_repo: ClientRepository) -> ClientInDB:
        client = await client_repo.get_for_agency(client_id, tenant.agency_id)
        if client is None:
            raise ClientNotFound
        return client

    async def list_clients(
        self,
        tenant: TenantContext,
        client_repo: ClientRepository,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedResponse[ClientAPI]:
        query = client_repo.search_query(search)
        total = await client_repo.count_for_agency(tenant.agency_id, query)
        clients = await client_repo.list_for_agency(
            tenant.agency_id, query, skip=(page - 1) * limit, limit=limit, sort=[("created_at", -1)]
        )
        return PaginatedResponse[ClientAPI](
            items=[to_api(c) for c in clients],
            pagination=Pagination.build(page, limit, total),
        )

    async def create_client(self, tenant: TenantContext, data: ClientCreateAPI, client_repo: ClientRepository) -> ClientInDB:
        client = await client_repo.create({**data.model_dump(), "agency_id": tenant.agency_id})
        logger.bind(service="ClientService", client_id=str(client.id)).info("Client created.")
        return client

    async def update_client(
        self, tenant: TenantContext, client_id: str, data: ClientUpdateAPI, client_repo: ClientRepository
    ) -> ClientInDB:
        fields = data.model_dump(exclude_unset=True)
        if fields.get("name") is None:
            fields.pop("name", None)
        updated = await client_repo.update_for_agency(client_id, tenant.agency_id, fields)
        if updated is None:
            raise ClientNotFound
        return updated

    async def delete_client(self, tenant: TenantContext, client_id: str, client_repo: ClientRepository):
        if not await client_repo.delete_for_agency(client_id, tenant.agency_id):
            raise ClientNotFound

async def get_client_service() -> ClientService:
    return ClientService()
