# agenciaos/modules/clients/repository.py
import re
from typing import Any, Dict, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from loguru import logger

from agenciaos.core.database import get_database
from agenciaos.core.repository import TenantRepository
from .models import ClientInDB

SEARCH_FIELDS = ("name", "email", "company")

class ClientRepository(TenantRepository[ClientInDB]):
    model = ClientInDB
    collection_name = "clients"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("agency_id", ASCENDING), ("name", ASCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    @staticmethod
    def search_query(search: Optional[str]) -> Dict[str, Any]:
        """Busca parcial, case-insensitive, em nome/email/empresa."""
        if not search or not search.strip():
            return {}
        pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
        return {"$or": [{field: pattern} for field in SEARCH_FIELDS]}

async def get_client_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ClientRepository:
    return ClientRepository(db)
