# agenciaos/modules/copywriter/repository.py
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from loguru import logger

from agenciaos.core.database import get_database
from agenciaos.core.repository import TenantRepository
from .models import AIUsageInDB

class AIUsageRepository(TenantRepository[AIUsageInDB]):
    model = AIUsageInDB
    collection_name = "ai_usage"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("agency_id", ASCENDING), ("created_at", DESCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

async def get_ai_usage_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AIUsageRepository:
    return AIUsageRepository(db)
