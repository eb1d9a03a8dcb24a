# agenciaos/modules/agencies/repository.py
from typing import Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from agenciaos.core.database import get_database
from agenciaos.core.repository import BaseRepository, TenantRepository
from .models import AgencyInDB, UserInDB

class AgencyRepository(BaseRepository[AgencyInDB]):
    model = AgencyInDB
    collection_name = "agencies"

    async def create_indexes(self):
        try:
            await self.collection.create_index("slug", unique=True)
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def get_by_slug(self, slug: str) -> Optional[AgencyInDB]:
        return await self.get_by({"slug": slug})

class UserRepository(TenantRepository[UserInDB]):
    model = UserInDB
    collection_name = "users"

    async def create_indexes(self):
        try:
            await self.collection.create_index("email", unique=True)
            await self.collection.create_index("agency_id")
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def get_by_email(self, email: str) -> Optional[UserInDB]:
        return await self.get_by({"email": email.strip().lower()})

# Factories
async def get_agency_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AgencyRepository:
    return AgencyRepository(db)

async def get_user_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> UserRepository:
    return UserRepository(db)
