# agenciaos/modules/projects/repository.py
from typing import List

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from loguru import logger

from agenciaos.core.database import get_database
from agenciaos.core.repository import TenantRepository
from .models import ProjectInDB, BoardInDB, TaskInDB

class ProjectRepository(TenantRepository[ProjectInDB]):
    model = ProjectInDB
    collection_name = "projects"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("agency_id", ASCENDING), ("created_at", DESCENDING)])
            await self.collection.create_index([("agency_id", ASCENDING), ("client_id", ASCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

class BoardRepository(TenantRepository[BoardInDB]):
    model = BoardInDB
    collection_name = "boards"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("project_id", ASCENDING), ("position", ASCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def list_for_project(self, agency_id: ObjectId, project_id: ObjectId) -> List[BoardInDB]:
        return await self.list_for_agency(
            agency_id, {"project_id": project_id}, limit=0, sort=[("position", ASCENDING)]
        )

class TaskRepository(TenantRepository[TaskInDB]):
    model = TaskInDB
    collection_name = "tasks"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("board_id", ASCENDING), ("position", ASCENDING)])
            await self.collection.create_index([("agency_id", ASCENDING), ("project_id", ASCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

# Factories
async def get_project_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ProjectRepository:
    return ProjectRepository(db)

async def get_board_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> BoardRepository:
    return BoardRepository(db)

async def get_task_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> TaskRepository:
    return TaskRepository(db)
