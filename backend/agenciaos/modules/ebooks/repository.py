# agenciaos/modules/ebooks/repository.py

from typing import Optional, Dict, Any

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from bson import ObjectId
from loguru import logger

from agenciaos.core.database import get_database
from agenciaos.core.repository import BaseRepository, TenantRepository, utcnow
from .models import EbookInDB, EbookJobInDB, allowed_predecessors

class EbookRepository(TenantRepository[EbookInDB]):
    model = EbookInDB
    collection_name = "ebooks"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("agency_id", ASCENDING), ("created_at", DESCENDING)])
            await self.collection.create_index([("agency_id", ASCENDING), ("status", ASCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def transition_status(
        self,
        ebook_id: str | ObjectId,
        new_status: Optional[str],
        fields: Optional[Dict[str, Any]] = None,
        agency_id: Optional[str | ObjectId] = None,
        guard_status: Optional[str] = None,
    ) -> Optional[EbookInDB]:
        """
        Compare-and-set do status: só grava se o status atual permite ir para
        `new_status` (ou `guard_status`, quando só os campos mudam).
        Retorna None se o documento não existe ou o status não permite.
        """
        obj_id = self._to_objectid(ebook_id)
        if obj_id is None:
            return None
        target = new_status or guard_status
        query: Dict[str, Any] = {"_id": obj_id}
        if agency_id is not None:
            query["agency_id"] = self._to_objectid(agency_id)
        if target is not None:
            query["status"] = {"$in": allowed_predecessors(target)}

        update = dict(fields or {})
        if new_status is not None:
            update["status"] = new_status
        updated = await self.update_where(query, update)
        if updated is None:
            logger.bind(ebook_id=str(obj_id)).warning(f"Status compare-and-set refused (target={target}).")
        return updated

    async def mark_error(self, ebook_id: str | ObjectId, agency_id: Optional[str | ObjectId] = None) -> Optional[EbookInDB]:
        """ERROR é alcançável de qualquer status; os demais campos ficam intactos."""
        return await self.transition_status(ebook_id, "ERROR", agency_id=agency_id)

class EbookJobRepository(BaseRepository[EbookJobInDB]):
    model = EbookJobInDB
    collection_name = "ebook_jobs"

    async def get_by_id(self, id: str) -> Optional[EbookJobInDB]:
        # _id é o id (string) da task Celery, não um ObjectId
        if not id:
            return None
        return await self.get_by({"_id": str(id)})

    async def create_job(self, job_id: str, ebook_id: ObjectId, agency_id: ObjectId, step: str) -> EbookJobInDB:
        return await self.create({
            "_id": job_id,
            "ebook_id": ebook_id,
            "agency_id": agency_id,
            "step": step,
            "progress": 0,
        })

    async def mark_active(self, job_id: str) -> Optional[EbookJobInDB]:
        return await self.update_where({"_id": job_id}, {"processed_on": utcnow(), "progress": 5})

    async def set_progress(self, job_id: str, progress: int) -> Optional[EbookJobInDB]:
        return await self.update_where({"_id": job_id}, {"progress": max(0, min(100, progress))})

    async def mark_completed(self, job_id: str, result: Optional[Dict[str, Any]] = None) -> Optional[EbookJobInDB]:
        return await self.update_where(
            {"_id": job_id},
            {"progress": 100, "finished_on": utcnow(), "failed_reason": None, "result": result or {}}
        )

    async def mark_failed(self, job_id: str, reason: str) -> Optional[EbookJobInDB]:
        return await self.update_where(
            {"_id": job_id},
            {"finished_on": utcnow(), "failed_reason": reason or "Unknown error"}
        )

async def get_ebook_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> EbookRepository:
    return EbookRepository(db)

async def get_ebook_job_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> EbookJobRepository:
    return EbookJobRepository(db)
