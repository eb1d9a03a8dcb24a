# agenciaos/modules/finance/repository.py
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from loguru import logger

from agenciaos.core.database import get_database
from agenciaos.core.repository import TenantRepository
from .models import ExpenseInDB, RevenueInDB

class FinanceEntryRepository(TenantRepository):
    """Operações comuns a receitas e despesas (somas e agrupamento por categoria)."""

    async def create_indexes(self):
        try:
            await self.collection.create_index([("agency_id", ASCENDING), ("date", DESCENDING)])
            await self.collection.create_index([("agency_id", ASCENDING), ("category", ASCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def _aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        try:
            return await self.collection.aggregate(pipeline).to_list(length=None)
        except Exception as e:
            self._handle_db_exception(e, "aggregate", query={"pipeline": pipeline})

    async def sum_amount(self, agency_id: ObjectId, query: Optional[Dict[str, Any]] = None) -> float:
        rows = await self._aggregate([
            {"$match": self._scoped(agency_id, query)},
            {"$group": {"_id": None, "total": {"$sum": "$amount"}}},
        ])
        return float(rows[0]["total"]) if rows else 0.0

    async def top_categories(self, agency_id: ObjectId, limit: int = 5) -> List[Dict[str, Any]]:
        rows = await self._aggregate([
            {"$match": self._scoped(agency_id)},
            {"$group": {"_id": "$category", "amount": {"$sum": "$amount"}, "count": {"$sum": 1}}},
            {"$sort": {"amount": -1}},
            {"$limit": limit},
        ])
        return [{"category": r["_id"], "amount": float(r["amount"]), "count": r["count"]} for r in rows]

class RevenueRepository(FinanceEntryRepository):
    model = RevenueInDB
    collection_name = "revenues"

class ExpenseRepository(FinanceEntryRepository):
    model = ExpenseInDB
    collection_name = "expenses"

# Factories
async def get_revenue_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> RevenueRepository:
    return RevenueRepository(db)

async def get_expense_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ExpenseRepository:
    return ExpenseRepository(db)
