# agenciaos/core/counters.py

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ReturnDocument
from loguru import logger

from agenciaos.core.database import get_database

COUNTERS_COLLECTION = "counters"

class CounterService:
    """Sequências atômicas nomeadas (ex: posição do próximo board de um projeto)."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection: AsyncIOMotorCollection = db[COUNTERS_COLLECTION]

    async def _get_next_sequence(self, name: str) -> int:
        """Obtém o próximo valor da sequência de forma atômica."""
        log = logger.bind(counter_name=name)
        try:
            # find_one_and_update com upsert=True é atômico
            counter = await self.collection.find_one_and_update(
                {"_id": name},
                {"$inc": {"sequence_value": 1}},
                upsert=True, # começa em 1 após o primeiro $inc
                return_document=ReturnDocument.AFTER
            )
        except Exception as e:
            log.exception(f"Database error while getting next sequence for counter '{name}': {e}")
            raise RuntimeError(f"Database error accessing counter '{name}'") from e

        if counter is None or "sequence_value" not in counter:
            log.critical(f"CRITICAL: find_one_and_update returned unexpected value: {counter}")
            raise RuntimeError(f"Failed to reliably get or create counter '{name}'")
        log.debug(f"Next sequence value obtained: {counter['sequence_value']}")
        return counter["sequence_value"]

    async def next_board_position(self, project_id: str) -> int:
        """Posição (0-based) do próximo board do projeto."""
        return await self._get_next_sequence(f"board_position_{project_id}") - 1

async def get_counter_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> CounterService:
    return CounterService(db)
