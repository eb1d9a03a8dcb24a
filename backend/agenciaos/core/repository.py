# agenciaos/core/repository.py

from typing import TypeVar, Type, Optional, List, Any, Dict, Tuple, Generic
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.results import InsertOneResult, UpdateResult, DeleteResult
from pymongo.errors import DuplicateKeyError
from loguru import logger

ModelType = TypeVar("ModelType", bound=BaseModel) # Modelo Pydantic que representa o doc DB (ex: EbookInDB)

def utcnow() -> datetime:
    """UTC 'naive', o mesmo formato que o driver devolve do Mongo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

class BaseRepository(Generic[ModelType]):
    """Classe base para repositórios MongoDB com Motor e Pydantic."""

    model: Type[ModelType]
    collection_name: str

    def __init__(self, db: AsyncIOMotorDatabase):
        if not getattr(self, 'collection_name', None):
            raise AttributeError("Repository subclass must define a 'collection_name'")
        if not hasattr(self, 'model') or not issubclass(self.model, BaseModel):
            raise AttributeError("Repository subclass must define a Pydantic 'model'")

        self.db = db
        self.collection: AsyncIOMotorCollection = db[self.collection_name]

    @staticmethod
    def _to_objectid(id_str: Any) -> Optional[ObjectId]:
        """Converte input para ObjectId de forma segura, retornando None se inválido."""
        if isinstance(id_str, ObjectId):
            return id_str
        if isinstance(id_str, str) and ObjectId.is_valid(id_str):
            return ObjectId(id_str)
        return None

    def _handle_db_exception(self, e: Exception, operation: str, doc_id: Any = None, query: Optional[Dict] = None):
        """Loga e levanta exceções de banco de dados padronizadas."""
        context = f"op='{operation}' coll='{self.collection_name}'"
        if doc_id: context += f" id='{doc_id}'"
        if query: context += f" query='{str(query)[:100]}...'"

        log_msg = f"DB Error during {context}: {e}"

        if isinstance(e, DuplicateKeyError):
            dup_key_info = e.details.get('keyValue', {}) if e.details else {}
            logger.error(f"{log_msg} - Duplicate Key: {dup_key_info}")
            raise ValueError(f"Duplicate key error: Field(s) {list(dup_key_info.keys())} must be unique.") from e
        logger.exception(log_msg)
        raise RuntimeError(f"Database error during operation: {operation}") from e

    def _prepare_data_for_db(self, data: Dict) -> Dict:
        """Prepara dados para inserção/atualização. Subclasses podem sobrescrever."""
        prepared_data = {}
        for key, value in data.items():
            if isinstance(value, Decimal):
                prepared_data[key] = float(value)
            elif isinstance(value, datetime):
                prepared_data[key] = to_naive_utc(value)
            else:
                prepared_data[key] = value
        return prepared_data

    def _validate(self, document: Optional[Dict]) -> Optional[ModelType]:
        return self.model.model_validate(document) if document else None

    async def get_by_id(self, id: str | ObjectId) -> Optional[ModelType]:
        """Busca um documento pelo seu _id."""
        obj_id = self._to_objectid(id)
        if not obj_id: return None
        try:
            document = await self.collection.find_one({"_id": obj_id})
        except Exception as e:
            self._handle_db_exception(e, "get_by_id", obj_id)
        return self._validate(document)

    async def get_by(self, query: Dict[str, Any]) -> Optional[ModelType]:
        """Busca o PRIMEIRO documento que corresponde a um critério."""
        try:
            document = await self.collection.find_one(query)
        except Exception as e:
            self._handle_db_exception(e, "get_by", query=query)
        return self._validate(document)

    async def list_by(
        self,
        query: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: int = 100,
        sort: Optional[List[Tuple[str, int]]] = None
    ) -> List[ModelType]:
        """Lista documentos com base em critérios, paginação e ordenação. limit=0 lista tudo."""
        try:
            cursor = self.collection.find(query or {})
            if sort:
                cursor = cursor.sort(sort)
            cursor = cursor.skip(max(0, skip))
            if limit > 0:
                cursor = cursor.limit(limit)
            documents = await cursor.to_list(length=limit if limit > 0 else None)
        except Exception as e:
            self._handle_db_exception(e, "list_by", query=query)
        return [self.model.model_validate(doc) for doc in documents]

    async def create(self, data_in: BaseModel | Dict) -> ModelType:
        """Cria um novo documento."""
        if isinstance(data_in, BaseModel):
            create_data = data_in.model_dump(exclude_unset=False, by_alias=False)
        else:
            create_data = data_in.copy()

        create_data = self._prepare_data_for_db(create_data)
        now = utcnow()
        create_data.setdefault("created_at", now)
        create_data.setdefault("updated_at", now)
        create_data.pop("id", None)
        if create_data.get("_id") is None:
            create_data.pop("_id", None)

        try:
            result: InsertOneResult = await self.collection.insert_one(create_data)
            created_document = await self.collection.find_one({"_id": result.inserted_id})
        except Exception as e:
            self._handle_db_exception(e, "create")
        if created_document is None:
            logger.critical(f"CRITICAL: Failed to retrieve document immediately after insertion! Collection: {self.collection_name}")
            raise RuntimeError("Failed to retrieve document after creation.")
        return self.model.model_validate(created_document)

    async def update(self, id: str | ObjectId, data_in: BaseModel | Dict) -> Optional[ModelType]:
        """Atualiza um documento existente usando $set."""
        obj_id = self._to_objectid(id)
        if not obj_id: return None
        return await self.update_where({"_id": obj_id}, data_in)

    async def update_where(self, query: Dict[str, Any], data_in: BaseModel | Dict) -> Optional[ModelType]:
        """$set atômico no primeiro documento do filtro; retorna o documento atualizado (ou None)."""
        if isinstance(data_in, BaseModel):
            update_data = data_in.model_dump(exclude_unset=True, by_alias=False)
        else:
            update_data = data_in.copy()

        update_data = self._prepare_data_for_db(update_data)
        for field in ("_id", "id", "created_at", "agency_id"):
            update_data.pop(field, None)

        if not update_data:
            return await self.get_by(query)

        update_data["updated_at"] = utcnow()
        try:
            document = await self.collection.find_one_and_update(
                query,
                {"$set": update_data},
                return_document=ReturnDocument.AFTER
            )
        except Exception as e:
            self._handle_db_exception(e, "update", query=query)
        if document is None:
            logger.debug(f"No document matched update in {self.collection_name}: {query}")
        return self._validate(document)

    async def delete(self, id: str | ObjectId) -> bool:
        """Deleta um documento pelo ID."""
        obj_id = self._to_objectid(id)
        if not obj_id: return False
        return await self.delete_where({"_id": obj_id})

    async def delete_where(self, query: Dict[str, Any]) -> bool:
        try:
            result: DeleteResult = await self.collection.delete_one(query)
        except Exception as e:
            self._handle_db_exception(e, "delete", query=query)
        deleted = result.deleted_count > 0
        if deleted: logger.info(f"Document deleted from {self.collection_name}: {query}")
        else: logger.warning(f"Document not found for deletion in {self.collection_name}: {query}")
        return deleted

    async def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        """Conta documentos que correspondem a um critério."""
        try:
            return await self.collection.count_documents(query or {})
        except Exception as e:
            self._handle_db_exception(e, "count", query=query)

class TenantRepository(BaseRepository[ModelType]):
    """Repositório de documentos que pertencem a uma agência (campo agency_id).

    Toda leitura/escrita pelos routers passa por estes métodos: um id de outra
    agência se comporta exatamente como um id inexistente.
    """

    def _scoped(self, agency_id: str | ObjectId, query: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        agency_obj_id = self._to_objectid(agency_id)
        if agency_obj_id is None:
            return None
        return {**(query or {}), "agency_id": agency_obj_id}

    def _scoped_id(self, id: str | ObjectId, agency_id: str | ObjectId) -> Optional[Dict[str, Any]]:
        obj_id = self._to_objectid(id)
        if obj_id is None:
            return None
        return self._scoped(agency_id, {"_id": obj_id})

    async def get_for_agency(self, id: str | ObjectId, agency_id: str | ObjectId) -> Optional[ModelType]:
        query = self._scoped_id(id, agency_id)
        return await self.get_by(query) if query else None

    async def list_for_agency(
        self,
        agency_id: str | ObjectId,
        query: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: int = 100,
        sort: Optional[List[Tuple[str, int]]] = None
    ) -> List[ModelType]:
        scoped = self._scoped(agency_id, query)
        if scoped is None:
            return []
        return await self.list_by(scoped, skip=skip, limit=limit, sort=sort)

    async def count_for_agency(self, agency_id: str | ObjectId, query: Optional[Dict[str, Any]] = None) -> int:
        scoped = self._scoped(agency_id, query)
        return await self.count(scoped) if scoped else 0

    async def update_for_agency(self, id: str | ObjectId, agency_id: str | ObjectId, data_in: BaseModel | Dict) -> Optional[ModelType]:
        query = self._scoped_id(id, agency_id)
        return await self.update_where(query, data_in) if query else None

    async def delete_for_agency(self, id: str | ObjectId, agency_id: str | ObjectId) -> bool:
        query = self._scoped_id(id, agency_id)
        return await self.delete_where(query) if query else False

    async def delete_many_for_agency(self, agency_id: str | ObjectId, query: Dict[str, Any]) -> int:
        scoped = self._scoped(agency_id, query)
        if scoped is None:
            return 0
        try:
            result: DeleteResult = await self.collection.delete_many(scoped)
        except Exception as e:
            self._handle_db_exception(e, "delete_many", query=scoped)
        logger.info(f"{result.deleted_count} document(s) deleted from {self.collection_name}: {scoped}")
        return result.deleted_count
