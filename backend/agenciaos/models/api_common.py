# agenciaos/models/api_common.py

from math import ceil
from typing import Annotated, Generic, List, Optional, TypeVar, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ObjectId (ou qualquer id) serializado como string na API
ObjectIdStr = Annotated[str, BeforeValidator(str)]

class CamelModel(BaseModel):
    """Base dos modelos de API: camelCase no JSON, snake_case no Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

class StatusResponse(BaseModel):
    """Resposta genérica indicando o status de uma operação."""
    status: str = Field(..., description="Status geral (ex: 'ok', 'success', 'accepted')")
    message: Optional[str] = Field(None, description="Mensagem descritiva opcional.")

class ErrorResponse(BaseModel):
    """Corpo padrão de erro ({error}) gerado pelos exception handlers."""
    error: str
    details: Optional[List[Any]] = None

class AcceptedResponse(CamelModel):
    """Resposta para operações aceitas para processamento assíncrono."""
    status: str = "accepted"
    message: str = "Request accepted for processing."
    job_id: str = Field(..., description="ID do job em background (Celery task ID).")

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=ceil(total / limit) if limit else 0)

ItemType = TypeVar("ItemType")

class PaginatedResponse(BaseModel, Generic[ItemType]):
    """Wrapper genérico para respostas paginadas."""
    items: List[ItemType]
    pagination: Pagination
