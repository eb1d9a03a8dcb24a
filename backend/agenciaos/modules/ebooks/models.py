# agenciaos/modules/ebooks/models.py
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict, field_validator
from typing import Annotated, List, Optional, Dict, Any, Literal, get_args
from datetime import datetime
from bson import ObjectId

from agenciaos.core.repository import utcnow
from agenciaos.models.api_common import CamelModel, ObjectIdStr

# --- Constants ---
EBOOK_STATUSES = Literal[
    "DRAFT",
    "DESCRIPTION_GENERATED",
    "DESCRIPTION_APPROVED",
    "GENERATING",
    "CONTENT_READY",
    "GENERATING_PDF",
    "COMPLETED",
    "ERROR",
]
# Ordem do pipeline (ERROR fica fora: alcançável de qualquer status)
EBOOK_STATUS_ORDER: List[str] = [s for s in get_args(EBOOK_STATUSES) if s != "ERROR"]

JOB_STEPS = Literal["description", "content", "pdf"]
JOB_STATUSES = Literal["waiting", "active", "completed", "failed"]
DIFFICULTIES = Literal["Iniciante", "Intermediário", "Avançado"]
PDF_TEMPLATES = Literal["professional", "modern"]
PDF_FONTS = Literal["inter", "roboto", "open-sans"]

def can_transition(current: str, new: str) -> bool:
    """Status só avança (ou fica); ERROR é alcançável de todos e libera qualquer destino."""
    if new == "ERROR" or current == "ERROR":
        return True
    return EBOOK_STATUS_ORDER.index(new) >= EBOOK_STATUS_ORDER.index(current)

def allowed_predecessors(new: str) -> List[str]:
    """Status a partir dos quais `new` pode ser escrito (filtro do compare-and-set)."""
    return [s for s in get_args(EBOOK_STATUSES) if can_transition(s, new)]

# --- Outline / conteúdo (compartilhados entre DB e API) ---
class ChapterOutline(CamelModel):
    number: int
    title: str
    description: str = ""
    pages: int = 5

class EbookDescription(CamelModel):
    description: str = Field(..., min_length=1)
    target_audience: str = ""
    objectives: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    chapters: List[ChapterOutline] = Field(..., min_length=1)
    total_pages: int = 50
    estimated_read_time: str = ""
    difficulty: DIFFICULTIES = "Intermediário"

    @field_validator("estimated_read_time", mode="before")
    @classmethod
    def read_time_as_text(cls, v):
        return str(v) if isinstance(v, (int, float)) else v

class ChapterContent(CamelModel):
    chapter_number: int
    title: str
    content: str
    word_count: int = 0
    key_points: List[str] = Field(default_factory=list)

class ContentMetadata(CamelModel):
    total_chapters: int
    total_pages: int
    generated_at: datetime = Field(default_factory=utcnow)

class EbookContent(CamelModel):
    introduction: str
    chapters: List[ChapterContent]
    conclusion: str
    metadata: ContentMetadata

class EbookMetadata(CamelModel):
    job_id: Optional[str] = None
    last_job_step: Optional[JOB_STEPS] = None
    target_audience: Optional[str] = None
    industry: Optional[str] = None
    created_by: Optional[ObjectIdStr] = None

# --- Internal/DB Models ---
class EbookInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    title: str
    description: Optional[EbookDescription] = None
    content: Optional[EbookContent] = None
    status: EBOOK_STATUSES = "DRAFT"
    pdf_url: Optional[str] = None
    metadata: EbookMetadata = Field(default_factory=EbookMetadata)
    agency_id: ObjectId
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class EbookJobInDB(BaseModel):
    """Registro de um job de estágio. _id é o id da task Celery."""
    id: str = Field(..., alias="_id")
    ebook_id: ObjectId
    agency_id: ObjectId
    step: JOB_STEPS
    progress: int = 0
    processed_on: Optional[datetime] = None
    finished_on: Optional[datetime] = None
    failed_reason: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

def job_status(job: EbookJobInDB) -> str:
    if job.finished_on is not None:
        return "failed" if job.failed_reason else "completed"
    if job.processed_on is not None:
        return "active"
    return "waiting"

# --- API Models ---
class EbookAPI(CamelModel):
    id: ObjectIdStr
    title: str
    description: Optional[EbookDescription] = None
    content: Optional[EbookContent] = None
    status: EBOOK_STATUSES
    pdf_url: Optional[str] = None
    metadata: EbookMetadata
    agency_id: ObjectIdStr
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db(cls, ebook: EbookInDB) -> "EbookAPI":
        return cls.model_validate(ebook.model_dump())

def _required_title(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
    return v

EbookTitle = Annotated[str, BeforeValidator(_required_title), Field(max_length=200)]

class EbookCreateAPI(CamelModel):
    title: EbookTitle
    target_audience: Optional[str] = None
    industry: Optional[str] = None

class EbookUpdateAPI(CamelModel):
    title: Optional[EbookTitle] = None
    description: Optional[EbookDescription] = None
    content: Optional[EbookContent] = None
    status: Optional[EBOOK_STATUSES] = None

class QueueDescriptionAPI(CamelModel):
    ebook_id: str = Field(..., min_length=1)
    title: Optional[str] = None

class QueueContentAPI(CamelModel):
    ebook_id: str = Field(..., min_length=1)
    approved_description: EbookDescription

class QueuePdfAPI(CamelModel):
    ebook_id: str = Field(..., min_length=1)
    template: PDF_TEMPLATES = "professional"

class JobAPI(CamelModel):
    id: str
    progress: int
    step: JOB_STEPS
    ebook_id: ObjectIdStr
    processed_on: Optional[datetime] = None
    finished_on: Optional[datetime] = None
    failed_reason: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    status: JOB_STATUSES

    @classmethod
    def from_db(cls, job: EbookJobInDB) -> "JobAPI":
        return cls.model_validate({**job.model_dump(), "status": job_status(job)})

class JobStatusResponse(BaseModel):
    success: bool = True
    job: JobAPI
