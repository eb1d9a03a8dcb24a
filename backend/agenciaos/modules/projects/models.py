# agenciaos/modules/projects/models.py
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict
from typing import Annotated, Optional, Literal
from datetime import datetime
from bson import ObjectId

from agenciaos.core.repository import utcnow
from agenciaos.models.api_common import CamelModel, ObjectIdStr

# --- Constants ---
PROJECT_STATUSES = Literal["PLANNING", "IN_PROGRESS", "REVIEW", "COMPLETED", "CANCELLED"]
TASK_PRIORITIES = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]
DEFAULT_BOARD_COLOR = "#6B7280"
HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

def _strip(v):
    return v.strip() if isinstance(v, str) else v

ProjectName = Annotated[str, BeforeValidator(_strip), Field(min_length=2, max_length=100)]

# --- Internal/DB Models ---
class ProjectInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    name: str
    description: Optional[str] = None
    client_id: ObjectId
    status: PROJECT_STATUSES = "PLANNING"
    budget: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    agency_id: ObjectId
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class BoardInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    project_id: ObjectId
    name: str
    color: str = DEFAULT_BOARD_COLOR
    position: int = 0
    agency_id: ObjectId
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class TaskInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    project_id: ObjectId
    board_id: ObjectId
    title: str
    description: Optional[str] = None
    priority: TASK_PRIORITIES = "MEDIUM"
    assigned_to: Optional[ObjectId] = None
    due_date: Optional[datetime] = None
    position: int = 0
    agency_id: ObjectId
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

# --- API Models: projects ---
class ProjectCreateAPI(CamelModel):
    name: ProjectName
    description: Optional[str] = Field(None, max_length=500)
    client_id: str = Field(..., min_length=1)
    status: PROJECT_STATUSES = "PLANNING"
    budget: Optional[float] = Field(None, gt=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class ProjectUpdateAPI(CamelModel):
    name: Optional[ProjectName] = None
    description: Optional[str] = Field(None, max_length=500)
    client_id: Optional[str] = None
    status: Optional[PROJECT_STATUSES] = None
    budget: Optional[float] = Field(None, gt=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class ProjectAPI(CamelModel):
    id: ObjectIdStr
    name: str
    description: Optional[str] = None
    client_id: ObjectIdStr
    status: PROJECT_STATUSES
    budget: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    agency_id: ObjectIdStr
    created_at: datetime
    updated_at: datetime

# --- API Models: boards ---
class BoardCreateAPI(CamelModel):
    project_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(DEFAULT_BOARD_COLOR, pattern=HEX_COLOR_PATTERN)

class BoardUpdateAPI(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    position: Optional[int] = Field(None, ge=0)

class BoardAPI(CamelModel):
    id: ObjectIdStr
    project_id: ObjectIdStr
    name: str
    color: str
    position: int
    created_at: datetime
    updated_at: datetime

# --- API Models: tasks ---
class TaskCreateAPI(CamelModel):
    project_id: str = Field(..., min_length=1)
    board_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    priority: TASK_PRIORITIES = "MEDIUM"
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    position: int = Field(0, ge=0)

class TaskUpdateAPI(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    priority: Optional[TASK_PRIORITIES] = None
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    position: Optional[int] = Field(None, ge=0)

class TaskMoveAPI(CamelModel):
    board_id: str = Field(..., min_length=1)
    position: int = Field(..., ge=0)

class TaskAPI(CamelModel):
    id: ObjectIdStr
    project_id: ObjectIdStr
    board_id: ObjectIdStr
    title: str
    description: Optional[str] = None
    priority: TASK_PRIORITIES
    assigned_to: Optional[ObjectIdStr] = None
    due_date: Optional[datetime] = None
    position: int
    created_at: datetime
    updated_at: datetime
