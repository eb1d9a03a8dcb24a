# agenciaos/modules/agencies/models.py
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from typing import Optional, Literal
from datetime import datetime
from bson import ObjectId

from agenciaos.core.repository import utcnow
from agenciaos.models.api_common import CamelModel, ObjectIdStr

# --- Constants ---
AGENCY_PLANS = Literal["FREE", "PRO"]
USER_ROLES = Literal["OWNER", "ADMIN", "MEMBER"]

# --- Internal/DB Models ---
class AgencyInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    name: str
    slug: str
    plan: AGENCY_PLANS = "FREE"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class UserCreateInternal(BaseModel):
    name: str
    email: EmailStr
    hashed_password: str
    role: USER_ROLES = "MEMBER"
    agency_id: Optional[ObjectId] = None
    is_active: bool = True

    model_config = ConfigDict(arbitrary_types_allowed=True)

class UserInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    name: str
    email: EmailStr
    hashed_password: str
    role: USER_ROLES = "MEMBER"
    agency_id: Optional[ObjectId] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

# --- API Models ---
class RegisterAPI(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    agency_name: str = Field(..., min_length=2, max_length=100)

    @field_validator("name", "agency_name", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

class AgencyAPI(CamelModel):
    id: ObjectIdStr
    name: str
    slug: str
    plan: AGENCY_PLANS
    created_at: datetime

class UserAPI(CamelModel):
    id: ObjectIdStr
    name: str
    email: EmailStr
    role: USER_ROLES
    agency_id: Optional[ObjectIdStr] = None
    is_active: bool
    created_at: datetime

class MeAPI(BaseModel):
    user: UserAPI
    agency: AgencyAPI
