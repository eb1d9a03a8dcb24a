# agenciaos/modules/clients/models.py
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from typing import Optional
from datetime import datetime
from bson import ObjectId

from agenciaos.core.repository import utcnow
from agenciaos.models.api_common import CamelModel, ObjectIdStr

class Address(CamelModel):
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=50)

# --- Internal/DB Models ---
class ClientInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[Address] = None
    agency_id: ObjectId
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

# --- API Models ---
class ClientBaseAPI(CamelModel):
    email: Optional[EmailStr] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=100)
    address: Optional[Address] = None

    @field_validator("email", "phone", "company", mode="before")
    @classmethod
    def blank_as_none(cls, v):
        # Formulários mandam "" para campos não preenchidos
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

class ClientCreateAPI(ClientBaseAPI):
    name: str = Field(..., min_length=2, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

class ClientUpdateAPI(ClientBaseAPI):
    name: Optional[str] = Field(None, min_length=2, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

class ClientAPI(CamelModel):
    id: ObjectIdStr
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[Address] = None
    agency_id: ObjectIdStr
    created_at: datetime
    updated_at: datetime
