# agenciaos/modules/finance/models.py
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict
from typing import Annotated, Dict, List, Optional
from datetime import datetime
from bson import ObjectId

from agenciaos.core.repository import utcnow
from agenciaos.models.api_common import CamelModel, ObjectIdStr

MAX_AMOUNT = 999999999.99

def _strip(v):
    return v.strip() if isinstance(v, str) else v

EntryDescription = Annotated[str, BeforeValidator(_strip), Field(min_length=2, max_length=200)]
EntryCategory = Annotated[str, BeforeValidator(_strip), Field(min_length=2, max_length=50)]
Amount = Annotated[float, Field(gt=0, le=MAX_AMOUNT)]

# --- Internal/DB Models ---
class RevenueInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    description: str
    amount: float
    category: str
    client_id: Optional[ObjectId] = None
    project_id: Optional[ObjectId] = None
    is_recurring: bool = False
    date: datetime
    agency_id: ObjectId
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class ExpenseInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    description: str
    amount: float
    category: str
    date: datetime
    agency_id: ObjectId
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

# --- API Models: revenues ---
class RevenueCreateAPI(CamelModel):
    description: EntryDescription
    amount: Amount
    category: EntryCategory
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    is_recurring: bool = False
    date: datetime = Field(default_factory=utcnow)

class RevenueUpdateAPI(CamelModel):
    description: Optional[EntryDescription] = None
    amount: Optional[Amount] = None
    category: Optional[EntryCategory] = None
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    is_recurring: Optional[bool] = None
    date: Optional[datetime] = None

class RevenueAPI(CamelModel):
    id: ObjectIdStr
    description: str
    amount: float
    category: str
    client_id: Optional[ObjectIdStr] = None
    project_id: Optional[ObjectIdStr] = None
    is_recurring: bool
    date: datetime
    created_at: datetime
    updated_at: datetime

# --- API Models: expenses ---
class ExpenseCreateAPI(CamelModel):
    description: EntryDescription
    amount: Amount
    category: EntryCategory
    date: datetime = Field(default_factory=utcnow)

class ExpenseUpdateAPI(CamelModel):
    description: Optional[EntryDescription] = None
    amount: Optional[Amount] = None
    category: Optional[EntryCategory] = None
    date: Optional[datetime] = None

class ExpenseAPI(CamelModel):
    id: ObjectIdStr
    description: str
    amount: float
    category: str
    date: datetime
    created_at: datetime
    updated_at: datetime

# --- Stats ---
class CategoryTotal(CamelModel):
    category: str
    amount: float
    count: int

class FinancialStatsAPI(CamelModel):
    total_revenue: float
    total_expenses: float
    net_profit: float
    monthly_revenue: float
    monthly_expenses: float
    monthly_profit: float
    revenue_growth: float
    expense_growth: float
    profit_margin: float
    recurring_revenue: float
    top_categories: Dict[str, List[CategoryTotal]]
