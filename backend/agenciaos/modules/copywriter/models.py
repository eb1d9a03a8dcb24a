# agenciaos/modules/copywriter/models.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal, Optional
from datetime import datetime
from bson import ObjectId

from agenciaos.core.repository import utcnow
from agenciaos.models.api_common import CamelModel

# --- Constants ---
COPY_KINDS = Literal[
    "instagram-caption", "instagram-hashtags", "whatsapp-broadcast",
    "blog-ideas", "blog-article", "ad-creative",
]
BLOG_ACTIONS = ("generate-ideas", "generate-article")
BLOG_TONES = Literal["professional", "casual", "friendly", "formal", "conversational"]
AD_PLATFORMS = Literal["google", "facebook", "instagram", "linkedin", "tiktok", "youtube"]
AD_TYPES = Literal["search", "display", "video", "shopping", "lead_gen", "conversion"]
AD_OBJECTIVES = Literal["traffic", "conversions", "awareness", "engagement", "leads", "sales"]
AD_TONES = Literal["professional", "casual", "urgent", "friendly", "authoritative"]

# --- Internal/DB Models ---
class AIUsageInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    agency_id: ObjectId
    kind: COPY_KINDS
    tokens: int = 0
    cost: float = 0.0
    model: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

# --- API Models (requests) ---
class InstagramCaptionAPI(CamelModel):
    theme: str = Field(..., min_length=1)
    objective: str = Field(..., min_length=1)
    target_audience: str = Field(..., min_length=1)
    tone_of_voice: Optional[str] = None
    briefing: Optional[str] = None
    post_type: Optional[str] = None

class InstagramHashtagsAPI(CamelModel):
    theme: str = Field(..., min_length=1)
    target_audience: str = Field(..., min_length=1)
    post_type: Optional[str] = None
    niche: Optional[str] = None
    objectives: Optional[str] = None

class WhatsAppBroadcastAPI(CamelModel):
    objective: str = Field(..., min_length=1)
    audience: str = Field(..., min_length=1)
    tone: Optional[str] = None
    details: Optional[str] = None

class BlogIdeasAPI(CamelModel):
    niche: str = Field(..., min_length=1)
    quantity: int = Field(10, ge=1, le=20)
    target_audience: Optional[str] = None

class BlogArticleAPI(CamelModel):
    topic: str = Field(..., min_length=1)
    tone: BLOG_TONES = "professional"
    word_count: int = Field(800, ge=100, le=3000)
    keywords: Optional[List[str]] = None
    target_audience: Optional[str] = None
    call_to_action: Optional[str] = None
    include_images: bool = True

class AdCreativeAPI(CamelModel):
    platform: AD_PLATFORMS
    ad_type: AD_TYPES
    product: str = Field(..., min_length=1)
    target_audience: str = Field(..., min_length=1)
    budget: float = Field(..., ge=1)
    objective: AD_OBJECTIVES
    tone: AD_TONES = "professional"
    key_messages: Optional[List[str]] = None

# --- API Models (responses) ---
class CopyUsage(CamelModel):
    tokens: int
    cost: float

class CopyResponse(CamelModel):
    content: str
    usage: CopyUsage
