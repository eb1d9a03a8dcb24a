# agenciaos/modules/copywriter/routers.py
from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from typing import Annotated, Any, Dict
from loguru import logger

from agenciaos.core.rate_limit import rate_limit
from agenciaos.core.tenant import TenantContext
from agenciaos.services.llm_client import OpenAIClient, get_llm_client
from . import prompts
from .models import (
    BLOG_ACTIONS, AdCreativeAPI, BlogArticleAPI, BlogIdeasAPI, CopyResponse,
    InstagramCaptionAPI, InstagramHashtagsAPI, WhatsAppBroadcastAPI,
)
from .repository import AIUsageRepository, get_ai_usage_repository
from .services import CopywriterService, get_copywriter_service

copywriter_router = APIRouter()

# Cada geração consome 1 unidade "ai" do plano (e resolve o tenant)
AITenant = Annotated[TenantContext, Depends(rate_limit("ai"))]
Copywriter = Annotated[CopywriterService, Depends(get_copywriter_service)]
LLM = Annotated[OpenAIClient, Depends(get_llm_client)]
UsageRepo = Annotated[AIUsageRepository, Depends(get_ai_usage_repository)]

async def _generate(service: CopywriterService, tenant: TenantContext, kind: str, prompt, temperature: float,
                    llm: OpenAIClient, usage_repo: AIUsageRepository) -> CopyResponse:
    try:
        return await service.generate(tenant, kind, prompt, temperature, llm, usage_repo)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error generating {kind}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Internal server error generating {kind}.")

@copywriter_router.post("/instagram-caption", response_model=CopyResponse, summary="Instagram caption", tags=["AI Copywriter"])
async def instagram_caption(data: InstagramCaptionAPI, tenant: AITenant, service: Copywriter, llm: LLM, usage_repo: UsageRepo):
    return await _generate(service, tenant, "instagram-caption", prompts.instagram_caption(data), 0.8, llm, usage_repo)

@copywriter_router.post("/instagram-hashtags", response_model=CopyResponse, summary="Instagram hashtag strategy", tags=["AI Copywriter"])
async def instagram_hashtags(data: InstagramHashtagsAPI, tenant: AITenant, service: Copywriter, llm: LLM, usage_repo: UsageRepo):
    return await _generate(service, tenant, "instagram-hashtags", prompts.instagram_hashtags(data), 0.7, llm, usage_repo)

@copywriter_router.post("/whatsapp-broadcast", response_model=CopyResponse, summary="WhatsApp broadcast messages", tags=["AI Copywriter"])
async def whatsapp_broadcast(data: WhatsAppBroadcastAPI, tenant: AITenant, service: Copywriter, llm: LLM, usage_repo: UsageRepo):
    return await _generate(service, tenant, "whatsapp-broadcast", prompts.whatsapp_broadcast(data), 0.8, llm, usage_repo)

@copywriter_router.post("/blog", response_model=CopyResponse, summary="Blog ideas or full article", tags=["AI Copywriter"])
async def blog(
    tenant: AITenant,
    service: Copywriter,
    llm: LLM,
    usage_repo: UsageRepo,
    body: Dict[str, Any] = Body(..., examples=[{"action": "generate-ideas", "niche": "marketing digital", "quantity": 5}]),
):
    """`action` escolhe o gerador: "generate-ideas" ou "generate-article"."""
    action = body.get("action")
    if action not in BLOG_ACTIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Unknown action. Use "generate-ideas" or "generate-article"',
        )
    payload = {k: v for k, v in body.items() if k != "action"}
    try:
        if action == "generate-ideas":
            kind, prompt = "blog-ideas", prompts.blog_ideas(BlogIdeasAPI.model_validate(payload))
        else:
            kind, prompt = "blog-article", prompts.blog_article(BlogArticleAPI.model_validate(payload))
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))
    return await _generate(service, tenant, kind, prompt, 0.7, llm, usage_repo)

@copywriter_router.post("/ads", response_model=CopyResponse, summary="Ad creatives for A/B testing", tags=["AI Copywriter"])
async def ads(data: AdCreativeAPI, tenant: AITenant, service: Copywriter, llm: LLM, usage_repo: UsageRepo):
    return await _generate(service, tenant, "ad-creative", prompts.ad_creative(data), 0.7, llm, usage_repo)
