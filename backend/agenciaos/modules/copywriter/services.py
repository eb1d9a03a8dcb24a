# agenciaos/modules/copywriter/services.py
from typing import Optional

from fastapi import HTTPException, status
from loguru import logger

from agenciaos.core.config import settings
from agenciaos.core.tenant import TenantContext
from agenciaos.services.llm_client import LLMError, OpenAIClient
from .models import CopyResponse, CopyUsage
from .prompts import Prompt
from .repository import AIUsageRepository

COPY_MAX_TOKENS = 2000
# Estimativa de custo por token (USD), só para o relatório de uso
COST_PER_TOKEN = 0.00002

def estimate_cost(tokens: int) -> float:
    return round(tokens * COST_PER_TOKEN, 6)

class CopywriterService:
    """Uma chamada de chat completion por geração; o uso fica registrado em ai_usage."""

    def __init__(self, model: Optional[str] = None):
        self.model = model or settings.OPENAI_COPY_MODEL

    async def generate(
        self,
        tenant: TenantContext,
        kind: str,
        prompt: Prompt,
        temperature: float,
        llm: OpenAIClient,
        usage_repo: AIUsageRepository,
    ) -> CopyResponse:
        log = logger.bind(service="CopywriterService", kind=kind, agency_id=str(tenant.agency_id))
        system_prompt, user_prompt = prompt
        try:
            response = await llm.chat_completion(
                [{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}],
                model=self.model,
                temperature=temperature,
                max_tokens=COPY_MAX_TOKENS,
            )
        except LLMError as e:
            log.error(f"Copy generation failed: {e.message}")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"AI provider error: {e.message}")

        tokens = response.usage.total_tokens
        cost = estimate_cost(tokens)
        await usage_repo.create({
            "agency_id": tenant.agency_id,
            "kind": kind,
            "tokens": tokens,
            "cost": cost,
            "model": response.model,
        })
        log.info(f"Copy generated ({tokens} tokens).")
        return CopyResponse(content=response.content, usage=CopyUsage(tokens=tokens, cost=cost))

async def get_copywriter_service() -> CopywriterService:
    return CopywriterService()
