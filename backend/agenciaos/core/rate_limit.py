# agenciaos/core/rate_limit.py

import time
from functools import lru_cache
from typing import Annotated, Callable, Dict, Literal, Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from limits import RateLimitItem, parse
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from loguru import logger
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from agenciaos.core.config import settings
from agenciaos.core.tenant import CurrentTenant, TenantContext

RATE_LIMIT_CATEGORIES = Literal["ai", "api"]

PLAN_LIMITS: Dict[str, Dict[str, str]] = {
    "FREE": {"ai": settings.RATE_LIMIT_FREE_AI, "api": settings.RATE_LIMIT_FREE_API},
    "PRO": {"ai": settings.RATE_LIMIT_PRO_AI, "api": settings.RATE_LIMIT_PRO_API},
}

# Limite global por IP (aplicado pelo SlowAPIMiddleware)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_GLOBAL],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)

class RateLimitResult(BaseModel):
    allowed: bool
    limit: int
    remaining: int
    used: int
    reset: int # epoch (segundos) em que a janela libera

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }

class AgencyRateLimiter:
    """
    Limites por agência e categoria ("ai" / "api"), conforme o plano.
    Janela deslizante da lib `limits`; o storage vem de uma URI (memory://, redis://...).
    """

    def __init__(
        self,
        storage_uri: str = "memory://",
        plan_limits: Optional[Dict[str, Dict[str, str]]] = None,
        enabled: bool = True,
    ):
        self.enabled = enabled
        self.storage = storage_from_string(storage_uri)
        self.strategy = MovingWindowRateLimiter(self.storage)
        self.plan_limits: Dict[str, Dict[str, RateLimitItem]] = {
            plan: {category: parse(value) for category, value in limits_.items()}
            for plan, limits_ in (plan_limits or PLAN_LIMITS).items()
        }
        logger.debug(f"AgencyRateLimiter initialized (storage={storage_uri.split('://')[0]}, enabled={enabled}).")

    def limit_for(self, plan: str, category: str) -> RateLimitItem:
        plan_table = self.plan_limits.get(plan) or self.plan_limits["FREE"]
        try:
            return plan_table[category]
        except KeyError:
            raise ValueError(f"Unknown rate limit category: {category}")

    def _result(self, item: RateLimitItem, agency_id: str, category: str, allowed: bool) -> RateLimitResult:
        reset_time, remaining = self.strategy.get_window_stats(item, agency_id, category)
        return RateLimitResult(
            allowed=allowed,
            limit=item.amount,
            remaining=max(0, remaining),
            used=item.amount - max(0, remaining),
            reset=int(reset_time),
        )

    def hit(self, agency_id: str, plan: str, category: str) -> RateLimitResult:
        """Consome uma unidade. allowed=False quando o limite já foi atingido."""
        item = self.limit_for(plan, category)
        if not self.enabled:
            return RateLimitResult(allowed=True, limit=item.amount, remaining=item.amount, used=0, reset=int(time.time()))
        allowed = self.strategy.hit(item, agency_id, category)
        return self._result(item, agency_id, category, allowed)

    def peek(self, agency_id: str, plan: str, category: str) -> RateLimitResult:
        """Estado atual sem consumir."""
        item = self.limit_for(plan, category)
        return self._result(item, agency_id, category, allowed=self.strategy.test(item, agency_id, category))

    def reset(self):
        self.storage.reset()

@lru_cache()
def _default_rate_limiter() -> AgencyRateLimiter:
    return AgencyRateLimiter(
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        enabled=settings.RATE_LIMIT_ENABLED,
    )

async def get_rate_limiter() -> AgencyRateLimiter:
    """FastAPI dependency; sobrescrita nos testes via dependency_overrides."""
    return _default_rate_limiter()

def consume_rate_limit(
    rate_limiter: AgencyRateLimiter,
    tenant: TenantContext,
    category: str,
    response: Optional[Response] = None,
) -> RateLimitResult:
    """Consome 1 unidade da categoria; 429 com os headers X-RateLimit-* se estourou."""
    result = rate_limiter.hit(str(tenant.agency_id), tenant.plan, category)
    if not result.allowed:
        logger.warning(f"Plan limit exceeded: agency={tenant.agency_id} plan={tenant.plan} category={category}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Limite do plano {tenant.plan} excedido para {category}",
            headers=result.headers(),
        )
    if response is not None:
        for header, value in result.headers().items():
            response.headers[header] = value
    return result

def rate_limit(category: str) -> Callable:
    """Factory de dependência: consome 1 unidade da categoria para a agência do chamador."""

    async def checker(
        response: Response,
        tenant: CurrentTenant,
        rate_limiter: Annotated[AgencyRateLimiter, Depends(get_rate_limiter)],
    ) -> TenantContext:
        consume_rate_limit(rate_limiter, tenant, category, response)
        return tenant
    return checker

async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handler do slowapi (limite global por IP) no formato {error}."""
    trace_id = getattr(request.state, 'trace_id', 'N/A')
    logger.bind(trace_id=trace_id).warning(f"Global rate limit exceeded: {exc.detail}")
    headers = {}
    if getattr(exc, "limit", None) is not None:
        item = exc.limit.limit
        headers = {
            "X-RateLimit-Limit": str(item.amount),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(time.time()) + item.get_expiry()),
        }
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": f"Rate limit exceeded: {exc.detail}"},
        headers=headers,
    )
