# agenciaos/core/tenant.py

from typing import Annotated

from bson import ObjectId
from fastapi import Depends, HTTPException, status
from loguru import logger
from pydantic import BaseModel, ConfigDict

from agenciaos.core.security import CurrentToken
from agenciaos.modules.agencies.models import AGENCY_PLANS, USER_ROLES
from agenciaos.modules.agencies.repository import (
    AgencyRepository, UserRepository, get_agency_repository, get_user_repository
)

# Hierarquia de papéis: quem tem nível >= ao exigido passa
ROLE_LEVELS: dict[str, int] = {"MEMBER": 1, "ADMIN": 2, "OWNER": 3}

AccessDeniedException = HTTPException(
    status_code=status.HTTP_403_FORBIDDEN,
    detail="Access denied",
)

class TenantContext(BaseModel):
    """Quem está chamando e em nome de qual agência."""
    user_id: ObjectId
    email: str
    name: str
    role: USER_ROLES
    agency_id: ObjectId
    plan: AGENCY_PLANS = "FREE"

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def has_role(self, required: str) -> bool:
        return ROLE_LEVELS.get(self.role, 0) >= ROLE_LEVELS.get(required, 99)

async def require_tenant(
    token: CurrentToken,
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
    agency_repo: Annotated[AgencyRepository, Depends(get_agency_repository)],
) -> TenantContext:
    """
    Dependência FastAPI: resolve usuário e agência a partir do token.
    401 para token inválido (via security), 403 se não houver tenant válido.
    """
    log = logger.bind(service="TenantContext", email=token.email)
    user = await user_repo.get_by_id(token.user_id)
    if user is None or not user.is_active:
        log.warning("Tenant resolution failed: user missing or inactive.")
        raise AccessDeniedException
    if user.agency_id is None:
        log.warning(f"User {user.id} has no agency.")
        raise AccessDeniedException

    agency = await agency_repo.get_by_id(user.agency_id)
    if agency is None:
        log.warning(f"Agency {user.agency_id} of user {user.id} not found.")
        raise AccessDeniedException

    return TenantContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        agency_id=agency.id,
        plan=agency.plan,
    )

CurrentTenant = Annotated[TenantContext, Depends(require_tenant)]

def require_role(required_role: str):
    """Factory de dependência: exige papel mínimo (MEMBER < ADMIN < OWNER)."""
    if required_role not in ROLE_LEVELS:
        raise ValueError(f"Unknown role: {required_role}")

    async def role_checker(tenant: CurrentTenant) -> TenantContext:
        if not tenant.has_role(required_role):
            logger.warning(f"Role check failed: user {tenant.user_id} is {tenant.role}, requires {required_role}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Requires role {required_role} or higher",
            )
        return tenant
    return role_checker
