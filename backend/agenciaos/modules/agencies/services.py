# agenciaos/modules/agencies/services.py
import re
from typing import Optional, Tuple

from fastapi import HTTPException, status
from loguru import logger

from agenciaos.core import security
from .models import AgencyInDB, UserInDB, UserCreateInternal, RegisterAPI
from .repository import AgencyRepository, UserRepository

SLUG_MAX_LENGTH = 50

def slugify(name: str) -> str:
    """'Minha Agência!' -> 'minha-agncia' (minúsculas, só [a-z0-9], espaços viram '-')."""
    slug = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug).strip("-")
    return slug[:SLUG_MAX_LENGTH] or "agencia"

class AgencyService:

    async def unique_slug(self, name: str, agency_repo: AgencyRepository) -> str:
        base = slugify(name)
        slug, counter = base, 1
        while await agency_repo.get_by_slug(slug) is not None:
            suffix = f"-{counter}"
            slug = f"{base[:SLUG_MAX_LENGTH - len(suffix)]}{suffix}"
            counter += 1
        return slug

    async def register(
        self,
        data: RegisterAPI,
        agency_repo: AgencyRepository,
        user_repo: UserRepository,
    ) -> Tuple[UserInDB, AgencyInDB]:
        """Cria a agência e o usuário OWNER."""
        log = logger.bind(service="AgencyService", email=data.email)
        if await user_repo.get_by_email(data.email):
            log.warning("Registration refused: email already in use.")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")

        slug = await self.unique_slug(data.agency_name, agency_repo)
        agency = await agency_repo.create({"name": data.agency_name, "slug": slug, "plan": "FREE"})
        user_in = UserCreateInternal(
            name=data.name,
            email=data.email,
            hashed_password=security.get_password_hash(data.password),
            role="OWNER",
            agency_id=agency.id,
        )
        try:
            user = await user_repo.create(user_in)
        except ValueError:
            # Corrida no índice único de email: desfaz a agência criada
            await agency_repo.delete(agency.id)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
        log.success(f"Agency '{slug}' ({agency.id}) registered with owner {user.id}.")
        return user, agency

    async def authenticate(self, email: str, password: str, user_repo: UserRepository) -> Optional[UserInDB]:
        user = await user_repo.get_by_email(email)
        if user is None or not user.is_active:
            return None
        if not security.verify_password(password, user.hashed_password):
            return None
        return user

    def issue_token(self, user: UserInDB) -> str:
        return security.create_access_token(data={
            "sub": user.email,
            "uid": str(user.id),
            "agency_id": str(user.agency_id) if user.agency_id else None,
            "role": user.role,
        })

async def get_agency_service() -> AgencyService:
    return AgencyService()
