# agenciaos/modules/agencies/routers.py

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from typing import Annotated, Dict
from loguru import logger

from agenciaos.core import security
from agenciaos.core.rate_limit import AgencyRateLimiter, RateLimitResult, get_rate_limiter
from agenciaos.core.tenant import CurrentTenant
from agenciaos.models.auth import Token
from .models import RegisterAPI, MeAPI, UserAPI, AgencyAPI
from .repository import AgencyRepository, UserRepository, get_agency_repository, get_user_repository
from .services import AgencyService, get_agency_service

auth_router = APIRouter()
rate_limit_router = APIRouter()

@auth_router.post(
    "/register",
    response_model=Token,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new agency and its owner",
    tags=["Authentication"]
)
async def register(
    data: RegisterAPI,
    agency_service: Annotated[AgencyService, Depends(get_agency_service)],
    agency_repo: Annotated[AgencyRepository, Depends(get_agency_repository)],
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
):
    log = logger.bind(api_endpoint="/auth/register", email=data.email)
    try:
        user, _agency = await agency_service.register(data, agency_repo, user_repo)
        return Token(access_token=agency_service.issue_token(user))
    except HTTPException:
        raise
    except Exception as e:
        log.exception(f"Unexpected error registering agency: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error during registration.")

@auth_router.post("/login", response_model=Token, tags=["Authentication"])
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    agency_service: Annotated[AgencyService, Depends(get_agency_service)],
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
):
    """
    Authenticates using username (email) & password form data.
    Returns a JWT access token on success.
    """
    log = logger.bind(api_endpoint="/auth/login", username=form_data.username)
    log.info("Login attempt received.")
    user = await agency_service.authenticate(form_data.username, form_data.password, user_repo)
    if not user:
        log.warning("Authentication failed: Incorrect email or password")
        raise security.CredentialsException
    log.success(f"Authentication successful for user: {user.email} (ID: {user.id})")
    return Token(access_token=agency_service.issue_token(user))

@auth_router.get("/me", response_model=MeAPI, tags=["Authentication"])
async def read_me(
    tenant: CurrentTenant,
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
    agency_repo: Annotated[AgencyRepository, Depends(get_agency_repository)],
):
    user = await user_repo.get_by_id(tenant.user_id)
    agency = await agency_repo.get_by_id(tenant.agency_id)
    if user is None or agency is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return MeAPI(
        user=UserAPI.model_validate(user.model_dump()),
        agency=AgencyAPI.model_validate(agency.model_dump()),
    )

@rate_limit_router.get(
    "/stats",
    response_model=Dict[str, RateLimitResult],
    summary="Current plan usage (ai / api) of the caller's agency",
    tags=["Rate Limit"]
)
async def rate_limit_stats(
    tenant: CurrentTenant,
    rate_limiter: Annotated[AgencyRateLimiter, Depends(get_rate_limiter)],
):
    agency_id = str(tenant.agency_id)
    return {
        category: rate_limiter.peek(agency_id, tenant.plan, category)
        for category in ("ai", "api")
    }
