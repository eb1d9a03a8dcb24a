# backend/tests/modules/agencies/test_auth_api.py
import pytest
from fastapi import status
from httpx import AsyncClient

from agenciaos.core.rate_limit import AgencyRateLimiter, get_rate_limiter

pytestmark = pytest.mark.asyncio

REGISTER_PAYLOAD = {
    "name": "  Maria Souza  ",
    "email": "Maria@Agencia.com.br",
    "password": "senha-segura-123",
    "agencyName": "Minha Agência Digital",
}

async def test_register_creates_agency_and_owner(client: AsyncClient):
    response = await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    token = response.json()
    assert token["token_type"] == "bearer"

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token['access_token']}"})
    assert me.status_code == status.HTTP_200_OK
    body = me.json()
    assert body["user"]["name"] == "Maria Souza"
    assert body["user"]["email"] == "maria@agencia.com.br"
    assert body["user"]["role"] == "OWNER"
    assert body["agency"]["slug"] == "minha-agncia-digital"
    assert body["agency"]["plan"] == "FREE"
    assert body["user"]["agencyId"] == body["agency"]["id"]

async def test_register_duplicate_email_is_rejected(client: AsyncClient):
    await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
    response = await client.post("/api/auth/register", json={**REGISTER_PAYLOAD, "agencyName": "Outra"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Email already in use"}

async def test_register_same_agency_name_gets_unique_slug(client: AsyncClient):
    first = await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
    second = await client.post("/api/auth/register", json={**REGISTER_PAYLOAD, "email": "joao@agencia.com.br"})
    assert first.status_code == second.status_code == status.HTTP_201_CREATED

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {second.json()['access_token']}"})
    assert me.json()["agency"]["slug"] == "minha-agncia-digital-1"

async def test_register_validation_error_format(client: AsyncClient):
    response = await client.post("/api/auth/register", json={**REGISTER_PAYLOAD, "password": "123"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error"] == "Invalid data"
    assert any("password" in error["loc"] for error in body["details"])

async def test_login_with_valid_and_invalid_password(client: AsyncClient):
    await client.post("/api/auth/register", json=REGISTER_PAYLOAD)

    ok = await client.post("/api/auth/login", data={"username": "maria@agencia.com.br", "password": "senha-segura-123"})
    assert ok.status_code == status.HTTP_200_OK
    assert ok.json()["access_token"]

    wrong = await client.post("/api/auth/login", data={"username": "maria@agencia.com.br", "password": "errada"})
    assert wrong.status_code == status.HTTP_401_UNAUTHORIZED
    assert "error" in wrong.json()

async def test_protected_route_requires_token(client: AsyncClient):
    response = await client.get("/api/clients")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    garbage = await client.get("/api/clients", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == status.HTTP_401_UNAUTHORIZED

async def test_rate_limit_stats_reflects_api_usage(client: AsyncClient, app, auth_headers):
    limiter = AgencyRateLimiter(
        plan_limits={"FREE": {"ai": "5/minute", "api": "10/minute"}, "PRO": {"ai": "50/minute", "api": "100/minute"}},
        enabled=True,
    )

    async def override_rate_limiter():
        return limiter

    app.dependency_overrides[get_rate_limiter] = override_rate_limiter

    listed = await client.get("/api/clients", headers=auth_headers)
    assert listed.status_code == status.HTTP_200_OK
    assert listed.headers["X-RateLimit-Limit"] == "10"
    assert listed.headers["X-RateLimit-Remaining"] == "9"

    stats = await client.get("/api/rate-limit/stats", headers=auth_headers)
    assert stats.status_code == status.HTTP_200_OK
    body = stats.json()
    assert body["api"]["used"] == 1
    assert body["api"]["limit"] == 10
    assert body["ai"]["used"] == 0
