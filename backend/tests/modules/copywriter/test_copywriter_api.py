# backend/tests/modules/copywriter/test_copywriter_api.py
import pytest
from fastapi import status
from httpx import AsyncClient

from agenciaos.core.rate_limit import AgencyRateLimiter, get_rate_limiter
from agenciaos.modules.copywriter.services import estimate_cost
from agenciaos.services.llm_client import LLMError

pytestmark = pytest.mark.asyncio

CAPTION_PAYLOAD = {
    "theme": "Promoção de inverno",
    "objective": "Vender mais cafés",
    "targetAudience": "Jovens adultos",
    "toneOfVoice": "descontraído",
}

async def test_instagram_caption_returns_content_and_usage(client: AsyncClient, auth_headers, fake_llm, db):
    fake_llm.content = "☕ Legenda pronta! #cafe"
    fake_llm.total_tokens = 300

    response = await client.post("/api/ai/instagram-caption", json=CAPTION_PAYLOAD, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["content"] == "☕ Legenda pronta! #cafe"
    assert body["usage"] == {"tokens": 300, "cost": estimate_cost(300)}

    call = fake_llm.calls[-1]
    assert call["temperature"] == 0.8
    assert call["max_tokens"] == 2000
    assert [m["role"] for m in call["messages"]] == ["system", "user"]
    assert "Promoção de inverno" in call["messages"][1]["content"]

    usage = await db["ai_usage"].find_one({"kind": "instagram-caption"})
    assert usage is not None
    assert usage["tokens"] == 300

async def test_provider_failure_is_bad_gateway(client: AsyncClient, auth_headers, fake_llm, db):
    fake_llm.error = LLMError("HTTP error 500 from OpenAI", 500)

    response = await client.post("/api/ai/whatsapp-broadcast", json={
        "objective": "Lembrar clientes do evento", "audience": "Clientes ativos",
    }, headers=auth_headers)
    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert response.json() == {"error": "AI provider error: HTTP error 500 from OpenAI"}
    assert await db["ai_usage"].count_documents({}) == 0

async def test_missing_required_field_is_invalid_data(client: AsyncClient, auth_headers, fake_llm):
    response = await client.post("/api/ai/instagram-hashtags", json={"theme": "Moda"}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Invalid data"
    assert fake_llm.calls == []

async def test_blog_dispatches_on_action(client: AsyncClient, auth_headers, fake_llm, db):
    ideas = await client.post("/api/ai/blog", json={
        "action": "generate-ideas", "niche": "marketing digital", "quantity": 5,
    }, headers=auth_headers)
    assert ideas.status_code == status.HTTP_200_OK, ideas.text

    article = await client.post("/api/ai/blog", json={
        "action": "generate-article", "topic": "SEO local", "wordCount": 1200, "keywords": ["seo", "google meu negócio"],
    }, headers=auth_headers)
    assert article.status_code == status.HTTP_200_OK, article.text

    kinds = sorted(doc["kind"] for doc in await db["ai_usage"].find({}).to_list(length=None))
    assert kinds == ["blog-article", "blog-ideas"]

async def test_blog_unknown_action(client: AsyncClient, auth_headers, fake_llm):
    response = await client.post("/api/ai/blog", json={"action": "translate", "topic": "x"}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Unknown action" in response.json()["error"]
    assert fake_llm.calls == []

async def test_blog_payload_validation(client: AsyncClient, auth_headers, fake_llm):
    response = await client.post("/api/ai/blog", json={
        "action": "generate-ideas", "niche": "pets", "quantity": 50,
    }, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error"] == "Invalid data"
    assert body["details"][0]["loc"] == ["quantity"]

async def test_ads_validates_platform(client: AsyncClient, auth_headers):
    payload = {
        "platform": "google", "adType": "search", "product": "Curso de confeitaria",
        "targetAudience": "Confeiteiras iniciantes", "budget": 500, "objective": "conversions",
    }
    ok = await client.post("/api/ai/ads", json=payload, headers=auth_headers)
    assert ok.status_code == status.HTTP_200_OK, ok.text

    bad = await client.post("/api/ai/ads", json={**payload, "platform": "orkut"}, headers=auth_headers)
    assert bad.status_code == status.HTTP_400_BAD_REQUEST

async def test_ai_plan_limit_is_enforced(client: AsyncClient, app, auth_headers, fake_llm):
    limiter = AgencyRateLimiter(
        plan_limits={"FREE": {"ai": "2/minute", "api": "100/minute"}, "PRO": {"ai": "10/minute", "api": "100/minute"}},
        enabled=True,
    )

    async def override_rate_limiter():
        return limiter

    app.dependency_overrides[get_rate_limiter] = override_rate_limiter

    for _ in range(2):
        response = await client.post("/api/ai/instagram-caption", json=CAPTION_PAYLOAD, headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK

    blocked = await client.post("/api/ai/instagram-caption", json=CAPTION_PAYLOAD, headers=auth_headers)
    assert blocked.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert blocked.headers["X-RateLimit-Remaining"] == "0"
    assert blocked.headers["X-RateLimit-Limit"] == "2"
    assert "error" in blocked.json()
    assert len(fake_llm.calls) == 2
