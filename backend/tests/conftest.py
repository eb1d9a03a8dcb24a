# backend/tests/conftest.py
import os
import tempfile
from typing import Any, Dict, List, Optional

# Settings são lidas no import de agenciaos.*; o ambiente de teste vem antes
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/agenciaos_test")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-0123456789")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("EBOOK_CHAPTER_DELAY_SECONDS", "0")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="agenciaos-uploads-"))

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from agenciaos.core.database import get_database
from agenciaos.modules.ebooks.queue import get_task_dispatcher
from agenciaos.services.llm_client import LLMError, LLMResponse, LLMUsage, get_llm_client

class FakeDispatcher:
    """Guarda as tasks despachadas em vez de falar com o broker."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None

    def dispatch(self, task_name: str, job_id: str, kwargs: Dict[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append({"task_name": task_name, "job_id": job_id, "kwargs": kwargs})

class FakeLLM:
    """Responde com texto fixo (ou LLMError) e registra as mensagens recebidas."""

    def __init__(self, content: str = "Texto gerado", total_tokens: int = 150):
        self.content = content
        self.total_tokens = total_tokens
        self.error: Optional[LLMError] = None
        self.calls: List[Dict[str, Any]] = []

    async def chat_completion(self, messages, model, temperature=0.7, max_tokens=1500, json_mode=False) -> LLMResponse:
        self.calls.append({"messages": messages, "model": model, "temperature": temperature, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return LLMResponse(
            content=self.content,
            model=model,
            finish_reason="stop",
            usage=LLMUsage(prompt_tokens=self.total_tokens // 3, completion_tokens=self.total_tokens - self.total_tokens // 3,
                           total_tokens=self.total_tokens),
        )

@pytest.fixture
def db():
    """Banco em memória (mongomock) por teste."""
    return AsyncMongoMockClient()["agenciaos_test"]

@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()

@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()

@pytest.fixture
def app(db, dispatcher, fake_llm):
    from agenciaos.main import app as fastapi_app

    async def override_database():
        return db

    async def override_dispatcher():
        return dispatcher

    async def override_llm():
        return fake_llm

    fastapi_app.dependency_overrides[get_database] = override_database
    fastapi_app.dependency_overrides[get_task_dispatcher] = override_dispatcher
    fastapi_app.dependency_overrides[get_llm_client] = override_llm
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()

@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

async def register_agency(client: AsyncClient, email: str, agency_name: str, name: str = "Dono da Agência") -> Dict[str, str]:
    response = await client.post("/api/auth/register", json={
        "name": name,
        "email": email,
        "password": "senha-segura-123",
        "agencyName": agency_name,
    })
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}

@pytest_asyncio.fixture
async def auth_headers(client) -> Dict[str, str]:
    return await register_agency(client, "owner@alfa.com.br", "Agência Alfa")

@pytest_asyncio.fixture
async def other_auth_headers(client) -> Dict[str, str]:
    return await register_agency(client, "owner@beta.com.br", "Agência Beta")
