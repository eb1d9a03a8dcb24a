# backend/tests/modules/ebooks/test_ebooks_api.py
import pytest
from bson import ObjectId
from fastapi import status
from httpx import AsyncClient

from agenciaos.core.rate_limit import AgencyRateLimiter, get_rate_limiter
from agenciaos.core.repository import utcnow

pytestmark = pytest.mark.asyncio

def outline(chapters: int = 10) -> dict:
    return {
        "description": "Guia prático de marketing no Instagram para pequenos negócios.",
        "targetAudience": "Donos de pequenos negócios",
        "objectives": ["Planejar conteúdo", "Crescer seguidores"],
        "benefits": ["Mais vendas"],
        "chapters": [
            {"number": n, "title": f"Capítulo {n}", "description": f"Sobre o tema {n}", "pages": 5}
            for n in range(1, chapters + 1)
        ],
        "totalPages": 50,
        "estimatedReadTime": "2-3 horas",
        "difficulty": "Iniciante",
    }

def content_payload() -> dict:
    return {
        "introduction": "<p>Introdução</p>",
        "chapters": [
            {"chapterNumber": n, "title": f"Capítulo {n}", "content": f"<p>Texto {n}</p>", "wordCount": 2500, "keyPoints": ["A"]}
            for n in range(1, 11)
        ],
        "conclusion": "<p>Conclusão</p>",
        "metadata": {"totalChapters": 10, "totalPages": 50},
    }

async def create_ebook(client: AsyncClient, headers, title: str = "Instagram para Negócios") -> dict:
    response = await client.post("/api/ebook", json={"title": title, "targetAudience": "PMEs"}, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()

async def test_create_ebook_starts_as_draft(client: AsyncClient, auth_headers):
    ebook = await create_ebook(client, auth_headers, title="  Guia de Reels  ")
    assert ebook["title"] == "Guia de Reels"
    assert ebook["status"] == "DRAFT"
    assert ebook["description"] is None
    assert ebook["content"] is None
    assert ebook["pdfUrl"] is None
    assert ebook["metadata"]["targetAudience"] == "PMEs"

async def test_create_ebook_requires_title(client: AsyncClient, auth_headers):
    response = await client.post("/api/ebook", json={"title": "   "}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Invalid data"

async def test_list_ebooks_with_status_filter(client: AsyncClient, auth_headers, db):
    first = await create_ebook(client, auth_headers, "Primeiro")
    await create_ebook(client, auth_headers, "Segundo")
    await db["ebooks"].update_one({"_id": ObjectId(first["id"])}, {"$set": {"status": "COMPLETED"}})

    response = await client.get("/api/ebook", params={"status": "completed"}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert [e["title"] for e in body["items"]] == ["Primeiro"]
    assert body["pagination"]["total"] == 1

    invalid = await client.get("/api/ebook", params={"status": "PUBLISHED"}, headers=auth_headers)
    assert invalid.status_code == status.HTTP_400_BAD_REQUEST

async def test_ebooks_are_isolated_between_agencies(client: AsyncClient, auth_headers, other_auth_headers):
    ebook = await create_ebook(client, auth_headers)

    assert (await client.get(f"/api/ebook/{ebook['id']}", headers=other_auth_headers)).status_code == status.HTTP_404_NOT_FOUND
    foreign_queue = await client.post("/api/ebook/queue/description", json={"ebookId": ebook["id"]}, headers=other_auth_headers)
    assert foreign_queue.status_code == status.HTTP_404_NOT_FOUND
    assert (await client.get("/api/ebook", headers=other_auth_headers)).json()["items"] == []

async def test_foreign_ebook_is_not_found_on_every_route(client: AsyncClient, auth_headers, other_auth_headers, db, dispatcher):
    ebook = await create_ebook(client, auth_headers)
    await db["ebooks"].update_one(
        {"_id": ObjectId(ebook["id"])},
        {"$set": {"status": "CONTENT_READY", "description": outline(), "content": content_payload()}},
    )
    url = f"/api/ebook/{ebook['id']}"

    responses = [
        await client.put(url, json={"title": "Roubado"}, headers=other_auth_headers),
        await client.delete(url, headers=other_auth_headers),
        await client.post("/api/ebook/queue/content", json={"ebookId": ebook["id"], "approvedDescription": outline()}, headers=other_auth_headers),
        await client.post("/api/ebook/queue/pdf", json={"ebookId": ebook["id"]}, headers=other_auth_headers),
    ]
    assert [r.status_code for r in responses] == [status.HTTP_404_NOT_FOUND] * 4
    assert all(r.json() == {"error": "Ebook not found"} for r in responses)
    assert dispatcher.calls == []

    untouched = (await client.get(url, headers=auth_headers)).json()
    assert untouched["title"] == "Instagram para Negócios"
    assert untouched["status"] == "CONTENT_READY"

async def test_queue_description_dispatches_job(client: AsyncClient, auth_headers, dispatcher, db):
    ebook = await create_ebook(client, auth_headers)

    response = await client.post("/api/ebook/queue/description", json={"ebookId": ebook["id"]}, headers=auth_headers)
    assert response.status_code == status.HTTP_202_ACCEPTED, response.text
    job_id = response.json()["jobId"]

    assert len(dispatcher.calls) == 1
    call = dispatcher.calls[0]
    assert call["task_name"] == "ebook.generate_description"
    assert call["job_id"] == job_id
    assert call["kwargs"]["ebook_id"] == ebook["id"]
    assert call["kwargs"]["options"] == {"title": "Instagram para Negócios"}

    stored = (await client.get(f"/api/ebook/{ebook['id']}", headers=auth_headers)).json()
    assert stored["status"] == "DRAFT"
    assert stored["metadata"]["jobId"] == job_id
    assert stored["metadata"]["lastJobStep"] == "description"

    job = await client.get(f"/api/ebook/queue/status/{job_id}", headers=auth_headers)
    assert job.status_code == status.HTTP_200_OK
    assert job.json()["job"]["status"] == "waiting"
    assert job.json()["job"]["step"] == "description"
    assert job.json()["job"]["progress"] == 0

async def test_queue_description_refused_after_approval(client: AsyncClient, auth_headers, dispatcher, db):
    ebook = await create_ebook(client, auth_headers)
    await db["ebooks"].update_one({"_id": ObjectId(ebook["id"])}, {"$set": {"status": "GENERATING"}})

    response = await client.post("/api/ebook/queue/description", json={"ebookId": ebook["id"]}, headers=auth_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert dispatcher.calls == []

async def test_queue_content_requires_approved_description(client: AsyncClient, auth_headers, dispatcher):
    ebook = await create_ebook(client, auth_headers)

    response = await client.post("/api/ebook/queue/content", json={"ebookId": ebook["id"]}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Invalid data"
    assert dispatcher.calls == []

async def test_queue_content_stores_outline_and_approves(client: AsyncClient, auth_headers, dispatcher, db):
    ebook = await create_ebook(client, auth_headers)
    await db["ebooks"].update_one({"_id": ObjectId(ebook["id"])}, {"$set": {"status": "DESCRIPTION_GENERATED"}})

    approved = outline()
    approved["chapters"][0]["title"] = "Capítulo editado"
    response = await client.post(
        "/api/ebook/queue/content", json={"ebookId": ebook["id"], "approvedDescription": approved}, headers=auth_headers
    )
    assert response.status_code == status.HTTP_202_ACCEPTED, response.text
    assert dispatcher.calls[0]["task_name"] == "ebook.generate_content"

    stored = (await client.get(f"/api/ebook/{ebook['id']}", headers=auth_headers)).json()
    assert stored["status"] == "DESCRIPTION_APPROVED"
    assert stored["description"]["chapters"][0]["title"] == "Capítulo editado"

async def test_queue_pdf_requires_content(client: AsyncClient, auth_headers, dispatcher):
    ebook = await create_ebook(client, auth_headers)
    response = await client.post("/api/ebook/queue/pdf", json={"ebookId": ebook["id"]}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Ebook needs description and content before generating the PDF"}
    assert dispatcher.calls == []

async def test_queue_pdf_dispatches_with_template(client: AsyncClient, auth_headers, dispatcher):
    ebook = await create_ebook(client, auth_headers)
    updated = await client.put(f"/api/ebook/{ebook['id']}", json={
        "description": outline(), "content": content_payload(), "status": "CONTENT_READY",
    }, headers=auth_headers)
    assert updated.status_code == status.HTTP_200_OK, updated.text

    response = await client.post("/api/ebook/queue/pdf", json={"ebookId": ebook["id"], "template": "modern"}, headers=auth_headers)
    assert response.status_code == status.HTTP_202_ACCEPTED, response.text
    assert dispatcher.calls[0]["task_name"] == "ebook.generate_pdf"
    assert dispatcher.calls[0]["kwargs"]["options"] == {"template": "modern"}

async def test_enqueue_failure_marks_ebook_error(client: AsyncClient, auth_headers, dispatcher):
    ebook = await create_ebook(client, auth_headers)
    dispatcher.fail_with = ConnectionError("broker down")

    response = await client.post("/api/ebook/queue/description", json={"ebookId": ebook["id"]}, headers=auth_headers)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

    stored = (await client.get(f"/api/ebook/{ebook['id']}", headers=auth_headers)).json()
    assert stored["status"] == "ERROR"

    job = await client.get(f"/api/ebook/queue/status/{stored['metadata']['jobId']}", headers=auth_headers)
    assert job.json()["job"]["status"] == "failed"
    assert job.json()["job"]["failedReason"] == "Failed to dispatch job: broker down"

async def test_job_status_unknown_and_foreign(client: AsyncClient, auth_headers, other_auth_headers, db):
    missing = await client.get("/api/ebook/queue/status/does-not-exist", headers=auth_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    ebook = await create_ebook(client, auth_headers)
    job_id = (await client.post("/api/ebook/queue/description", json={"ebookId": ebook["id"]}, headers=auth_headers)).json()["jobId"]
    foreign = await client.get(f"/api/ebook/queue/status/{job_id}", headers=other_auth_headers)
    assert foreign.status_code == status.HTTP_403_FORBIDDEN

    await db["ebook_jobs"].update_one(
        {"_id": job_id}, {"$set": {"processed_on": utcnow(), "finished_on": utcnow(), "failed_reason": "boom"}}
    )
    failed = await client.get(f"/api/ebook/queue/status/{job_id}", headers=auth_headers)
    assert failed.json()["job"]["status"] == "failed"
    assert failed.json()["job"]["failedReason"] == "boom"

async def test_status_cannot_move_backwards(client: AsyncClient, auth_headers, db):
    ebook = await create_ebook(client, auth_headers)
    await db["ebooks"].update_one({"_id": ObjectId(ebook["id"])}, {"$set": {"status": "CONTENT_READY"}})

    backwards = await client.put(f"/api/ebook/{ebook['id']}", json={"status": "DRAFT"}, headers=auth_headers)
    assert backwards.status_code == status.HTTP_400_BAD_REQUEST
    assert backwards.json() == {"error": "Invalid status transition: CONTENT_READY -> DRAFT"}

    to_error = await client.put(f"/api/ebook/{ebook['id']}", json={"status": "ERROR"}, headers=auth_headers)
    assert to_error.status_code == status.HTTP_200_OK

    # De ERROR qualquer destino é aceito (reprocessamento)
    recovered = await client.put(f"/api/ebook/{ebook['id']}", json={"status": "DRAFT"}, headers=auth_headers)
    assert recovered.status_code == status.HTTP_200_OK
    assert recovered.json()["status"] == "DRAFT"

async def test_update_title_keeps_status(client: AsyncClient, auth_headers):
    ebook = await create_ebook(client, auth_headers)
    response = await client.put(f"/api/ebook/{ebook['id']}", json={"title": "Novo título"}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["title"] == "Novo título"
    assert response.json()["status"] == "DRAFT"

async def test_null_fields_in_update_are_ignored(client: AsyncClient, auth_headers):
    ebook = await create_ebook(client, auth_headers, title="Guia")

    response = await client.put(
        f"/api/ebook/{ebook['id']}", json={"title": None, "description": None, "content": None}, headers=auth_headers
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    assert response.json()["title"] == "Guia"

    listed = await client.get("/api/ebook", headers=auth_headers)
    assert listed.status_code == status.HTTP_200_OK
    assert [e["title"] for e in listed.json()["items"]] == ["Guia"]

async def test_delete_ebook(client: AsyncClient, auth_headers):
    ebook = await create_ebook(client, auth_headers)
    response = await client.delete(f"/api/ebook/{ebook['id']}", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert (await client.get(f"/api/ebook/{ebook['id']}", headers=auth_headers)).status_code == status.HTTP_404_NOT_FOUND
    assert (await client.delete(f"/api/ebook/{ebook['id']}", headers=auth_headers)).status_code == status.HTTP_404_NOT_FOUND

async def test_ai_unit_is_charged_only_for_found_ebooks(client: AsyncClient, app, auth_headers, dispatcher):
    limiter = AgencyRateLimiter(
        plan_limits={"FREE": {"ai": "1/minute", "api": "100/minute"}, "PRO": {"ai": "1/minute", "api": "100/minute"}},
        enabled=True,
    )

    async def override_rate_limiter():
        return limiter

    app.dependency_overrides[get_rate_limiter] = override_rate_limiter
    ebook = await create_ebook(client, auth_headers)

    for _ in range(3):
        missing = await client.post("/api/ebook/queue/description", json={"ebookId": str(ObjectId())}, headers=auth_headers)
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    accepted = await client.post("/api/ebook/queue/description", json={"ebookId": ebook["id"]}, headers=auth_headers)
    assert accepted.status_code == status.HTTP_202_ACCEPTED, accepted.text
    assert accepted.headers["X-RateLimit-Remaining"] == "0"

    blocked = await client.post("/api/ebook/queue/description", json={"ebookId": ebook["id"]}, headers=auth_headers)
    assert blocked.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert len(dispatcher.calls) == 1
