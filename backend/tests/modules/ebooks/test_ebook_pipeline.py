# backend/tests/modules/ebooks/test_ebook_pipeline.py
import re
from typing import List, Optional

import pytest
from bson import ObjectId

from agenciaos.modules.ebooks.generator import EbookGenerationError, EbookGenerator
from agenciaos.modules.ebooks.models import EbookContent, EbookDescription
from agenciaos.modules.ebooks.pipeline import EbookPipeline, StaleStatusError
from agenciaos.modules.ebooks.repository import EbookJobRepository, EbookRepository
from agenciaos.services.llm_client import LLMError, LLMResponse
from agenciaos.services.pdf_renderer import PdfRenderError
from agenciaos.services.storage import LocalFileStorage

pytestmark = pytest.mark.asyncio

CHAPTER_NUMBER = re.compile(r"Capítulo (\d+):")

def outline_data(chapters: int = 10) -> dict:
    return {
        "description": "Um guia completo de tráfego pago.",
        "targetAudience": "Gestores de tráfego",
        "objectives": ["Planejar campanhas"],
        "benefits": ["Menor custo por lead"],
        "chapters": [{"number": n, "title": f"Capítulo {n}", "description": f"Tema {n}", "pages": 5} for n in range(1, chapters + 1)],
        "totalPages": 50,
        "estimatedReadTime": 3,
        "difficulty": "Intermediário",
    }

class ScriptedLLM:
    """Responde aos prompts do gerador de ebook sem chamar a OpenAI."""

    def __init__(self, outline_chapters: int = 10, fail_on_chapter: Optional[int] = None):
        self.outline_chapters = outline_chapters
        self.fail_on_chapter = fail_on_chapter
        self.chapters_requested: List[int] = []

    async def chat_completion(self, messages, model, temperature=0.7, max_tokens=1500, json_mode=False):
        return LLMResponse(content="<p>Texto de apoio</p>", model=model)

    async def chat_completion_json(self, messages, model, **kwargs):
        prompt = messages[-1]["content"]
        match = CHAPTER_NUMBER.search(prompt)
        if match is None:
            return outline_data(self.outline_chapters)
        number = int(match.group(1))
        self.chapters_requested.append(number)
        if number == self.fail_on_chapter:
            raise LLMError("Request to OpenAI API timed out.")
        return {"content": f"<h2>Capítulo {number}</h2>", "wordCount": 2400, "keyPoints": [f"Ponto {number}"]}

class FakeRenderer:
    def __init__(self):
        self.rendered: List[str] = []

    async def render(self, html: str) -> bytes:
        self.rendered.append(html)
        return b"%PDF-1.4 fake"

@pytest.fixture
def repos(db):
    return EbookRepository(db), EbookJobRepository(db)

def build_pipeline(repos, tmp_path, llm: ScriptedLLM, renderer: Optional[FakeRenderer] = None) -> EbookPipeline:
    ebook_repo, job_repo = repos
    return EbookPipeline(
        ebook_repo,
        job_repo,
        EbookGenerator(llm, model="gpt-test", chapter_delay=0),
        renderer or FakeRenderer(),
        LocalFileStorage(root=tmp_path, url_prefix="/uploads"),
        clock=lambda: 1700000000.0,
    )

async def seed(repos, step: str, status: str = "DRAFT", with_description: bool = False, with_content: bool = False):
    ebook_repo, job_repo = repos
    agency_id = ObjectId()
    description = EbookDescription.model_validate(outline_data())
    ebook = await ebook_repo.create({
        "title": "Tráfego Pago Descomplicado",
        "status": status,
        "agency_id": agency_id,
        "description": description.model_dump() if with_description else None,
        "content": None,
        "metadata": {"target_audience": "Gestores", "industry": "Marketing"},
    })
    if with_content:
        content = EbookContent.model_validate({
            "introduction": "<p>Intro</p>",
            "chapters": [{"chapterNumber": c.number, "title": c.title, "content": "<p>...</p>"} for c in description.chapters],
            "conclusion": "<p>Fim</p>",
            "metadata": {"totalChapters": 10, "totalPages": 50},
        })
        ebook = await ebook_repo.update(ebook.id, {"content": content.model_dump()})
    job = await job_repo.create_job(f"job-{step}-{ebook.id}", ebook.id, agency_id, step)
    return ebook, job

async def test_description_stage(repos, tmp_path):
    ebook, job = await seed(repos, "description")
    pipeline = build_pipeline(repos, tmp_path, ScriptedLLM())

    result = await pipeline.run("description", job.id, str(ebook.id), {"title": "Título ajustado"})
    assert result == {"ebookId": str(ebook.id), "step": "description", "chapters": 10}

    ebook_repo, job_repo = repos
    stored = await ebook_repo.get_by_id(ebook.id)
    assert stored.status == "DESCRIPTION_GENERATED"
    assert len(stored.description.chapters) == 10
    assert stored.description.estimated_read_time == "3"

    finished = await job_repo.get_by_id(job.id)
    assert finished.progress == 100
    assert finished.finished_on is not None
    assert finished.failed_reason is None

async def test_invalid_outline_marks_error(repos, tmp_path):
    ebook, job = await seed(repos, "description")
    pipeline = build_pipeline(repos, tmp_path, ScriptedLLM(outline_chapters=7))

    with pytest.raises(EbookGenerationError):
        await pipeline.run("description", job.id, str(ebook.id))

    ebook_repo, job_repo = repos
    stored = await ebook_repo.get_by_id(ebook.id)
    assert stored.status == "ERROR"
    assert stored.description is None
    failed = await job_repo.get_by_id(job.id)
    assert failed.failed_reason == "Invalid outline returned by the AI"

async def test_content_stage(repos, tmp_path):
    ebook, job = await seed(repos, "content", status="DESCRIPTION_APPROVED", with_description=True)
    llm = ScriptedLLM()
    pipeline = build_pipeline(repos, tmp_path, llm)

    result = await pipeline.run("content", job.id, str(ebook.id))
    assert result["chapters"] == 10
    assert llm.chapters_requested == list(range(1, 11))

    ebook_repo, job_repo = repos
    stored = await ebook_repo.get_by_id(ebook.id)
    assert stored.status == "CONTENT_READY"
    assert stored.content.introduction == "<p>Texto de apoio</p>"
    assert [c.chapter_number for c in stored.content.chapters] == list(range(1, 11))
    assert stored.content.chapters[2].title == "Capítulo 3"
    assert stored.content.metadata.total_chapters == 10
    assert (await job_repo.get_by_id(job.id)).progress == 100

async def test_content_failure_keeps_description(repos, tmp_path):
    ebook, job = await seed(repos, "content", status="DESCRIPTION_APPROVED", with_description=True)
    pipeline = build_pipeline(repos, tmp_path, ScriptedLLM(fail_on_chapter=3))

    with pytest.raises(LLMError):
        await pipeline.run("content", job.id, str(ebook.id))

    ebook_repo, job_repo = repos
    stored = await ebook_repo.get_by_id(ebook.id)
    assert stored.status == "ERROR"
    assert stored.description is not None
    assert stored.content is None

    failed = await job_repo.get_by_id(job.id)
    assert failed.failed_reason == "Request to OpenAI API timed out."
    # Dois capítulos prontos antes da falha: 10 + 80 * 2/10
    assert failed.progress == 26

async def test_pdf_stage(repos, tmp_path):
    ebook, job = await seed(repos, "pdf", status="CONTENT_READY", with_description=True, with_content=True)
    renderer = FakeRenderer()
    pipeline = build_pipeline(repos, tmp_path, ScriptedLLM(), renderer)

    result = await pipeline.run("pdf", job.id, str(ebook.id), {"template": "modern"})
    expected_url = f"/uploads/ebooks/ebook-{ebook.id}-1700000000000.pdf"
    assert result["pdfUrl"] == expected_url

    ebook_repo, _ = repos
    stored = await ebook_repo.get_by_id(ebook.id)
    assert stored.status == "COMPLETED"
    assert stored.pdf_url == expected_url
    assert (tmp_path / "ebooks" / f"ebook-{ebook.id}-1700000000000.pdf").read_bytes() == b"%PDF-1.4 fake"
    assert "Tráfego Pago Descomplicado" in renderer.rendered[0]

async def test_pdf_without_content_fails(repos, tmp_path):
    ebook, job = await seed(repos, "pdf", status="CONTENT_READY", with_description=True)
    pipeline = build_pipeline(repos, tmp_path, ScriptedLLM())

    with pytest.raises(Exception):
        await pipeline.run("pdf", job.id, str(ebook.id))

    ebook_repo, _ = repos
    assert (await ebook_repo.get_by_id(ebook.id)).status == "ERROR"

async def test_stale_status_fails_only_the_job(repos, tmp_path):
    ebook, job = await seed(repos, "description", status="COMPLETED", with_description=True, with_content=True)
    pipeline = build_pipeline(repos, tmp_path, ScriptedLLM())

    with pytest.raises(StaleStatusError):
        await pipeline.run("description", job.id, str(ebook.id))

    ebook_repo, job_repo = repos
    stored = await ebook_repo.get_by_id(ebook.id)
    assert stored.status == "COMPLETED"
    assert stored.content is not None
    assert (await job_repo.get_by_id(job.id)).failed_reason is not None

async def test_unknown_stage(repos, tmp_path):
    ebook, job = await seed(repos, "description")
    pipeline = build_pipeline(repos, tmp_path, ScriptedLLM())
    with pytest.raises(ValueError):
        await pipeline.run("translate", job.id, str(ebook.id))

class FailingRenderer:
    async def render(self, html: str) -> bytes:
        raise PdfRenderError("MarkupGo HTTP error 500")

async def test_pdf_render_failure_keeps_description_and_content(repos, tmp_path):
    ebook, job = await seed(repos, "pdf", status="CONTENT_READY", with_description=True, with_content=True)
    pipeline = build_pipeline(repos, tmp_path, ScriptedLLM(), FailingRenderer())

    with pytest.raises(PdfRenderError):
        await pipeline.run("pdf", job.id, str(ebook.id))

    ebook_repo, job_repo = repos
    stored = await ebook_repo.get_by_id(ebook.id)
    assert stored.status == "ERROR"
    assert stored.description == ebook.description
    assert stored.content == ebook.content
    assert stored.pdf_url is None
    assert not (tmp_path / "ebooks").exists()

    failed = await job_repo.get_by_id(job.id)
    assert failed.failed_reason == "MarkupGo HTTP error 500"
    assert failed.finished_on is not None

class RecordingEbookRepository(EbookRepository):
    """Anota cada status gravado com sucesso pelo worker."""

    def __init__(self, db, seen: List[str]):
        super().__init__(db)
        self.seen = seen

    async def transition_status(self, ebook_id, new_status, fields=None, agency_id=None, guard_status=None):
        updated = await super().transition_status(ebook_id, new_status, fields, agency_id=agency_id, guard_status=guard_status)
        if updated is not None and new_status is not None:
            self.seen.append(new_status)
        return updated

async def test_full_run_moves_through_every_status(client, auth_headers, dispatcher, db, tmp_path):
    seen: List[str] = []

    def record(status: str):
        if not seen or seen[-1] != status:
            seen.append(status)

    async def current_status(ebook_id: str) -> str:
        return (await client.get(f"/api/ebook/{ebook_id}", headers=auth_headers)).json()["status"]

    pipeline = build_pipeline((RecordingEbookRepository(db, seen), EbookJobRepository(db)), tmp_path, ScriptedLLM())

    async def run_dispatched():
        call = dispatcher.calls[-1]
        kwargs = call["kwargs"]
        await pipeline.run(kwargs["step"], call["job_id"], kwargs["ebook_id"], kwargs["options"])

    created = await client.post("/api/ebook", json={"title": "Funil de Vendas"}, headers=auth_headers)
    ebook_id = created.json()["id"]
    record(created.json()["status"])

    queued = await client.post("/api/ebook/queue/description", json={"ebookId": ebook_id}, headers=auth_headers)
    assert queued.status_code == 202
    record(await current_status(ebook_id))
    await run_dispatched()

    description = (await client.get(f"/api/ebook/{ebook_id}", headers=auth_headers)).json()["description"]
    queued = await client.post(
        "/api/ebook/queue/content", json={"ebookId": ebook_id, "approvedDescription": description}, headers=auth_headers
    )
    assert queued.status_code == 202, queued.text
    record(await current_status(ebook_id))
    await run_dispatched()

    queued = await client.post("/api/ebook/queue/pdf", json={"ebookId": ebook_id}, headers=auth_headers)
    assert queued.status_code == 202, queued.text
    record(await current_status(ebook_id))
    await run_dispatched()

    assert seen == [
        "DRAFT", "DESCRIPTION_GENERATED", "DESCRIPTION_APPROVED", "GENERATING",
        "CONTENT_READY", "GENERATING_PDF", "COMPLETED",
    ]
    final = (await client.get(f"/api/ebook/{ebook_id}", headers=auth_headers)).json()
    assert final["pdfUrl"].startswith("/uploads/ebooks/ebook-")
    assert [c["status"] for c in [
        (await client.get(f"/api/ebook/queue/status/{call['job_id']}", headers=auth_headers)).json()["job"]
        for call in dispatcher.calls
    ]] == ["completed", "completed", "completed"]
