# agenciaos/modules/ebooks/pipeline.py

import time
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from .generator import EbookGenerator
from .models import EbookInDB
from .pdf_template import PdfOptions, render_ebook_html
from .repository import EbookJobRepository, EbookRepository

class StageError(Exception):
    """Falha de um estágio: o ebook vai para ERROR."""

class StaleStatusError(Exception):
    """O status mudou por fora enquanto o estágio rodava; o ebook não é tocado."""

class EbookPipeline:
    """
    Executa um estágio (description / content / pdf) para um job.

    Cada estágio escreve o status por compare-and-set. Uma exceção marca o ebook
    como ERROR (descrição e conteúdo ficam como estavam) e o job como falho; a
    exceção é StaleStatusError, que só falha o job.
    Não há retry nem encadeamento entre estágios.
    """

    def __init__(
        self,
        ebook_repo: EbookRepository,
        job_repo: EbookJobRepository,
        generator: EbookGenerator,
        renderer,
        storage,
        clock: Callable[[], float] = time.time,
    ):
        self.ebook_repo = ebook_repo
        self.job_repo = job_repo
        self.generator = generator
        self.renderer = renderer
        self.storage = storage
        self.clock = clock
        self._stages: Dict[str, Callable[[str, EbookInDB, Dict[str, Any]], Awaitable[Dict[str, Any]]]] = {
            "description": self._run_description,
            "content": self._run_content,
            "pdf": self._run_pdf,
        }

    async def run(self, step: str, job_id: str, ebook_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        log = logger.bind(service="EbookPipeline", job_id=job_id, ebook_id=ebook_id, step=step)
        if step not in self._stages:
            raise ValueError(f"Unknown ebook stage: {step}")

        await self.job_repo.mark_active(job_id)
        log.info("Stage started.")
        try:
            ebook = await self.ebook_repo.get_by_id(ebook_id)
            if ebook is None:
                raise StageError(f"Ebook {ebook_id} not found")
            result = await self._stages[step](job_id, ebook, options or {})
        except StaleStatusError as e:
            log.warning(f"Stage aborted, status changed concurrently: {e}")
            await self.job_repo.mark_failed(job_id, str(e))
            raise
        except Exception as e:
            log.exception(f"Stage failed: {e}")
            await self.ebook_repo.mark_error(ebook_id)
            await self.job_repo.mark_failed(job_id, str(e) or e.__class__.__name__)
            raise

        await self.job_repo.mark_completed(job_id, result)
        log.success("Stage completed.")
        return result

    async def _advance(self, ebook: EbookInDB, new_status: str, fields: Optional[Dict[str, Any]] = None) -> EbookInDB:
        updated = await self.ebook_repo.transition_status(ebook.id, new_status, fields)
        if updated is None:
            raise StaleStatusError(f"Cannot move ebook {ebook.id} to {new_status}")
        return updated

    async def _run_description(self, job_id: str, ebook: EbookInDB, options: Dict[str, Any]) -> Dict[str, Any]:
        title = options.get("title") or ebook.title
        description = await self.generator.generate_description(
            title,
            target_audience=ebook.metadata.target_audience,
            industry=ebook.metadata.industry,
        )
        await self._advance(ebook, "DESCRIPTION_GENERATED", {"description": description.model_dump()})
        return {"ebookId": str(ebook.id), "step": "description", "chapters": len(description.chapters)}

    async def _run_content(self, job_id: str, ebook: EbookInDB, options: Dict[str, Any]) -> Dict[str, Any]:
        if ebook.description is None:
            raise StageError("Ebook has no approved description")
        ebook = await self._advance(ebook, "GENERATING")

        async def on_progress(done: int, total: int):
            await self.job_repo.set_progress(job_id, 10 + int(80 * done / max(total, 1)))

        content = await self.generator.generate_content(ebook.title, ebook.description, on_progress=on_progress)
        await self._advance(ebook, "CONTENT_READY", {"content": content.model_dump()})
        return {"ebookId": str(ebook.id), "step": "content", "chapters": len(content.chapters)}

    async def _run_pdf(self, job_id: str, ebook: EbookInDB, options: Dict[str, Any]) -> Dict[str, Any]:
        if ebook.description is None or ebook.content is None:
            raise StageError("Ebook needs description and content before rendering the PDF")
        ebook = await self._advance(ebook, "GENERATING_PDF")

        pdf_options = PdfOptions.model_validate({k: v for k, v in options.items() if k in PdfOptions.model_fields})
        html = render_ebook_html(ebook.title, ebook.description, ebook.content, pdf_options)
        await self.job_repo.set_progress(job_id, 30)
        pdf_bytes = await self.renderer.render(html)
        await self.job_repo.set_progress(job_id, 80)

        filename = f"ebook-{ebook.id}-{int(self.clock() * 1000)}.pdf"
        pdf_url = await self.storage.save("ebooks", filename, pdf_bytes)
        await self._advance(ebook, "COMPLETED", {"pdf_url": pdf_url})
        return {"ebookId": str(ebook.id), "step": "pdf", "pdfUrl": pdf_url}
