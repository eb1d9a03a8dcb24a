# agenciaos/services/pdf_renderer.py

import httpx
from typing import Optional
from loguru import logger

from agenciaos.core.config import settings

class PdfRenderError(Exception):
    pass

class MarkupGoPdfRenderer:
    """HTML -> PDF pela API do MarkupGo (endpoint /pdf/buffer devolve os bytes)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.MARKUPGO_API_KEY
        self.url = url or settings.MARKUPGO_PDF_URL
        self.timeout = timeout or settings.MARKUPGO_TIMEOUT_SECONDS
        self.transport = transport

    async def render(self, html: str) -> bytes:
        if not self.api_key:
            raise PdfRenderError("MarkupGo API key not configured.")

        payload = {
            "source": {"type": "html", "data": html},
            "options": {
                "format": "A4",
                "printBackground": True,
                "margin": {"top": "0.75in", "right": "0.75in", "bottom": "0.75in", "left": "0.75in"},
            },
        }
        log = logger.bind(service="PdfRenderer", provider="MarkupGo")
        log.info(f"Rendering PDF ({len(html)} chars of HTML)...")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.url,
                    headers={"x-api-key": self.api_key, "content-type": "application/json"},
                    json=payload,
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as http_err:
            log.error(f"HTTP Error {http_err.response.status_code} from MarkupGo: {http_err.response.text[:500]}")
            raise PdfRenderError(f"HTTP error {http_err.response.status_code} from MarkupGo") from http_err
        except httpx.TimeoutException as e:
            log.error(f"Timeout rendering PDF after {self.timeout}s.")
            raise PdfRenderError("Request to MarkupGo timed out.") from e
        except httpx.RequestError as req_err:
            log.error(f"Network/Request error calling MarkupGo: {req_err}")
            raise PdfRenderError(f"Network/Request error calling MarkupGo: {req_err}") from req_err

        if not response.content:
            raise PdfRenderError("MarkupGo returned an empty PDF.")
        log.success(f"PDF rendered ({len(response.content)} bytes).")
        return response.content
