# agenciaos/services/llm_client.py

import json
import httpx
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Dict, Any, Optional
from loguru import logger
from pydantic import BaseModel, Field

from agenciaos.core.config import settings

OpenAIMessage = Dict[str, str] # {"role": ..., "content": ...}

class LLMError(Exception):
    """Falha ao obter uma completion utilizável do provedor."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

class LLMUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

class LLMResponse(BaseModel):
    content: str
    model: str
    finish_reason: Optional[str] = None
    usage: LLMUsage = Field(default_factory=LLMUsage)

class OpenAIClient:
    provider_name = "OpenAI"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.api_url = api_url or settings.OPENAI_API_URL
        self.timeout = timeout or settings.OPENAI_TIMEOUT_SECONDS
        self.transport = transport # injetável nos testes (httpx.MockTransport)
        if not self.api_key:
            logger.warning("OpenAI API key not configured. OpenAI features disabled.")

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    async def chat_completion(
        self,
        messages: List[OpenAIMessage],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 1500,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Chama a API Chat Completion da OpenAI. Levanta LLMError em qualquer falha."""
        if not self.api_key:
            raise LLMError("OpenAI client not initialized (missing API key).")

        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        log = logger.bind(service="LLMClient", provider=self.provider_name, model=model)
        log.info(f"Sending request to OpenAI Chat Completion (json_mode={json_mode})...")
        if messages: log.debug(f"User Prompt Start: '{messages[-1].get('content', '')[:80]}...'")

        request_time = datetime.now(timezone.utc)
        try:
            # Cliente por chamada: o worker roda cada estágio em um event loop novo
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, headers=self.headers, json=payload)
            duration = (datetime.now(timezone.utc) - request_time).total_seconds()
            log.debug(f"OpenAI Response Status: {response.status_code}, Duration: {duration:.3f}s")
            response.raise_for_status()
            response_data = response.json()
        except httpx.HTTPStatusError as http_err:
            error_body_text = http_err.response.text[:500]
            log.error(f"HTTP Error {http_err.response.status_code} from OpenAI: {error_body_text}")
            raise LLMError(f"HTTP error {http_err.response.status_code} from OpenAI", http_err.response.status_code) from http_err
        except httpx.TimeoutException as e:
            log.error(f"Timeout error connecting to OpenAI API after {self.timeout}s.")
            raise LLMError("Request to OpenAI API timed out.") from e
        except httpx.RequestError as req_err:
            log.error(f"Network/Request error calling OpenAI: {req_err}")
            raise LLMError(f"Network/Request error calling OpenAI: {req_err}") from req_err
        except ValueError as e: # corpo não-JSON
            log.error(f"Invalid JSON body from OpenAI: {e}")
            raise LLMError("OpenAI returned an invalid response body.") from e

        choices = response_data.get("choices") or []
        content = (choices[0].get("message") or {}).get("content") if choices else None
        if not content:
            log.warning("OpenAI response OK but missing 'choices' content.")
            raise LLMError("OpenAI returned no content.")

        llm_response = LLMResponse(
            content=content,
            model=response_data.get("model", model),
            finish_reason=choices[0].get("finish_reason"),
            usage=LLMUsage.model_validate(response_data.get("usage") or {}),
        )
        log.info(f"OpenAI request successful. Finish Reason: {llm_response.finish_reason} Tokens: {llm_response.usage.total_tokens}")
        return llm_response

    async def chat_completion_json(self, messages: List[OpenAIMessage], model: str, **kwargs) -> Dict[str, Any]:
        """Completion em JSON mode, já decodificada."""
        response = await self.chat_completion(messages, model, json_mode=True, **kwargs)
        try:
            data = json.loads(response.content)
        except json.JSONDecodeError as e:
            logger.bind(service="LLMClient").error(f"OpenAI JSON mode returned invalid JSON: {response.content[:200]}")
            raise LLMError("OpenAI returned invalid JSON.") from e
        if not isinstance(data, dict):
            raise LLMError("OpenAI returned JSON that is not an object.")
        return data

@lru_cache()
def get_llm_client_instance() -> OpenAIClient:
    return OpenAIClient()

async def get_llm_client() -> OpenAIClient:
    """FastAPI dependency."""
    return get_llm_client_instance()
