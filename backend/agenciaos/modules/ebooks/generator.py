# agenciaos/modules/ebooks/generator.py

import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger
from pydantic import ValidationError

from agenciaos.core.config import settings
from agenciaos.services.llm_client import OpenAIClient
from .models import ChapterContent, ChapterOutline, ContentMetadata, EbookContent, EbookDescription

EXPECTED_CHAPTERS = 10
DEFAULT_TARGET_AUDIENCE = "Profissionais e empreendedores"
DEFAULT_INDUSTRY = "Geral"

ProgressCallback = Callable[[int, int], Awaitable[None]] # (capítulos prontos, total)

class EbookGenerationError(Exception):
    pass

DESCRIPTION_PROMPT = """
Monte a descrição estruturada de um ebook com o título "{title}".

Contexto:
- Público-alvo: {target_audience}
- Setor: {industry}

Responda SOMENTE com um objeto JSON válido, exatamente neste formato:

{{
  "description": "Visão geral do ebook em 2 a 3 parágrafos: tema e valor para o leitor",
  "targetAudience": "Quem deve ler este ebook",
  "objectives": ["Objetivo de aprendizado 1", "Objetivo de aprendizado 2", "Objetivo de aprendizado 3"],
  "benefits": ["Benefício 1", "Benefício 2", "Benefício 3"],
  "chapters": [
    {{"number": 1, "title": "Título do capítulo", "description": "O que o capítulo cobre", "pages": 5}}
  ],
  "totalPages": 50,
  "estimatedReadTime": "2-3 horas",
  "difficulty": "Iniciante"
}}

Regras:
- Exatamente {chapters} capítulos, numerados de 1 a {chapters}
- 5 páginas por capítulo, 50 páginas no total
- "difficulty" deve ser "Iniciante", "Intermediário" ou "Avançado"
- Conteúdo profissional, prático e aplicável
"""

CHAPTER_PROMPT = """
Escreva o texto completo do Capítulo {number}: "{chapter_title}".

SOBRE O EBOOK:
- Título: {title}
- Descrição: {description}
- Público-alvo: {target_audience}
- Capítulo {number} de {total}

O QUE O CAPÍTULO COBRE: {chapter_description}

REQUISITOS:
- Cerca de 5 páginas (aproximadamente 2500 palavras)
- Linguagem profissional e acessível, com exemplos práticos
- Organize com subtítulos (h2, h3) em HTML semântico
- Traga dicas e insights, e feche com um resumo dos pontos principais

Responda SOMENTE com JSON neste formato:
{{
  "chapterNumber": {number},
  "title": "{chapter_title}",
  "content": "Texto completo do capítulo em HTML",
  "wordCount": 2500,
  "keyPoints": ["Ponto-chave 1", "Ponto-chave 2", "Ponto-chave 3"]
}}
"""

INTRODUCTION_PROMPT = """
Escreva a introdução do ebook "{title}".

CONTEXTO:
- Descrição: {description}
- Público-alvo: {target_audience}
- Objetivos: {objectives}

A introdução deve despertar o interesse do leitor, deixar claro o que ele vai
aprender e por que vale a leitura. Entre 500 e 700 palavras, tom profissional
e acessível, formatada em HTML semântico.

Responda SOMENTE com o HTML da introdução.
"""

CONCLUSION_PROMPT = """
Escreva a conclusão do ebook "{title}".

PONTOS PRINCIPAIS ABORDADOS:
{key_points}

A conclusão deve recapitular os aprendizados, motivar o leitor a colocá-los em
prática e sugerir próximos passos. Entre 500 e 700 palavras, tom inspirador,
formatada em HTML semântico.

Responda SOMENTE com o HTML da conclusão.
"""

class EbookGenerator:
    """Chamadas ao LLM dos estágios de descrição e conteúdo."""

    def __init__(
        self,
        llm: OpenAIClient,
        model: Optional[str] = None,
        chapter_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.llm = llm
        self.model = model or settings.OPENAI_EBOOK_MODEL
        self.chapter_delay = settings.EBOOK_CHAPTER_DELAY_SECONDS if chapter_delay is None else chapter_delay
        self.sleep = sleep

    async def generate_description(
        self,
        title: str,
        target_audience: Optional[str] = None,
        industry: Optional[str] = None,
    ) -> EbookDescription:
        log = logger.bind(service="EbookGenerator", step="description")
        prompt = DESCRIPTION_PROMPT.format(
            title=title,
            target_audience=target_audience or DEFAULT_TARGET_AUDIENCE,
            industry=industry or DEFAULT_INDUSTRY,
            chapters=EXPECTED_CHAPTERS,
        )
        data = await self.llm.chat_completion_json(
            [{"role": "user", "content": prompt}], self.model, temperature=0.7, max_tokens=4000
        )
        chapters = data.get("chapters")
        if not data.get("description") or not isinstance(chapters, list) or len(chapters) != EXPECTED_CHAPTERS:
            log.error(f"Invalid outline from LLM: chapters={len(chapters) if isinstance(chapters, list) else 'missing'}")
            raise EbookGenerationError("Invalid outline returned by the AI")
        try:
            return EbookDescription.model_validate(data)
        except ValidationError as e:
            log.error(f"Outline failed validation: {e}")
            raise EbookGenerationError("Invalid outline returned by the AI") from e

    async def generate_introduction(self, title: str, description: EbookDescription) -> str:
        prompt = INTRODUCTION_PROMPT.format(
            title=title,
            description=description.description,
            target_audience=description.target_audience,
            objectives=", ".join(description.objectives),
        )
        response = await self.llm.chat_completion(
            [{"role": "user", "content": prompt}], self.model, temperature=0.7, max_tokens=1500
        )
        return response.content

    async def generate_chapter(
        self,
        title: str,
        description: EbookDescription,
        chapter: ChapterOutline,
    ) -> ChapterContent:
        prompt = CHAPTER_PROMPT.format(
            number=chapter.number,
            chapter_title=chapter.title,
            title=title,
            description=description.description,
            target_audience=description.target_audience,
            total=len(description.chapters),
            chapter_description=chapter.description,
        )
        data = await self.llm.chat_completion_json(
            [{"role": "user", "content": prompt}], self.model, temperature=0.7, max_tokens=4000
        )
        data.setdefault("chapterNumber", chapter.number)
        data.setdefault("title", chapter.title)
        try:
            return ChapterContent.model_validate(data)
        except ValidationError as e:
            raise EbookGenerationError(f"Invalid content returned for chapter {chapter.number}") from e

    async def generate_conclusion(self, title: str, chapters: List[ChapterContent]) -> str:
        key_points = [point for chapter in chapters for point in chapter.key_points][:10]
        prompt = CONCLUSION_PROMPT.format(
            title=title,
            key_points="\n".join(f"{i}. {point}" for i, point in enumerate(key_points, start=1)),
        )
        response = await self.llm.chat_completion(
            [{"role": "user", "content": prompt}], self.model, temperature=0.7, max_tokens=1500
        )
        return response.content

    async def generate_content(
        self,
        title: str,
        description: EbookDescription,
        on_progress: Optional[ProgressCallback] = None,
    ) -> EbookContent:
        """Introdução, um capítulo por chamada (com pausa entre eles) e conclusão."""
        log = logger.bind(service="EbookGenerator", step="content")
        introduction = await self.generate_introduction(title, description)

        chapters: List[ChapterContent] = []
        total = len(description.chapters)
        for outline in description.chapters:
            log.info(f"Generating chapter {outline.number}/{total}...")
            chapters.append(await self.generate_chapter(title, description, outline))
            if on_progress is not None:
                await on_progress(len(chapters), total)
            if self.chapter_delay > 0:
                await self.sleep(self.chapter_delay)

        conclusion = await self.generate_conclusion(title, chapters)
        return EbookContent(
            introduction=introduction,
            chapters=chapters,
            conclusion=conclusion,
            metadata=ContentMetadata(total_chapters=len(chapters), total_pages=description.total_pages),
        )
