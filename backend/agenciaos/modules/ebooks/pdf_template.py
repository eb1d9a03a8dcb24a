# agenciaos/modules/ebooks/pdf_template.py

from datetime import datetime, timezone
from typing import Optional

from jinja2 import Environment
from pydantic import BaseModel

from .models import EbookContent, EbookDescription, PDF_FONTS, PDF_TEMPLATES

DEFAULT_PRIMARY_COLOR = "#2563eb"

FONT_IMPORTS = {
    "inter": "https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700&display=swap",
    "roboto": "https://fonts.googleapis.com/css2?family=Roboto:wght@300;400;500;700&display=swap",
    "open-sans": "https://fonts.googleapis.com/css2?family=Open+Sans:wght@300;400;600;700&display=swap",
}
FONT_FAMILIES = {"inter": "Inter", "roboto": "Roboto", "open-sans": "Open Sans"}

# Numeração do sumário: capa, sumário e "sobre" antes da introdução
INTRODUCTION_PAGE = 3
FIRST_CHAPTER_PAGE = 4
PAGES_PER_CHAPTER = 5

class PdfOptions(BaseModel):
    template: PDF_TEMPLATES = "professional"
    primary_color: str = DEFAULT_PRIMARY_COLOR
    font: PDF_FONTS = "inter"

def darken_color(hex_color: str, percent: int) -> str:
    """Escurece um #RRGGBB em `percent`% (por canal, com saturação em 0..255)."""
    value = int(hex_color.lstrip("#"), 16)
    amount = round(2.55 * percent)
    channels = [(value >> shift) & 0xFF for shift in (16, 8, 0)]
    return "#" + "".join(f"{min(255, max(0, c - amount)):02x}" for c in channels)

def chapter_page(index: int) -> int:
    return FIRST_CHAPTER_PAGE + index * PAGES_PER_CHAPTER

def cover_summary(text: str, limit: int = 200) -> str:
    return f"{text[:limit]}..."

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_env.globals.update(chapter_page=chapter_page)
_env.filters["cover_summary"] = cover_summary

EBOOK_TEMPLATE = _env.from_string(r"""<!DOCTYPE html>
<html lang="pt-BR">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }}</title>
  <style>
    @import url("{{ font_import | safe }}");
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body { font-family: '{{ font_family }}', -apple-system, BlinkMacSystemFont, sans-serif; line-height: 1.6; color: #1a1a1a; font-size: 14px; }
    .cover-page, .toc-page, .about-page, .chapter-page, .back-cover {
      page-break-before: always; min-height: 100vh; padding: 40px; display: flex; flex-direction: column;
    }
{% if template == "modern" %}
    .cover-page { background: {{ primary_color }}; color: white; justify-content: flex-end; align-items: flex-start; text-align: left; }
    .cover-title { font-size: 4rem; font-weight: 800; margin-bottom: 1.5rem; line-height: 1.1; letter-spacing: -0.02em; }
    .chapter-title, .section-title { font-size: 2.75rem; font-weight: 800; color: {{ primary_color }}; margin-bottom: 2rem; line-height: 1.1; }
    .key-points { margin-top: 3rem; padding: 1.5rem; background: {{ primary_color }}10; border-radius: 12px; }
{% else %}
    .cover-page { background: linear-gradient(135deg, {{ primary_color }} 0%, {{ primary_dark }} 100%); color: white; justify-content: center; align-items: center; text-align: center; }
    .cover-title { font-size: 3.5rem; font-weight: 700; margin-bottom: 2rem; text-shadow: 0 2px 4px rgba(0,0,0,0.3); line-height: 1.2; }
    .chapter-title, .section-title { font-size: 2.5rem; font-weight: 600; color: #1f2937; margin-bottom: 2rem; line-height: 1.2; }
    .key-points { margin-top: 3rem; padding: 1.5rem; background: #f8fafc; border-left: 4px solid {{ primary_color }}; border-radius: 0 8px 8px 0; }
{% endif %}
    .cover-subtitle { font-size: 1.3rem; font-weight: 300; opacity: 0.9; max-width: 600px; margin-bottom: 4rem; }
    .cover-footer { position: absolute; bottom: 40px; font-size: 0.9rem; opacity: 0.7; }
    .toc-content { margin-top: 2rem; }
    .toc-item { display: flex; justify-content: space-between; padding: 0.75rem 0; border-bottom: 1px dotted #d1d5db; }
    .toc-title { font-weight: 500; }
    .toc-page-number { font-weight: 600; color: {{ primary_color }}; }
    .about-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 2rem; margin-top: 2rem; }
    .about-item h3 { color: {{ primary_color }}; margin-bottom: 1rem; }
    .about-item ul { list-style: none; padding-left: 0; }
    .about-item li { padding: 0.25rem 0 0.25rem 1rem; position: relative; }
    .about-item li:before { content: "▶"; color: {{ primary_color }}; position: absolute; left: 0; }
    .chapter-header { margin-bottom: 3rem; }
    .chapter-number { display: block; color: {{ primary_color }}; font-size: 0.9rem; font-weight: 600; text-transform: uppercase; letter-spacing: 0.05em; margin-bottom: 0.5rem; }
    .chapter-content { flex: 1; }
    .chapter-content h2 { font-size: 1.5rem; color: {{ primary_color }}; margin: 2rem 0 1rem 0; }
    .chapter-content h3 { font-size: 1.2rem; color: #374151; margin: 1.5rem 0 0.75rem 0; }
    .chapter-content p { margin-bottom: 1.2rem; text-align: justify; }
    .chapter-content ul, .chapter-content ol { margin: 1rem 0; padding-left: 2rem; }
    .chapter-content li { margin-bottom: 0.5rem; }
    .key-points h3 { color: {{ primary_color }}; margin-bottom: 1rem; }
    .back-cover { background: linear-gradient(135deg, #f8fafc 0%, #e2e8f0 100%); justify-content: center; align-items: center; text-align: center; }
    .back-cover-content h3 { font-size: 2rem; color: {{ primary_color }}; margin-bottom: 1rem; }
    .back-cover-content p { color: #64748b; margin-bottom: 1rem; }
    .stats { display: flex; justify-content: center; gap: 3rem; margin-top: 3rem; }
    .stat { text-align: center; }
    .stat .number { display: block; font-size: 2rem; font-weight: 700; color: {{ primary_color }}; }
    .stat .label { font-size: 0.9rem; color: #64748b; text-transform: uppercase; letter-spacing: 0.05em; }
    strong { font-weight: 600; color: #1f2937; }
    @media print { body { -webkit-print-color-adjust: exact; color-adjust: exact; } }
  </style>
</head>
<body>
  <div class="cover-page">
    <div class="cover-content">
      <h1 class="cover-title">{{ title }}</h1>
      <p class="cover-subtitle">{{ description.description | cover_summary }}</p>
      <div class="cover-footer">
        <p>Gerado por AgênciaOS</p>
        <p>{{ year }}</p>
      </div>
    </div>
  </div>

  <div class="toc-page">
    <h2 class="section-title">Sumário</h2>
    <div class="toc-content">
      <div class="toc-item"><span class="toc-title">Introdução</span><span class="toc-page-number">{{ introduction_page }}</span></div>
{% for chapter in content.chapters %}
      <div class="toc-item"><span class="toc-title">Capítulo {{ chapter.chapter_number }}: {{ chapter.title }}</span><span class="toc-page-number">{{ chapter_page(loop.index0) }}</span></div>
{% endfor %}
      <div class="toc-item"><span class="toc-title">Conclusão</span><span class="toc-page-number">{{ chapter_page(content.chapters | length) }}</span></div>
    </div>
  </div>

  <div class="about-page">
    <h2 class="section-title">Sobre Este Ebook</h2>
    <div class="about-grid">
      <div class="about-item">
        <h3>Público-alvo</h3>
        <p>{{ description.target_audience }}</p>
      </div>
      <div class="about-item">
        <h3>Objetivos</h3>
        <ul>{% for objective in description.objectives %}<li>{{ objective }}</li>{% endfor %}</ul>
      </div>
      <div class="about-item">
        <h3>Benefícios</h3>
        <ul>{% for benefit in description.benefits %}<li>{{ benefit }}</li>{% endfor %}</ul>
      </div>
      <div class="about-item">
        <h3>Informações</h3>
        <ul>
          <li><strong>Dificuldade:</strong> {{ description.difficulty }}</li>
          <li><strong>Páginas:</strong> {{ description.total_pages }}</li>
          <li><strong>Tempo de leitura:</strong> {{ description.estimated_read_time }}</li>
          <li><strong>Capítulos:</strong> {{ description.chapters | length }}</li>
        </ul>
      </div>
    </div>
  </div>

  <div class="chapter-page">
    <h2 class="chapter-title">Introdução</h2>
    <div class="chapter-content">{{ content.introduction | safe }}</div>
  </div>

{% for chapter in content.chapters %}
  <div class="chapter-page">
    <div class="chapter-header">
      <span class="chapter-number">Capítulo {{ chapter.chapter_number }}</span>
      <h2 class="chapter-title">{{ chapter.title }}</h2>
    </div>
    <div class="chapter-content">{{ chapter.content | safe }}</div>
{% if chapter.key_points %}
    <div class="key-points">
      <h3>Pontos-chave deste capítulo:</h3>
      <ul>{% for point in chapter.key_points %}<li>{{ point }}</li>{% endfor %}</ul>
    </div>
{% endif %}
  </div>
{% endfor %}

  <div class="chapter-page">
    <h2 class="chapter-title">Conclusão</h2>
    <div class="chapter-content">{{ content.conclusion | safe }}</div>
  </div>

  <div class="back-cover">
    <div class="back-cover-content">
      <h3>Obrigado por ler!</h3>
      <p>Este ebook foi gerado com inteligência artificial através do AgênciaOS.</p>
      <p>Para mais conteúdos como este, visite nosso sistema.</p>
      <div class="stats">
        <div class="stat"><span class="number">{{ description.chapters | length }}</span><span class="label">Capítulos</span></div>
        <div class="stat"><span class="number">{{ description.total_pages }}</span><span class="label">Páginas</span></div>
        <div class="stat"><span class="number">{{ description.estimated_read_time }}</span><span class="label">Leitura</span></div>
      </div>
    </div>
  </div>
</body>
</html>
""")

def render_ebook_html(
    title: str,
    description: EbookDescription,
    content: EbookContent,
    options: Optional[PdfOptions] = None,
    now: Optional[datetime] = None,
) -> str:
    """HTML completo do ebook (capa, sumário, sobre, capítulos, contracapa)."""
    options = options or PdfOptions()
    return EBOOK_TEMPLATE.render(
        title=title,
        description=description,
        content=content,
        template=options.template,
        primary_color=options.primary_color,
        primary_dark=darken_color(options.primary_color, 20),
        font_import=FONT_IMPORTS[options.font],
        font_family=FONT_FAMILIES[options.font],
        introduction_page=INTRODUCTION_PAGE,
        year=(now or datetime.now(timezone.utc)).year,
    )
