# agenciaos/modules/copywriter/prompts.py
"""Prompts (system + user) dos geradores de copy. Todos em português."""

from typing import Tuple

from .models import AdCreativeAPI, BlogArticleAPI, BlogIdeasAPI, InstagramCaptionAPI, InstagramHashtagsAPI, WhatsAppBroadcastAPI

Prompt = Tuple[str, str] # (system, user)

AD_PLATFORM_SPECS = {
    "google": "Headlines: 30 caracteres, descrições: 90 caracteres",
    "facebook": "Texto: 125 caracteres, headlines: 40 caracteres",
    "instagram": "Legenda: 2200 caracteres, stories: texto curto",
    "linkedin": "Texto: 150 caracteres, tom profissional",
    "tiktok": "Texto: 100 caracteres, criativo e jovem",
    "youtube": "Títulos: 100 caracteres, descrições: 1000 caracteres",
}

def instagram_caption(data: InstagramCaptionAPI) -> Prompt:
    system = ("Você é um expert em copywriting para Instagram, especializado em criar legendas "
              "que geram alto engajamento e conversão.")
    user = f"""Com base nas seguintes informações:
- Tema do post: {data.theme}
- Objetivo: {data.objective}
- Público-alvo: {data.target_audience}
- Tom de voz: {data.tone_of_voice or 'Profissional e amigável'}
- Tipo de post: {data.post_type or 'Feed'}
- Briefing adicional: {data.briefing or 'N/A'}

Crie legendas otimizadas para Instagram:
1. LEGENDA PRINCIPAL: gancho inicial (primeiras 2 linhas), desenvolvimento, CTA claro e emojis estratégicos.
2. VARIAÇÕES DE CTA (3 opções): engajamento, conversão e compartilhamento.
3. PERGUNTAS PARA COMENTÁRIOS (5 sugestões).
4. VERSÕES POR FORMATO: Feed (até 2200 caracteres), Stories (mais direta) e Reels (mais dinâmica).
5. HASHTAGS SUGERIDAS: 10 hashtags, misturando populares e de nicho.

Formate de forma clara e pronta para copiar."""
    return system, user

def instagram_hashtags(data: InstagramHashtagsAPI) -> Prompt:
    system = "Você é um especialista em estratégias de hashtags para Instagram focado em alcance orgânico."
    user = f"""Com base nas seguintes informações:
- Tema do post: {data.theme}
- Público-alvo: {data.target_audience}
- Tipo de post: {data.post_type or 'Feed'}
- Nicho: {data.niche or 'Geral'}
- Objetivos: {data.objectives or 'Aumentar alcance e engajamento'}

Crie uma estratégia completa de hashtags:
1. HASHTAGS PRINCIPAIS (30): 5 de alta competição, 10 de média, 10 de baixa e 5 de micro nicho.
2. HASHTAGS POR OBJETIVO: alcance, engajamento, conversão e comunidade.
3. TRÊS SETS PARA ROTAÇÃO (A, B e C).
4. HASHTAGS A EVITAR (risco de shadowban) e o motivo.
5. ESTRATÉGIA DE USO: como alternar os sets e onde posicionar.

Formate de forma clara e pronta para copiar."""
    return system, user

def whatsapp_broadcast(data: WhatsAppBroadcastAPI) -> Prompt:
    system = ("Você é um especialista em marketing digital focado em campanhas de WhatsApp, com experiência "
              "em criar mensagens que geram alto engajamento e evitam bloqueios.")
    details = f"\nDETALHES ADICIONAIS: {data.details}" if data.details else ""
    user = f"""Crie mensagens de lista/broadcast profissionais para WhatsApp.

OBJETIVO DA CAMPANHA: {data.objective}
PÚBLICO-ALVO: {data.audience}
TOM DA MENSAGEM: {data.tone or 'Profissional e amigável'}{details}

Gere 3 variações (mensagem principal de até 1024 caracteres, variação alternativa e versão resumida
para reengajamento), cada uma com saudação, benefício principal, CTA claro e fechamento.
Evite spam, linguagem agressiva e mensagens longas demais.

Termine com dicas de envio (melhor horário, segmentação e frequência)."""
    return system, user

def blog_ideas(data: BlogIdeasAPI) -> Prompt:
    system = "Você é um estrategista de conteúdo especializado em blogs otimizados para SEO."
    audience = f"\nPúblico-alvo: {data.target_audience}" if data.target_audience else ""
    user = f"""Gere {data.quantity} ideias de artigos de blog para o nicho: {data.niche}{audience}

As ideias devem ser atrativas, otimizadas para SEO, relevantes para o público e práticas.
Formato: lista numerada com títulos chamativos."""
    return system, user

def blog_article(data: BlogArticleAPI) -> Prompt:
    system = "Você é um redator especializado em artigos de blog informativos e otimizados para SEO."
    extras = []
    if data.keywords:
        extras.append(f"- Palavras-chave: {', '.join(data.keywords)}")
    if data.target_audience:
        extras.append(f"- Público-alvo: {data.target_audience}")
    if data.call_to_action:
        extras.append(f"- Call-to-action: {data.call_to_action}")
    structure = [
        "1. Título SEO otimizado",
        "2. Introdução cativante",
        "3. Desenvolvimento com subtítulos (H2, H3)",
        "4. Conclusão",
        "5. Meta description (150-160 caracteres)",
    ]
    if data.include_images:
        structure.append("6. Sugestões de imagens com alt text")
    user = "\n".join([
        f"Escreva um artigo de blog completo sobre: {data.topic}",
        "",
        "Especificações:",
        f"- Tom: {data.tone}",
        f"- Palavras: aproximadamente {data.word_count}",
        *extras,
        "",
        "Estrutura obrigatória:",
        *structure,
    ])
    return system, user

def ad_creative(data: AdCreativeAPI) -> Prompt:
    system = "Você é um especialista em mídia paga que cria anúncios de alta conversão para cada plataforma."
    key_messages = f"\nMensagens-chave: {', '.join(data.key_messages)}" if data.key_messages else ""
    user = f"""Crie criativos de anúncio otimizados para {data.platform}.

Produto/Serviço: {data.product}
Público-alvo: {data.target_audience}
Tipo de anúncio: {data.ad_type}
Objetivo: {data.objective}
Orçamento: R$ {data.budget:.2f}
Tom: {data.tone}{key_messages}

Especificações da plataforma: {AD_PLATFORM_SPECS[data.platform]}

Crie variações para teste A/B:
1. HEADLINES: 5 variações dentro do limite de caracteres.
2. TEXTOS: 3 versões com proposta de valor e CTA.
3. CALL-TO-ACTIONS: 5 opções específicas para o objetivo.
4. SEGMENTAÇÃO DE PÚBLICO: demografia, interesses e exclusões.
5. CONFIGURAÇÃO DA CAMPANHA: estratégia de lance e distribuição do orçamento.

Inclua estimativas de performance."""
    return system, user
