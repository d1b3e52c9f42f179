import logging

from reviewflow.models import PromptTemplate

logger = logging.getLogger(__name__)

REVIEW_ENHANCEMENT = "REVIEW_ENHANCEMENT"
DEFAULT_TEMPLATE_ID = "default-review-enhancement"

PLACEHOLDERS = ("businessName", "businessType", "industry", "originalText")


DEFAULT_ENHANCEMENT_PROMPT = """You are an expert content writer helping businesses improve customer reviews.
Your task is to enhance the following customer feedback while keeping it authentic and keeping its key message.

Guidelines:
- Keep the original sentiment and meaning intact
- Improve grammar, clarity and flow
- Make it more detailed and helpful for other customers
- Keep the customer's own voice and tone
- Keep it genuine and believable

Business Context:
- Business Name: {{businessName}}
- Business Type: {{businessType}}
- Industry: {{industry}}

Original Review: "{{originalText}}"

Return only the enhanced review text, preserving the customer's original intent and sentiment:"""


ANALYSIS_PROMPT = """Analyze the following review and provide:
1. Sentiment (positive/negative/neutral)
2. Key themes/keywords (max 5)
3. Areas for improvement suggestions (max 3)

Review: "{review}"

Respond in JSON format:
{{
  "sentiment": "positive|negative|neutral",
  "keywords": ["keyword1", "keyword2"],
  "improvements": ["improvement1", "improvement2"]
}}"""


REWRITE_STYLES = {"rewrite", "creative_rewrite", "professional_rewrite"}
QUICK_STYLES = {"default", "detailed", "concise", "creative"} | REWRITE_STYLES


def fill_template(template: str, values: dict) -> str:
    # plain substitution, no escaping
    filled = template
    for name in PLACEHOLDERS:
        filled = filled.replace("{{" + name + "}}", str(values.get(name, "")))
    return filled


def context_values(context: dict, original_text: str) -> dict:
    return {
        "businessName": context.get("business_name") or "the business",
        "businessType": context.get("business_type") or "service provider",
        "industry": context.get("industry") or "various services",
        "originalText": original_text,
    }


def resolve_template(db, business_id: str = None) -> str:
    """
    Prompt text for review enhancement.

    Business override first, then the stored global default, then the
    built-in prompt.
    """
    if business_id:
        override = (
            db.query(PromptTemplate)
            .filter(
                PromptTemplate.business_id == business_id,
                PromptTemplate.category == REVIEW_ENHANCEMENT,
                PromptTemplate.is_active.is_(True),
            )
            .order_by(PromptTemplate.created_at.desc())
            .first()
        )
        if override:
            return override.prompt_text

    default = (
        db.query(PromptTemplate)
        .filter(
            PromptTemplate.business_id.is_(None),
            PromptTemplate.category == REVIEW_ENHANCEMENT,
            PromptTemplate.is_default.is_(True),
            PromptTemplate.is_active.is_(True),
        )
        .first()
    )
    if default:
        return default.prompt_text

    return DEFAULT_ENHANCEMENT_PROMPT


def build_enhancement_prompt(template: str, context: dict, original_text: str, custom_prompt: str = None) -> str:
    prompt = fill_template(template, context_values(context, original_text))

    if custom_prompt and custom_prompt.strip():
        prompt += f"\n\nAdditional instructions:\n{custom_prompt.strip()}"

    return prompt


def build_analysis_prompt(review_text: str) -> str:
    return ANALYSIS_PROMPT.format(review=review_text)


def build_quick_enhance_prompt(text: str, context: dict, style: str = "default", tone: str = "friendly", seed=None) -> str:
    values = context_values(context, text)

    if style in REWRITE_STYLES:
        opening = "You are an expert content writer who rewrites customer feedback into authentic, unique reviews."
        task = "Rewrite the original content into a fresh review that sounds authentically human:"
    else:
        opening = "You are an expert content writer who turns short customer notes into authentic reviews."
        task = f"Expand this into a {style} review that represents the customer's genuine experience:"

    lines = [opening, "", f"- Style: {style} | Tone: {tone}"]
    if seed is not None:
        lines.append(f"- Variation seed: {seed}")

    lines += [
        "- Write like a real person sharing their own experience",
        "- Use everyday conversational language with natural contractions",
        "- Keep the customer's sentiment; do not invent complaints or praise",
        "",
        "Business Details:",
        f"- Business Name: {values['businessName']}",
        f"- Business Type: {values['businessType']}",
        "",
        f'Original Content: "{text}"',
        "",
        task,
    ]
    return "\n".join(lines)


def ensure_default_templates(db):
    existing = db.query(PromptTemplate).filter(PromptTemplate.id == DEFAULT_TEMPLATE_ID).first()
    if existing:
        return existing

    template = PromptTemplate(
        id=DEFAULT_TEMPLATE_ID,
        business_id=None,
        name="Default Review Enhancement",
        category=REVIEW_ENHANCEMENT,
        prompt_text=DEFAULT_ENHANCEMENT_PROMPT,
        is_default=True,
        is_active=True,
    )
    db.add(template)
    db.commit()

    logger.info("Default prompt template created")
    return template
