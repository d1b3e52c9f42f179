"""
Language-model providers.

Each provider exposes ``async generate_content(prompt) -> str`` and turns
its SDK's failures into a retryable ``EnhancementError``.
"""

import logging

import google.generativeai as genai
from openai import AsyncOpenAI

from reviewflow import config
from reviewflow.errors import EnhancementError, ProviderNotConfigured
from reviewflow.models import AppSetting

logger = logging.getLogger(__name__)

DEFAULT_MODEL_SETTING = "default_ai_model"

MODEL_ALIASES = {
    "google": "gemini",
    "gpt": "openai",
}


def normalize_model_id(model_id: str) -> str:
    model_id = (model_id or "").strip().lower()
    return MODEL_ALIASES.get(model_id, model_id)


# ---------------- PROVIDERS ----------------

class GeminiProvider:
    id = "gemini"
    provider = "Google"
    description = "Fast and efficient language model for content generation"

    def __init__(self, api_key: str, model_name: str = config.GEMINI_MODEL, temperature: float = config.AI_TEMPERATURE):
        self.model_name = model_name
        self.name = model_name

        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(
            model_name=model_name,
            generation_config={"temperature": temperature},
        )

        logger.info(f"Gemini provider ready | model={model_name}")

    async def generate_content(self, prompt: str) -> str:
        try:
            response = await self.model.generate_content_async(prompt)
            return response.text
        except Exception as e:
            logger.error(f"Gemini error | model={self.model_name} error={e}")
            raise EnhancementError(f"Gemini request failed: {e}", retryable=True, model=self.id)


class OpenAIProvider:
    id = "openai"
    provider = "OpenAI"
    description = "General purpose chat model with strong writing quality"

    def __init__(self, api_key: str, model_name: str = config.OPENAI_MODEL, temperature: float = config.AI_TEMPERATURE):
        self.model_name = model_name
        self.name = model_name
        self.temperature = temperature
        self.client = AsyncOpenAI(api_key=api_key)

        logger.info(f"OpenAI provider ready | model={model_name}")

    async def generate_content(self, prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=1500,
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"OpenAI error | model={self.model_name} error={e}")
            raise EnhancementError(f"OpenAI request failed: {e}", retryable=True, model=self.id)


# ---------------- REGISTRY ----------------

class ProviderRegistry:

    def __init__(self, providers=None, default_model: str = config.DEFAULT_AI_MODEL):
        self.providers = {}
        self.default_model = normalize_model_id(default_model)
        for provider in providers or []:
            self.register(provider)

    def register(self, provider):
        self.providers[provider.id] = provider

    def get(self, model_id: str):
        provider = self.providers.get(normalize_model_id(model_id))
        if provider is None:
            raise ProviderNotConfigured(model_id)
        return provider

    def is_available(self, model_id: str) -> bool:
        return normalize_model_id(model_id) in self.providers

    def describe(self, default_model: str = None):
        default_model = normalize_model_id(default_model or self.default_model)
        return [
            {
                "id": provider.id,
                "name": provider.name,
                "provider": provider.provider,
                "description": provider.description,
                "is_default": provider.id == default_model,
            }
            for provider in self.providers.values()
        ]


def build_default_registry() -> ProviderRegistry:
    registry = ProviderRegistry(default_model=config.DEFAULT_AI_MODEL)

    if config.GEMINI_API_KEY:
        registry.register(GeminiProvider(config.GEMINI_API_KEY))

    if config.OPENAI_API_KEY:
        registry.register(OpenAIProvider(config.OPENAI_API_KEY))

    if not registry.providers:
        logger.warning("No AI provider configured | set GEMINI_API_KEY or OPENAI_API_KEY")

    return registry


# ---------------- DEFAULT MODEL ----------------

def get_default_model(db, registry: ProviderRegistry) -> str:
    """Admin override from the store, else the configured default."""
    setting = db.query(AppSetting).filter(AppSetting.key == DEFAULT_MODEL_SETTING).first()
    if setting and setting.value:
        return normalize_model_id(setting.value)
    return registry.default_model


def set_default_model(db, registry: ProviderRegistry, model_id: str, updated_by: str = None) -> dict:
    model_id = normalize_model_id(model_id)
    if not registry.is_available(model_id):
        raise ProviderNotConfigured(model_id)

    setting = db.query(AppSetting).filter(AppSetting.key == DEFAULT_MODEL_SETTING).first()
    if setting:
        setting.value = model_id
        setting.updated_by = updated_by
    else:
        db.add(AppSetting(key=DEFAULT_MODEL_SETTING, value=model_id, updated_by=updated_by))

    db.commit()

    logger.info(f"Default AI model set | model={model_id} by={updated_by}")
    return next(m for m in registry.describe(model_id) if m["id"] == model_id)
