import asyncio
import json
import logging
import re
import time

from sqlalchemy.exc import SQLAlchemyError

from reviewflow import config
from reviewflow.errors import (
    EmptyModelResponse,
    EnhancementError,
    InvalidContent,
    InvalidStateTransition,
    ReviewFlowError,
)
from reviewflow.models import (
    AIGeneration,
    GenerationStatus,
    ReviewStatus,
    Sentiment,
)
from reviewflow.services.ai_providers import get_default_model
from reviewflow.services.fallback import classify_sentiment, generate_fallback_enhancement
from reviewflow.services.prompts import (
    build_analysis_prompt,
    build_enhancement_prompt,
    build_quick_enhance_prompt,
    resolve_template,
)
from reviewflow.services.quota import Feature, record_usage
from reviewflow.services.review_state import latest_generation, mark_ai_generated, next_status
from reviewflow.services.text_formatting import enhance_with_formatting, improve_text_formatting
from reviewflow.services.text_quality import get_text_improvement_suggestions, validate_review_text

logger = logging.getLogger(__name__)

MANUAL_MODEL_ID = "manual"
FALLBACK_SOURCE = "fallback"

CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```")


def business_context(business) -> dict:
    return {
        "business_id": business.id,
        "business_name": business.name,
        "business_type": business.business_type,
        "industry": business.industry,
        "preferred_model": business.preferred_model,
    }


def neutral_analysis() -> dict:
    return {"sentiment": Sentiment.NEUTRAL.value, "keywords": [], "improvements": []}


def calculate_confidence(original: str, enhanced: str) -> float:
    original_words = len(original.split())
    enhanced_words = len(enhanced.split())

    confidence = 0.7

    # reasonable growth, not padding
    if original_words < enhanced_words <= original_words * 2:
        confidence += 0.1

    if enhanced[:1].isupper() and "." in enhanced:
        confidence += 0.1

    return round(min(confidence, 1.0), 2)


def parse_analysis(raw: str) -> dict:
    data = json.loads(CODE_FENCE.sub("", raw).strip())

    sentiment = str(data.get("sentiment", "neutral")).strip().lower()
    if sentiment not in {s.value for s in Sentiment}:
        sentiment = Sentiment.NEUTRAL.value

    return {
        "sentiment": sentiment,
        "keywords": [str(k) for k in (data.get("keywords") or [])][:5],
        "improvements": [str(i) for i in (data.get("improvements") or [])][:3],
    }


class AIEnhancementService:
    """
    Runs enhancement attempts for stored reviews and the public quick path.

    Every attempt on a stored review, successful or not, is charged to the
    ``ai_enhancement`` ledger exactly once.
    """

    def __init__(self, db, registry, timeout: float = config.AI_TIMEOUT_SECONDS):
        self.db = db
        self.registry = registry
        self.timeout = timeout

    # ---------------- MODEL CALLS ----------------

    def select_model(self, preferred_model: str = None, context: dict = None) -> str:
        context = context or {}
        return (
            preferred_model
            or context.get("preferred_model")
            or get_default_model(self.db, self.registry)
        )

    async def call_model(self, provider, prompt: str) -> str:
        try:
            text = await asyncio.wait_for(provider.generate_content(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Model timeout | model={provider.id} timeout={self.timeout}s")
            raise EnhancementError(
                f"{provider.id} did not respond within {self.timeout:g}s",
                retryable=True,
                model=provider.id,
            )

        if not text or not text.strip():
            raise EmptyModelResponse(provider.id)

        return text.strip()

    async def analyze_review(self, provider, review_text: str) -> dict:
        try:
            raw = await self.call_model(provider, build_analysis_prompt(review_text))
            return parse_analysis(raw)
        except Exception as e:
            logger.warning(f"Analysis fallback | model={provider.id} error={e}")
            return neutral_analysis()

    # ---------------- STORED REVIEWS ----------------

    async def enhance(self, review, context: dict = None, preferred_model: str = None):
        if review.status == ReviewStatus.AI_GENERATED.value:
            latest = latest_generation(self.db, review.id)
            if latest and latest.status == GenerationStatus.PENDING.value:
                return latest

        if review.status != ReviewStatus.PENDING.value:
            raise InvalidStateTransition(review.status, "enhance")

        return await self._attempt(
            review,
            context or {},
            action="mark_ai_generated",
            preferred_model=preferred_model,
        )

    async def regenerate(self, review, context: dict = None, custom_prompt: str = None, preferred_model: str = None):
        next_status(review.status, "regenerate")

        return await self._attempt(
            review,
            context or {},
            action="regenerate",
            preferred_model=preferred_model,
            custom_prompt=custom_prompt,
            supersede=True,
        )

    async def _attempt(self, review, context, action, preferred_model=None, custom_prompt=None, supersede=False):
        review_id = review.id
        business_id = review.business_id
        original = review.feedback or ""
        operation = "REVIEW_REGENERATION" if supersede else "REVIEW_ENHANCEMENT"

        started = time.monotonic()
        model_id = None

        try:
            validation = validate_review_text(original)
            if not validation.is_valid:
                raise InvalidContent(validation.errors, get_text_improvement_suggestions(original))

            model_id = self.select_model(preferred_model, context)
            provider = self.registry.get(model_id)
            model_id = provider.id

            template = resolve_template(self.db, business_id)
            prompt = build_enhancement_prompt(template, context, original, custom_prompt)

            enhanced = await self.call_model(provider, prompt)
            analysis = await self.analyze_review(provider, enhanced)

            previous = latest_generation(self.db, review_id)

            generation = AIGeneration(
                review_id=review_id,
                business_id=business_id,
                attempt=(previous.attempt + 1) if previous else 1,
                original_text=original,
                enhanced_text=enhanced,
                confidence=calculate_confidence(original, enhanced),
                sentiment=analysis["sentiment"],
                keywords=analysis["keywords"],
                improvements=analysis["improvements"],
                status=GenerationStatus.PENDING.value,
                model_id=model_id,
            )

            if supersede and previous and previous.status != GenerationStatus.REGENERATED.value:
                previous.status = GenerationStatus.REGENERATED.value

            mark_ai_generated(review, enhanced, action)

            self.db.add(generation)
            self.db.commit()
            self.db.refresh(generation)

        except (ReviewFlowError, SQLAlchemyError) as e:
            self.db.rollback()
            self._charge(business_id, review_id, operation, model_id, started, success=False, error=str(e))
            logger.error(f"Enhancement failed | review={review_id} model={model_id} error={e}")
            raise

        self._charge(business_id, review_id, operation, model_id, started, success=True)
        logger.info(
            f"Enhancement done | review={review_id} generation={generation.id} "
            f"attempt={generation.attempt} model={model_id} confidence={generation.confidence}"
        )
        return generation

    def _charge(self, business_id, review_id, operation, model_id, started, success, error=None):
        latency_ms = int((time.monotonic() - started) * 1000)
        metadata = {"operation": operation, "model": model_id, "review_id": review_id}
        if error:
            metadata["error"] = error[:500]

        record_usage(
            self.db,
            business_id,
            Feature.AI_ENHANCEMENT,
            success=success,
            latency_ms=latency_ms,
            metadata=metadata,
        )

    def attach_manual_generation(self, review, text: str, by: str = None):
        """Owner-written text stored as a generation so it can be approved."""
        previous = latest_generation(self.db, review.id)

        action = "regenerate" if review.status == ReviewStatus.AI_GENERATED.value else "mark_ai_generated"
        mark_ai_generated(review, text, action)

        if previous and previous.status == GenerationStatus.PENDING.value:
            previous.status = GenerationStatus.REGENERATED.value

        original = review.feedback or ""
        generation = AIGeneration(
            review_id=review.id,
            business_id=review.business_id,
            attempt=(previous.attempt + 1) if previous else 1,
            original_text=original,
            enhanced_text=text,
            confidence=calculate_confidence(original, text) if original else 1.0,
            sentiment=classify_sentiment(text).value,
            keywords=[],
            improvements=[],
            status=GenerationStatus.PENDING.value,
            model_id=MANUAL_MODEL_ID,
        )

        self.db.add(generation)
        self.db.commit()
        self.db.refresh(generation)

        logger.info(f"Manual generation attached | review={review.id} by={by}")
        return generation

    # ---------------- PUBLIC QUICK PATH ----------------

    async def quick_enhance(
        self,
        text: str,
        context: dict = None,
        style: str = "default",
        tone: str = "friendly",
        seed=None,
        preferred_model: str = None,
    ) -> dict:
        context = context or {}

        # short auto-generated snippets skip the gate
        if len(text.strip()) >= 10:
            validation = validate_review_text(text)
            if not validation.is_valid:
                raise InvalidContent(validation.errors, get_text_improvement_suggestions(text))

        improved = improve_text_formatting(text)

        try:
            provider = self.registry.get(self.select_model(preferred_model, context))
            prompt = build_quick_enhance_prompt(improved, context, style, tone, seed)
            enhanced = enhance_with_formatting(improved, await self.call_model(provider, prompt))
            source = provider.id
        except Exception as e:
            logger.warning(f"Quick enhance fallback | error={e}")
            enhanced = generate_fallback_enhancement(improved, context, seed)
            source = FALLBACK_SOURCE

        return {"original_text": improved, "enhanced_text": enhanced, "source": source}
