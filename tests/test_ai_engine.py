import pytest

from conftest import ENHANCED_TEXT, GOOD_FEEDBACK, FakeProvider, run
from reviewflow.errors import (
    EmptyModelResponse,
    EnhancementError,
    InvalidContent,
    InvalidStateTransition,
    ProviderNotConfigured,
)
from reviewflow.models import (
    AIGeneration,
    AppSetting,
    GenerationStatus,
    PromptTemplate,
    ReviewStatus,
    SubscriptionUsage,
)
from reviewflow.services import review_state
from reviewflow.services.ai_engine import (
    AIEnhancementService,
    business_context,
    calculate_confidence,
    parse_analysis,
)
from reviewflow.services.ai_providers import ProviderRegistry


@pytest.fixture
def review(db, customer):
    return review_state.create_review(db, customer.business_id, customer.id, 5, GOOD_FEEDBACK)


def generations(db, review):
    return (
        db.query(AIGeneration)
        .filter(AIGeneration.review_id == review.id)
        .order_by(AIGeneration.attempt)
        .all()
    )


def ledger(db):
    return db.query(SubscriptionUsage).one_or_none()


def failing_service(db, error=None, **kwargs):
    provider = FakeProvider(error=error or EnhancementError("boom", retryable=True), **kwargs)
    return AIEnhancementService(db, ProviderRegistry([provider], default_model="gemini"), timeout=1)


# ---------------- ENHANCE ----------------

def test_enhance_creates_pending_generation(db, business, review, service):
    generation = run(service.enhance(review, business_context(business)))

    assert generation.status == GenerationStatus.PENDING.value
    assert generation.attempt == 1
    assert generation.enhanced_text == ENHANCED_TEXT
    assert generation.original_text == GOOD_FEEDBACK
    assert generation.model_id == "gemini"
    assert generation.sentiment == "positive"
    assert len(generation.keywords) == 5
    assert len(generation.improvements) == 3

    db.refresh(review)
    assert review.status == ReviewStatus.AI_GENERATED.value
    assert review.generated_review == ENHANCED_TEXT

    row = ledger(db)
    assert row.count == 1
    assert row.success_count == 1
    assert row.last_metadata["operation"] == "REVIEW_ENHANCEMENT"


def test_enhance_prompt_carries_business_context(db, business, review, service, provider):
    run(service.enhance(review, business_context(business)))

    prompt = provider.calls[0]
    assert "Bella Cafe" in prompt
    assert "Restaurant" in prompt
    assert GOOD_FEEDBACK in prompt


def test_enhance_retry_returns_pending_generation(db, business, review, service):
    first = run(service.enhance(review, business_context(business)))
    second = run(service.enhance(review, business_context(business)))

    assert second.id == first.id
    assert len(generations(db, review)) == 1
    assert ledger(db).count == 1


def test_enhance_on_approved_review_is_illegal(db, business, review, service):
    generation = run(service.enhance(review, business_context(business)))
    review_state.approve(db, review, generation, by="owner")

    with pytest.raises(InvalidStateTransition):
        run(service.enhance(review, business_context(business)))

    assert ledger(db).count == 1


def test_gibberish_feedback_is_refused_and_charged(db, business, customer, service):
    review = review_state.create_review(db, business.id, customer.id, 3, "asdfgh jklqwe")

    with pytest.raises(InvalidContent) as exc:
        run(service.enhance(review, business_context(business)))

    assert exc.value.errors
    assert exc.value.details["suggestions"]
    assert review.status == ReviewStatus.PENDING.value
    assert generations(db, review) == []
    assert ledger(db).failure_count == 1


# ---------------- FAILURES ----------------

def test_provider_error_is_charged(db, business, review):
    service = failing_service(db)

    with pytest.raises(EnhancementError) as exc:
        run(service.enhance(review, business_context(business)))

    assert exc.value.retryable is True
    row = ledger(db)
    assert row.count == 1
    assert row.failure_count == 1
    assert row.last_metadata["error"]
    assert review.status == ReviewStatus.PENDING.value


def test_empty_output_is_an_error(db, business, review):
    provider = FakeProvider(text="   ")
    service = AIEnhancementService(db, ProviderRegistry([provider]), timeout=1)

    with pytest.raises(EmptyModelResponse):
        run(service.enhance(review, business_context(business), preferred_model="gemini"))

    assert ledger(db).failure_count == 1


def test_slow_provider_times_out(db, business, review):
    provider = FakeProvider(delay=0.5)
    service = AIEnhancementService(db, ProviderRegistry([provider], default_model="gemini"), timeout=0.05)

    with pytest.raises(EnhancementError) as exc:
        run(service.enhance(review, business_context(business)))

    assert exc.value.retryable is True
    assert ledger(db).failure_count == 1


def test_unknown_model_is_not_configured(db, business, review, service):
    with pytest.raises(ProviderNotConfigured):
        run(service.enhance(review, business_context(business), preferred_model="claude"))

    assert ledger(db).failure_count == 1


def test_unparseable_analysis_falls_back_to_neutral(db, business, review):
    provider = FakeProvider(analysis="Sure! Here is my analysis: it is nice.")
    service = AIEnhancementService(db, ProviderRegistry([provider], default_model="gemini"), timeout=1)

    generation = run(service.enhance(review, business_context(business)))

    assert generation.sentiment == "neutral"
    assert generation.keywords == []
    assert generation.improvements == []
    assert ledger(db).success_count == 1


def test_fenced_analysis_is_parsed():
    raw = '```json\n{"sentiment": "Negative", "keywords": ["wait"], "improvements": []}\n```'

    assert parse_analysis(raw) == {"sentiment": "negative", "keywords": ["wait"], "improvements": []}


# ---------------- REGENERATE ----------------

def test_regeneration_keeps_history(db, business, review, service):
    ctx = business_context(business)
    run(service.enhance(review, ctx))

    second = run(service.regenerate(review, ctx))

    rows = generations(db, review)
    assert len(rows) == 2
    assert [g.status for g in rows] == [GenerationStatus.REGENERATED.value, GenerationStatus.PENDING.value]
    assert second.attempt == 2

    run(service.regenerate(review, ctx))

    rows = generations(db, review)
    assert len(rows) == 3
    assert [g.status for g in rows] == [
        GenerationStatus.REGENERATED.value,
        GenerationStatus.REGENERATED.value,
        GenerationStatus.PENDING.value,
    ]
    assert ledger(db).count == 3


def test_regenerate_after_rejection(db, business, review, service):
    ctx = business_context(business)
    first = run(service.enhance(review, ctx))
    review_state.reject_generation(db, review, first, note="too long")

    run(service.regenerate(review, ctx))

    rows = generations(db, review)
    assert [g.status for g in rows] == [GenerationStatus.REGENERATED.value, GenerationStatus.PENDING.value]
    assert review.status == ReviewStatus.AI_GENERATED.value


def test_regenerate_from_pending_without_history(db, business, review, service):
    generation = run(service.regenerate(review, business_context(business)))

    assert generation.attempt == 1
    assert len(generations(db, review)) == 1


def test_failed_regeneration_marks_nothing(db, business, review, service):
    ctx = business_context(business)
    first = run(service.enhance(review, ctx))

    with pytest.raises(EnhancementError):
        run(failing_service(db).regenerate(review, ctx))

    db.refresh(first)
    assert first.status == GenerationStatus.PENDING.value
    assert len(generations(db, review)) == 1
    assert ledger(db).count == 2
    assert ledger(db).failure_count == 1


def test_regenerate_published_review_is_illegal(db, business, review, service):
    generation = run(service.enhance(review, business_context(business)))
    review_state.approve(db, review, generation, by="owner")
    review_state.publish(db, review)

    with pytest.raises(InvalidStateTransition):
        run(service.regenerate(review, business_context(business)))


def test_custom_prompt_is_appended(db, business, review, service, provider):
    run(service.regenerate(review, business_context(business), custom_prompt="Keep it under 50 words"))

    assert "Additional instructions:\nKeep it under 50 words" in provider.calls[0]


# ---------------- TEMPLATES & MODELS ----------------

def test_business_template_override(db, business, review, service, provider):
    db.add(PromptTemplate(
        business_id=business.id,
        name="Short",
        prompt_text="Rewrite for {{businessName}} ({{industry}}): {{originalText}}",
    ))
    db.commit()

    run(service.enhance(review, business_context(business)))

    assert provider.calls[0] == f"Rewrite for Bella Cafe (Hospitality): {GOOD_FEEDBACK}"


def test_model_selection_order(db, business, review):
    gemini = FakeProvider(id="gemini")
    openai = FakeProvider(id="openai")
    service = AIEnhancementService(db, ProviderRegistry([gemini, openai], default_model="gemini"), timeout=1)

    assert service.select_model() == "gemini"

    db.add(AppSetting(key="default_ai_model", value="openai"))
    db.commit()
    assert service.select_model() == "openai"

    assert service.select_model(context={"preferred_model": "gemini"}) == "gemini"
    assert service.select_model("gpt", {"preferred_model": "gemini"}) == "gpt"

    generation = run(service.enhance(review, business_context(business), preferred_model="gpt"))
    assert generation.model_id == "openai"
    assert gemini.calls == []


def test_confidence_scoring():
    assert calculate_confidence("good food", "Good food and great service.") == 0.8
    assert calculate_confidence("good food nice", "Good food, really nice.") == 0.9
    assert calculate_confidence("good food", "good food") == 0.7


# ---------------- MANUAL & QUICK PATHS ----------------

def test_manual_generation(db, review, service):
    generation = service.attach_manual_generation(review, "The owner's wording.", by="owner")

    assert generation.model_id == "manual"
    assert generation.status == GenerationStatus.PENDING.value
    assert review.status == ReviewStatus.AI_GENERATED.value
    assert ledger(db) is None


def test_quick_enhance_uses_provider(db, service):
    result = run(service.quick_enhance("great food and friendly staff", {"business_name": "Bella Cafe"}))

    assert result["source"] == "gemini"
    assert result["original_text"] == "Great food and friendly staff."
    assert result["enhanced_text"] == ENHANCED_TEXT


def test_quick_enhance_falls_back(db):
    service = failing_service(db)
    ctx = {"business_name": "Bella Cafe"}

    first = run(service.quick_enhance("great food and friendly staff", ctx, seed=42))
    second = run(service.quick_enhance("great food and friendly staff", ctx, seed=42))

    assert first["source"] == "fallback"
    assert first["enhanced_text"] == second["enhanced_text"]
    assert "Great food and friendly staff." in first["enhanced_text"]


def test_quick_enhance_without_any_provider(db):
    service = AIEnhancementService(db, ProviderRegistry([]), timeout=1)

    result = run(service.quick_enhance("the pizza was good", seed=1))

    assert result["source"] == "fallback"


def test_quick_enhance_still_validates_text(db, service):
    with pytest.raises(InvalidContent):
        run(service.quick_enhance("asdfgh jklqwe zxcv"))
