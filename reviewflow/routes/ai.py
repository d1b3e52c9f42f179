import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from reviewflow.auth import get_current_user, require_admin
from reviewflow.db import get_db
from reviewflow.deps import (
    get_ai_service,
    get_current_business,
    get_owned_review,
    require_quota,
)
from reviewflow.models import AIGeneration, GenerationStatus, Review, ReviewStatus
from reviewflow.schemas import (
    DefaultModelRequest,
    EnhanceReviewRequest,
    EnhanceTextRequest,
    GenerationOut,
    RegenerateRequest,
    RejectGenerationRequest,
)
from reviewflow.services import review_state
from reviewflow.services.ai_engine import business_context
from reviewflow.services.ai_providers import get_default_model, set_default_model
from reviewflow.services.quota import Feature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["AI"])


def serialize(generation) -> dict:
    return GenerationOut.model_validate(generation).model_dump(mode="json")


# ---------------- ENHANCE ----------------

@router.post("/enhance-review")
async def enhance_review(
    payload: EnhanceReviewRequest,
    business=Depends(require_quota(Feature.AI_ENHANCEMENT)),
    db: Session = Depends(get_db),
    ai=Depends(get_ai_service),
):

    review = get_owned_review(payload.review_id, business, db)

    generation = await ai.enhance(
        review,
        business_context(business),
        preferred_model=payload.preferred_model,
    )

    return {"success": True, "generation": serialize(generation)}


@router.post("/regenerate-review/{review_id}")
async def regenerate_review(
    review_id: str,
    payload: Optional[RegenerateRequest] = None,
    business=Depends(require_quota(Feature.AI_ENHANCEMENT)),
    db: Session = Depends(get_db),
    ai=Depends(get_ai_service),
):

    payload = payload or RegenerateRequest()
    review = get_owned_review(review_id, business, db)

    generation = await ai.regenerate(
        review,
        business_context(business),
        custom_prompt=payload.custom_prompt,
        preferred_model=payload.preferred_model,
    )

    return {"success": True, "generation": serialize(generation)}


@router.post("/enhance-text")
async def enhance_text(payload: EnhanceTextRequest, ai=Depends(get_ai_service)):

    ctx = payload.business_context
    context = {
        "business_name": ctx.business_name,
        "business_type": ctx.business_type,
        "industry": ctx.industry,
    }
    seed = payload.seed if payload.seed is not None else ctx.unique_seed

    result = await ai.quick_enhance(
        payload.original_text,
        context,
        style=payload.style,
        tone=payload.tone,
        seed=seed,
        preferred_model=payload.preferred_model,
    )

    return {"success": True, **result}


# ---------------- MODERATION ----------------

@router.post("/approve-review/{review_id}")
def approve_review(
    review_id: str,
    business=Depends(get_current_business),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):

    review = get_owned_review(review_id, business, db)
    generation = review_state.latest_generation(db, review.id)

    generation = review_state.approve(db, review, generation, by=user.get("sub"))

    return {"success": True, "generation": serialize(generation), "review_status": review.status}


@router.post("/reject-review/{review_id}")
def reject_review(
    review_id: str,
    payload: Optional[RejectGenerationRequest] = None,
    business=Depends(get_current_business),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):

    payload = payload or RejectGenerationRequest()
    review = get_owned_review(review_id, business, db)
    generation = review_state.latest_generation(db, review.id)

    generation = review_state.reject_generation(
        db,
        review,
        generation,
        note=payload.rejection_note,
        by=user.get("sub"),
    )

    return {"success": True, "generation": serialize(generation), "review_status": review.status}


@router.get("/reviews")
def moderation_queue(
    status: GenerationStatus = GenerationStatus.PENDING,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    business=Depends(get_current_business),
    db: Session = Depends(get_db),
):

    query = (
        db.query(AIGeneration, Review)
        .join(Review, Review.id == AIGeneration.review_id)
        .filter(
            AIGeneration.business_id == business.id,
            AIGeneration.status == status.value,
        )
    )

    # pending drafts only count while the review still awaits moderation
    if status == GenerationStatus.PENDING:
        query = query.filter(Review.status == ReviewStatus.AI_GENERATED.value)

    total = query.count()
    rows = (
        query.order_by(AIGeneration.generated_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    items = [
        {
            **serialize(generation),
            "review": {
                "rating": review.rating,
                "feedback": review.feedback,
                "status": review.status,
                "created_at": review.created_at.isoformat(),
            },
        }
        for generation, review in rows
    ]

    return {
        "success": True,
        "generations": items,
        "pagination": {"page": page, "limit": limit, "total": total},
    }


# ---------------- MODELS ----------------

@router.get("/models")
def list_models(
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    ai=Depends(get_ai_service),
):

    default_model = get_default_model(db, ai.registry)
    return {
        "success": True,
        "models": ai.registry.describe(default_model),
        "default_model": default_model,
    }


@router.post("/models/default")
def update_default_model(
    payload: DefaultModelRequest,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    ai=Depends(get_ai_service),
):

    model = set_default_model(db, ai.registry, payload.model_id, updated_by=admin.get("sub"))
    return {"success": True, "model": model}


@router.get("/health")
def health(db: Session = Depends(get_db), ai=Depends(get_ai_service)):

    return {
        "success": True,
        "status": "healthy" if ai.registry.providers else "degraded",
        "available_models": sorted(ai.registry.providers),
        "default_model": get_default_model(db, ai.registry),
    }
