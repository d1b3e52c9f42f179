import logging
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from reviewflow.auth import get_current_user
from reviewflow.db import get_db
from reviewflow.errors import NotFoundError, QuotaExceeded
from reviewflow.models import Business, Review
from reviewflow.services.ai_engine import AIEnhancementService
from reviewflow.services.ai_providers import build_default_registry
from reviewflow.services.quota import Feature, check_usage_limit, upgrade_message

logger = logging.getLogger(__name__)


@lru_cache()
def get_registry():
    return build_default_registry()


def get_ai_service(db: Session = Depends(get_db)) -> AIEnhancementService:
    return AIEnhancementService(db, get_registry())


def get_current_business(user=Depends(get_current_user), db: Session = Depends(get_db)):
    business = db.query(Business).filter(Business.id == user["business_id"]).first()
    if not business:
        raise NotFoundError("Business not found", business_id=user["business_id"])
    return business


def get_owned_review(review_id: str, business, db) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()

    # another tenant's review is reported as missing
    if not review or review.business_id != business.id:
        raise NotFoundError("Review not found", review_id=review_id)

    return review


def require_quota(feature: Feature):

    def dependency(business=Depends(get_current_business), db: Session = Depends(get_db)):
        check = check_usage_limit(db, business.id, feature)

        if not check.allowed:
            logger.warning(
                f"Quota exceeded | business={business.id} feature={feature.value} "
                f"used={check.used}/{check.limit}"
            )
            raise QuotaExceeded(
                feature.value,
                used=check.used,
                limit=check.limit,
                plan_name=check.plan_name,
                upgrade_message=upgrade_message(check.plan_id),
            )

        return business

    return dependency
