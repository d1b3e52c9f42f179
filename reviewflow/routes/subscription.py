from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reviewflow.db import get_db
from reviewflow.deps import get_current_business
from reviewflow.errors import NotFoundError
from reviewflow.services.quota import Feature, check_usage_limit, list_plans, usage_summary


router = APIRouter(prefix="/subscription", tags=["Subscription"])


@router.get("/plans")
def plans():
    return {"success": True, "plans": list_plans()}


@router.get("/usage")
def usage(business=Depends(get_current_business), db: Session = Depends(get_db)):
    return {"success": True, **usage_summary(db, business.id)}


@router.get("/check/{feature}")
def check_feature(
    feature: str,
    business=Depends(get_current_business),
    db: Session = Depends(get_db),
):

    try:
        feature = Feature(feature)
    except ValueError:
        raise NotFoundError(f"Unknown feature '{feature}'", feature=feature)

    return {"success": True, **check_usage_limit(db, business.id, feature).to_dict()}
