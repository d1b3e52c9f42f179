import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from reviewflow.models import Business, Review, SubscriptionUsage, utcnow

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# Features & limit types
# ─────────────────────────────────────────────
class Feature(str, Enum):
    AI_ENHANCEMENT = "ai_enhancement"
    REVIEWS = "reviews"
    CUSTOM_FORM_FIELDS = "custom_form_fields"
    LOCATIONS = "locations"
    BASIC_ANALYTICS = "basic_analytics"
    ADVANCED_ANALYTICS = "advanced_analytics"
    EMAIL_SUPPORT = "email_support"
    CUSTOM_BRANDING = "custom_branding"
    PRIORITY_SUPPORT = "priority_support"
    API_ACCESS = "api_access"
    WHITE_LABEL = "white_label"


# Features counted per calendar month
METERED_FEATURES = (Feature.AI_ENHANCEMENT, Feature.REVIEWS)


@dataclass(frozen=True)
class Unlimited:
    pass


@dataclass(frozen=True)
class Boolean:
    enabled: bool


@dataclass(frozen=True)
class Numeric:
    limit: int


UNLIMITED = Unlimited()


def _features(ai, reviews, form_fields, locations, **flags):
    features = {
        Feature.AI_ENHANCEMENT: ai,
        Feature.REVIEWS: reviews,
        Feature.CUSTOM_FORM_FIELDS: form_fields,
        Feature.LOCATIONS: locations,
    }
    for name, enabled in flags.items():
        features[Feature(name)] = Boolean(enabled)
    return features


# ─────────────────────────────────────────────
# Plan Config
# ─────────────────────────────────────────────
PLANS = {
    "free": {
        "id": "free",
        "name": "Free",
        "price_usd": 0,
        "features": _features(
            Numeric(5), Numeric(10), Numeric(3), Numeric(1),
            basic_analytics=True,
            email_support=False,
            custom_branding=False,
            advanced_analytics=False,
            priority_support=False,
            api_access=False,
            white_label=False,
        ),
    },
    "starter": {
        "id": "starter",
        "name": "Starter",
        "price_usd": 19,
        "features": _features(
            Numeric(100), Numeric(500), Numeric(10), Numeric(3),
            basic_analytics=True,
            email_support=True,
            custom_branding=False,
            advanced_analytics=False,
            priority_support=False,
            api_access=False,
            white_label=False,
        ),
    },
    "professional": {
        "id": "professional",
        "name": "Professional",
        "price_usd": 49,
        "features": _features(
            Numeric(500), UNLIMITED, UNLIMITED, Numeric(10),
            basic_analytics=True,
            email_support=True,
            custom_branding=True,
            advanced_analytics=True,
            priority_support=True,
            api_access=True,
            white_label=False,
        ),
    },
    "enterprise": {
        "id": "enterprise",
        "name": "Enterprise",
        "price_usd": 199,
        "features": _features(
            UNLIMITED, UNLIMITED, UNLIMITED, UNLIMITED,
            basic_analytics=True,
            email_support=True,
            custom_branding=True,
            advanced_analytics=True,
            priority_support=True,
            api_access=True,
            white_label=True,
        ),
    },
}

PLAN_ORDER = ["free", "starter", "professional", "enterprise"]


@dataclass
class UsageCheck:
    allowed: bool
    used: int
    limit: object
    remaining: object
    plan_id: str
    plan_name: str

    def to_dict(self):
        return {
            "allowed": self.allowed,
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "plan_id": self.plan_id,
            "plan_name": self.plan_name,
        }


# ─────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────
def start_of_month(now: datetime = None) -> datetime:
    now = now or utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def get_plan(plan_id) -> dict:
    return PLANS.get(str(plan_id or "free").lower(), PLANS["free"])


def list_plans():
    return [serialize_plan(PLANS[plan_id]) for plan_id in PLAN_ORDER]


def serialize_limit(limit):
    if isinstance(limit, Unlimited):
        return "unlimited"
    if isinstance(limit, Boolean):
        return limit.enabled
    if isinstance(limit, Numeric):
        return limit.limit
    raise TypeError(f"Unknown limit type: {limit!r}")


def serialize_plan(plan: dict) -> dict:
    return {
        "id": plan["id"],
        "name": plan["name"],
        "price_usd": plan["price_usd"],
        "features": {
            feature.value: serialize_limit(limit)
            for feature, limit in plan["features"].items()
        },
    }


def resolve_plan(db, business_id: str) -> dict:
    """Plan of the business; the free plan when it cannot be determined."""
    try:
        plan_id = (
            db.query(Business.plan)
            .filter(Business.id == business_id)
            .scalar()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Plan lookup failed | business={business_id} error={e}")
        return PLANS["free"]

    return get_plan(plan_id)


def upgrade_message(plan_id: str) -> str:
    if plan_id == "enterprise":
        return ""

    position = PLAN_ORDER.index(plan_id) if plan_id in PLAN_ORDER else 0
    next_plan = PLANS[PLAN_ORDER[position + 1]]
    return f"Upgrade to the {next_plan['name']} plan to continue using this feature."


def count_usage(db, business_id: str, feature: Feature, now: datetime = None) -> int:
    now = now or utcnow()
    month_start = start_of_month(now)

    if feature == Feature.AI_ENHANCEMENT:
        used = (
            db.query(SubscriptionUsage.count)
            .filter(
                SubscriptionUsage.business_id == business_id,
                SubscriptionUsage.month == month_start.date(),
                SubscriptionUsage.feature_type == feature.value,
            )
            .scalar()
        )
        return used or 0

    if feature == Feature.REVIEWS:
        return (
            db.query(func.count(Review.id))
            .filter(
                Review.business_id == business_id,
                Review.created_at >= month_start,
                Review.created_at <= now,
            )
            .scalar()
        ) or 0

    return 0


# ─────────────────────────────────────────────
# Checks
# ─────────────────────────────────────────────
def check_usage_limit(db, business_id: str, feature, now: datetime = None) -> UsageCheck:
    feature = Feature(feature)
    plan = resolve_plan(db, business_id)
    limit = plan["features"][feature]

    if isinstance(limit, Unlimited):
        check = UsageCheck(True, 0, "unlimited", "unlimited", plan["id"], plan["name"])

    elif isinstance(limit, Boolean):
        check = UsageCheck(limit.enabled, 0, limit.enabled, None, plan["id"], plan["name"])

    elif isinstance(limit, Numeric):
        used = count_usage(db, business_id, feature, now)
        check = UsageCheck(
            allowed=used < limit.limit,
            used=used,
            limit=limit.limit,
            remaining=max(0, limit.limit - used),
            plan_id=plan["id"],
            plan_name=plan["name"],
        )

    else:
        raise TypeError(f"Unknown limit type for {feature.value}: {limit!r}")

    logger.info(
        f"Usage check | business={business_id} feature={feature.value} "
        f"used={check.used}/{check.limit} allowed={check.allowed}"
    )
    return check


def usage_summary(db, business_id: str) -> dict:
    plan = resolve_plan(db, business_id)
    usage = {}
    alerts = []

    for feature in METERED_FEATURES:
        check = check_usage_limit(db, business_id, feature)

        if check.limit == "unlimited":
            percent = 0
        else:
            percent = int((check.used / check.limit) * 100) if check.limit > 0 else 100

        usage[feature.value] = {
            "used": check.used,
            "limit": check.limit,
            "remaining": check.remaining,
            "percent": percent,
        }

        label = feature.value.replace("_", " ")
        if not check.allowed:
            alerts.append({
                "type": "error",
                "feature": feature.value,
                "message": f"You've reached your monthly {label} limit. {upgrade_message(plan['id'])}".strip(),
            })
        elif percent >= 90:
            alerts.append({
                "type": "warning",
                "feature": feature.value,
                "message": f"You've used {percent}% of your monthly {label} limit. Upgrade soon to avoid interruption.",
            })
        elif percent >= 75:
            alerts.append({
                "type": "info",
                "feature": feature.value,
                "message": f"You've used {percent}% of your {plan['name']} plan {label} limit this month.",
            })

    return {
        "plan": serialize_plan(plan),
        "period_start": start_of_month().date().isoformat(),
        "usage": usage,
        "alerts": alerts,
    }


# ─────────────────────────────────────────────
# Ledger
# ─────────────────────────────────────────────
def record_usage(
    db,
    business_id: str,
    feature,
    success: bool = True,
    latency_ms: int = 0,
    metadata: dict = None,
):
    """
    Add one attempt to the month's ledger row for ``feature``.

    The increment runs in SQL so concurrent writers do not lose counts.
    Failures are logged and swallowed; usage accounting never breaks the
    operation being accounted for.
    """
    feature = Feature(feature)
    now = utcnow()
    month = start_of_month(now).date()
    latency_ms = int(latency_ms or 0)

    for attempt in range(2):
        try:
            updated = (
                db.query(SubscriptionUsage)
                .filter(
                    SubscriptionUsage.business_id == business_id,
                    SubscriptionUsage.month == month,
                    SubscriptionUsage.feature_type == feature.value,
                )
                .update(
                    {
                        SubscriptionUsage.count: SubscriptionUsage.count + 1,
                        SubscriptionUsage.success_count: SubscriptionUsage.success_count + (1 if success else 0),
                        SubscriptionUsage.failure_count: SubscriptionUsage.failure_count + (0 if success else 1),
                        SubscriptionUsage.total_latency_ms: SubscriptionUsage.total_latency_ms + latency_ms,
                        SubscriptionUsage.last_latency_ms: latency_ms,
                        SubscriptionUsage.last_used_at: now,
                        SubscriptionUsage.last_metadata: metadata,
                    },
                    synchronize_session=False,
                )
            )

            if not updated:
                db.add(SubscriptionUsage(
                    business_id=business_id,
                    month=month,
                    feature_type=feature.value,
                    count=1,
                    success_count=1 if success else 0,
                    failure_count=0 if success else 1,
                    total_latency_ms=latency_ms,
                    last_latency_ms=latency_ms,
                    last_used_at=now,
                    last_metadata=metadata,
                ))

            db.commit()
            logger.info(
                f"Usage recorded | business={business_id} feature={feature.value} "
                f"success={success} latency_ms={latency_ms}"
            )
            return True

        except IntegrityError:
            # another writer inserted the month row first
            db.rollback()
            logger.warning(f"Usage insert race | business={business_id} feature={feature.value} attempt={attempt + 1}")

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Usage record failed | business={business_id} feature={feature.value} error={e}")
            return False

    logger.error(f"Usage record gave up | business={business_id} feature={feature.value}")
    return False
