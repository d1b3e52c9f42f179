import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    Boolean,
    Date,
    DateTime,
    Text,
    ForeignKey,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship


Base = declarative_base()


def utcnow():
    # naive UTC, stored as-is by both PostgreSQL and SQLite
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id():
    return str(uuid.uuid4())


class ReviewStatus(str, Enum):
    PENDING = "PENDING"
    AI_GENERATED = "AI_GENERATED"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"


class GenerationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REGENERATED = "REGENERATED"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Business(Base):
    __tablename__ = "businesses"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    business_type = Column(String, nullable=True)
    industry = Column(String, nullable=True)
    owner_email = Column(String, nullable=True, index=True)

    # Smart filter
    google_review_url = Column(String, nullable=True)
    enable_smart_filter = Column(Boolean, nullable=False, default=True)

    # Billing
    plan = Column(String, nullable=False, default="free")

    # AI
    preferred_model = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    customers = relationship("Customer", back_populates="business", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="business", cascade="all, delete-orphan")
    generations = relationship("AIGeneration", back_populates="business", cascade="all, delete-orphan")
    usage = relationship("SubscriptionUsage", back_populates="business", cascade="all, delete-orphan")
    prompt_templates = relationship("PromptTemplate", back_populates="business", cascade="all, delete-orphan")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=new_id)
    business_id = Column(String, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    business = relationship("Business", back_populates="customers")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String, primary_key=True, default=new_id)
    business_id = Column(String, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=False)

    rating = Column(Integer, nullable=False)
    feedback = Column(Text, nullable=False, default="")
    generated_review = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=ReviewStatus.PENDING.value)
    form_data = Column(JSON, nullable=False, default=dict)

    # Moderation
    moderation_note = Column(Text, nullable=True)
    moderated_at = Column(DateTime, nullable=True)
    moderated_by = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    business = relationship("Business", back_populates="reviews")
    generations = relationship(
        "AIGeneration",
        back_populates="review",
        cascade="all, delete-orphan",
        order_by="AIGeneration.attempt",
    )


class AIGeneration(Base):
    __tablename__ = "ai_generations"

    id = Column(String, primary_key=True, default=new_id)
    review_id = Column(String, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    business_id = Column(String, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    attempt = Column(Integer, nullable=False, default=1)

    original_text = Column(Text, nullable=False, default="")
    enhanced_text = Column(Text, nullable=False)

    # Analysis
    confidence = Column(Float, nullable=False, default=0.0)
    sentiment = Column(String, nullable=False, default=Sentiment.NEUTRAL.value)
    keywords = Column(JSON, nullable=False, default=list)
    improvements = Column(JSON, nullable=False, default=list)

    status = Column(String, nullable=False, default=GenerationStatus.PENDING.value)
    model_id = Column(String, nullable=True)

    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_note = Column(Text, nullable=True)

    generated_at = Column(DateTime, default=utcnow, nullable=False)

    review = relationship("Review", back_populates="generations")
    business = relationship("Business", back_populates="generations")


class SubscriptionUsage(Base):
    __tablename__ = "subscription_usage"
    __table_args__ = (
        UniqueConstraint("business_id", "month", "feature_type", name="uq_usage_business_month_feature"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(Date, nullable=False)
    feature_type = Column(String, nullable=False)

    count = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    failure_count = Column(Integer, nullable=False, default=0)

    # Latency of the attempts, for observability
    total_latency_ms = Column(Integer, nullable=False, default=0)
    last_latency_ms = Column(Integer, nullable=True)

    last_used_at = Column(DateTime, nullable=True)
    last_metadata = Column(JSON, nullable=True)

    business = relationship("Business", back_populates="usage")


class PromptTemplate(Base):
    __tablename__ = "prompt_templates"

    id = Column(String, primary_key=True, default=new_id)
    business_id = Column(String, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, default="REVIEW_ENHANCEMENT")
    prompt_text = Column(Text, nullable=False)

    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    business = relationship("Business", back_populates="prompt_templates")


class AppSetting(Base):
    __tablename__ = "app_settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    updated_by = Column(String, nullable=True)
