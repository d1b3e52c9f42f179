from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, StrictInt, validator

from reviewflow.models import ReviewStatus
from reviewflow.services.prompts import QUICK_STYLES


class CamelModel(BaseModel):
    # request bodies arrive camelCase; snake_case is accepted too
    class Config:
        populate_by_name = True
        protected_namespaces = ()


# ---------------- REVIEWS ----------------

class ReviewCreate(CamelModel):
    id: Optional[str] = None
    customer_id: str = Field(alias="customerId")
    business_id: Optional[str] = Field(default=None, alias="businessId")
    rating: StrictInt
    feedback: str = ""
    form_data: dict = Field(default_factory=dict, alias="formData")


class StatusUpdate(CamelModel):
    status: ReviewStatus
    generated_review: Optional[str] = Field(default=None, alias="generatedReview")
    note: Optional[str] = None

    @validator("generated_review")
    def strip_generated(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None


# ---------------- AI ----------------

class EnhanceReviewRequest(CamelModel):
    review_id: str = Field(alias="reviewId")
    preferred_model: Optional[str] = Field(default=None, alias="preferredModel")


class RejectGenerationRequest(CamelModel):
    rejection_note: Optional[str] = Field(default=None, alias="rejectionNote")


class RegenerateRequest(CamelModel):
    custom_prompt: Optional[str] = Field(default=None, alias="customPrompt")
    preferred_model: Optional[str] = Field(default=None, alias="preferredModel")


class BusinessContextIn(CamelModel):
    business_name: Optional[str] = Field(default=None, alias="businessName")
    business_type: Optional[str] = Field(default=None, alias="businessType")
    industry: Optional[str] = None
    unique_seed: Optional[Union[int, str]] = Field(default=None, alias="uniqueSeed")


class EnhanceTextRequest(CamelModel):
    original_text: str = Field(alias="originalText")
    business_context: BusinessContextIn = Field(default_factory=BusinessContextIn, alias="businessContext")
    style: str = "default"
    tone: str = "friendly"
    seed: Optional[Union[int, str]] = None
    preferred_model: Optional[str] = Field(default=None, alias="preferredModel")

    @validator("original_text")
    def validate_text(cls, v):
        v = v.strip()
        if len(v) < 5:
            raise ValueError("Text must be at least 5 characters long")
        return v

    @validator("style")
    def validate_style(cls, v):
        if v not in QUICK_STYLES:
            raise ValueError(f"Invalid style. Choose from: {sorted(QUICK_STYLES)}")
        return v


class DefaultModelRequest(CamelModel):
    model_id: str = Field(alias="modelId")


# ---------------- RESPONSES ----------------

class ReviewOut(BaseModel):
    id: str
    business_id: str
    customer_id: str
    rating: int
    feedback: str
    generated_review: Optional[str] = None
    status: str
    form_data: dict = {}
    moderation_note: Optional[str] = None
    moderated_at: Optional[datetime] = None
    moderated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GenerationOut(BaseModel):
    id: str
    review_id: str
    business_id: str
    attempt: int
    original_text: str
    enhanced_text: str
    confidence: float
    sentiment: str
    keywords: List[str] = []
    improvements: List[str] = []
    status: str
    model_id: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_note: Optional[str] = None
    generated_at: datetime

    class Config:
        from_attributes = True
        protected_namespaces = ()
