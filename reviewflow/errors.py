"""
Error taxonomy for the review pipeline.

Every error carries the HTTP status it maps to; the handlers registered in
``reviewflow.main`` render them as ``{"success": false, ...}`` JSON.
"""


class ReviewFlowError(Exception):
    status_code = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {
            "success": False,
            "error": type(self).__name__,
            "message": self.message,
            **self.details,
        }


# ---------------- VALIDATION ----------------

class ValidationError(ReviewFlowError):
    status_code = 400


class InvalidRating(ValidationError):

    def __init__(self, rating):
        super().__init__(
            "Rating must be an integer between 1 and 5",
            field="rating",
            value=rating,
        )


class MissingGeneration(ValidationError):

    def __init__(self, review_id: str):
        super().__init__(
            "No AI generation found for this review",
            review_id=review_id,
        )


class DuplicateReview(ReviewFlowError):
    status_code = 409

    def __init__(self, review_id: str):
        super().__init__("Review already exists", review_id=review_id)


class InvalidContent(ReviewFlowError):
    status_code = 400

    def __init__(self, errors, suggestions=None):
        super().__init__(
            "Invalid review content",
            errors=list(errors),
            suggestions=list(suggestions or []),
        )
        self.errors = list(errors)


# ---------------- STATE ----------------

class InvalidStateTransition(ReviewFlowError):
    status_code = 409

    def __init__(self, current_state: str, attempted_action: str, **details):
        super().__init__(
            f"Cannot {attempted_action} a review in state {current_state}",
            current_state=current_state,
            attempted_action=attempted_action,
            **details,
        )
        self.current_state = current_state
        self.attempted_action = attempted_action


class NotFoundError(ReviewFlowError):
    status_code = 404


# ---------------- AI ----------------

class EnhancementError(ReviewFlowError):
    status_code = 500

    def __init__(self, message: str, retryable: bool = False, **details):
        super().__init__(message, retryable=retryable, **details)
        self.retryable = retryable


class EmptyModelResponse(EnhancementError):

    def __init__(self, model_id: str):
        super().__init__(f"Empty response from {model_id}", retryable=True, model=model_id)


class ProviderNotConfigured(EnhancementError):

    def __init__(self, model_id: str):
        super().__init__(f"Model '{model_id}' is not available or configured", model=model_id)


# ---------------- QUOTA ----------------

class QuotaExceeded(ReviewFlowError):
    status_code = 403

    def __init__(self, feature: str, used: int, limit, plan_name: str, upgrade_message: str = ""):
        super().__init__(f"Usage limit reached for {feature}")
        self.feature = feature
        self.used = used
        self.limit = limit
        self.plan_name = plan_name
        self.upgrade_message = upgrade_message

    def to_dict(self):
        return {
            "success": False,
            "error": type(self).__name__,
            "message": self.message,
            "details": {
                "used": self.used,
                "limit": self.limit,
                "currentPlan": self.plan_name,
                "upgradeMessage": self.upgrade_message,
            },
            "upgradeRequired": True,
        }
