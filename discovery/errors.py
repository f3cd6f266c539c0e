"""
Error taxonomy shared by the core and the HTTP layer.

Every error carries a stable ``code`` and the HTTP status it maps to;
``main.py`` renders them as ``{"error": {"code", "message", "fields"}}``.
"""

from typing import Optional


class DiscoveryError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None, fields: Optional[dict] = None):
        self.message = message or self.default_message
        self.fields = fields or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.fields:
            body["fields"] = dict(self.fields)
        return body


class ValidationError(DiscoveryError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(DiscoveryError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(DiscoveryError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Not allowed"


class NotFoundError(DiscoveryError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class BusinessNotFound(NotFoundError):
    code = "BUSINESS_NOT_FOUND"
    default_message = "Business not found"


class ReviewNotFound(NotFoundError):
    code = "REVIEW_NOT_FOUND"
    default_message = "Review not found"


class ConflictError(DiscoveryError):
    """Business-rule violations. Never retried automatically."""
    code = "CONFLICT"
    status_code = 409


class DuplicateReview(ConflictError):
    code = "DUPLICATE_REVIEW"
    default_message = "You have already reviewed this business"


class SelfReviewForbidden(ConflictError):
    code = "SELF_REVIEW_FORBIDDEN"
    status_code = 403
    default_message = "Cannot review your own business"


class DuplicateVote(ConflictError):
    code = "DUPLICATE_VOTE"
    default_message = "You have already marked this review as helpful"


class SelfVoteForbidden(ConflictError):
    code = "SELF_VOTE_FORBIDDEN"
    status_code = 403
    default_message = "Cannot vote for your own review"


class BusinessNotAvailable(DiscoveryError):
    code = "BUSINESS_NOT_AVAILABLE"
    status_code = 422
    default_message = "Cannot review unpublished businesses"


class ModerationUnavailable(Exception):
    """Raised by a moderation scanner that cannot reach a verdict.

    ModerationGate turns it into a held (pending) review, so it never reaches
    the submitter.
    """
