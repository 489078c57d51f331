"""
WolfPack — Domain Errors
Typed failures raised by the domain store and mapped to HTTP statuses in main.py.
"""

from typing import Any, Dict, Optional


class WolfPackError(Exception):
    """Base class for every domain failure that maps onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


# ── 400 ───────────────────────────────────────────────────────────────────────

class ValidationFailed(WolfPackError):
    status_code = 400
    default_message = "Validation failed"


class DuplicateUsername(WolfPackError):
    status_code = 400
    default_message = "Username already exists"


# ── 401 ───────────────────────────────────────────────────────────────────────

class AuthenticationError(WolfPackError):
    status_code = 401
    default_message = "Unauthorized"


# ── 403 ───────────────────────────────────────────────────────────────────────

class ForbiddenError(WolfPackError):
    status_code = 403
    default_message = "Forbidden"


class ForbiddenApparelAccess(ForbiddenError):
    default_message = "Apparel belongs to another user"


class ForbiddenRecommendationAccess(ForbiddenError):
    default_message = "Recommendation belongs to another user"


# ── 404 ───────────────────────────────────────────────────────────────────────

class NotFoundError(WolfPackError):
    status_code = 404
    default_message = "Not found"


class UserNotFound(NotFoundError):
    default_message = "User not found"


class ApparelNotFound(NotFoundError):
    default_message = "Apparel not found"


class AchievementNotFound(NotFoundError):
    default_message = "Achievement not found"


class ChallengeNotFound(NotFoundError):
    default_message = "Challenge not found"


class ChallengeNotJoined(NotFoundError):
    default_message = "User has not joined this challenge"


class PreferencesNotFound(NotFoundError):
    default_message = "No workout preferences saved"


class RecommendationNotFound(NotFoundError):
    default_message = "Recommendation not found"


class QRCodeNotRecognized(NotFoundError):
    default_message = "QR code not recognized"


def format_field_errors(errors) -> list[dict]:
    """Flatten pydantic error dicts to {field, message, type}."""
    return [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]
