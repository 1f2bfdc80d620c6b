"""
Standardized API Response Module

Every receptionist tool endpoint answers with the same envelope so the
calling agent can branch on ``status`` without inspecting HTTP codes.

RESPONSE FORMAT:
    Success:
        {
            "data": <response data>,
            "message": "Human-readable summary for the agent",
            "status": "success"
        }

    Error:
        {
            "error": {
                "code": "ERROR_CODE",
                "message": "Human-readable message",
                "details": {...}  # Optional extra context
            },
            "status": "error"
        }
"""

from typing import Any, Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Structured error information."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


# ============================================================================
# COMMON ERROR CODES
# ============================================================================

class ErrorCodes:
    """Standard error codes for API responses."""

    # Not found errors (404)
    BUSINESS_NOT_FOUND = "BUSINESS_NOT_FOUND"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    AVAILABILITY_NOT_FOUND = "AVAILABILITY_NOT_FOUND"

    # Validation errors (422)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    QUOTE_CALCULATION_FAILED = "QUOTE_CALCULATION_FAILED"

    # Conflict errors (409)
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def success_response(data: Any, message: Optional[str] = None) -> dict:
    """
    Create a standardized success response dict.

    Use this for simple responses where Pydantic model isn't needed.
    """
    response = {"data": data, "status": "success"}
    if message:
        response["message"] = message
    return response


def error_response(
    code: str,
    message: str,
    details: Optional[dict] = None,
) -> dict:
    """
    Create a standardized error response dict.

    ``details`` is omitted when empty.
    """
    detail = ErrorDetail(code=code, message=message, details=details or None)
    return {"error": detail.model_dump(exclude_none=True), "status": "error"}
