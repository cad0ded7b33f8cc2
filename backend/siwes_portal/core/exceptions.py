"""
Custom Exceptions for the SIWES Portal
======================================

Raise these from endpoints and services instead of building HTTP responses by
hand; the handlers registered in main.py turn them into JSON bodies of the form
``{"error": <message>, "code": <code>}``.

Usage:
    from siwes_portal.core.exceptions import ConflictError

    if existing:
        raise ConflictError("Attendance already marked for this date")
"""

from typing import Optional, Any, Dict, List

from fastapi import status


class SiwesError(Exception):
    """Base exception for all portal errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


# ============================================
# 400
# ============================================

class ValidationFailedError(SiwesError):
    """Input was well-formed JSON but not acceptable"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidFileError(ValidationFailedError):
    """Uploaded file is missing, too large or of the wrong type"""

    def __init__(self, message: str):
        super().__init__(message)
        self.code = "INVALID_FILE"


# ============================================
# 401 / 403
# ============================================

class AuthenticationError(SiwesError):
    """Missing or bad credentials"""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidTokenError(AuthenticationError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


class TokenRevokedError(AuthenticationError):
    """Token was blacklisted by logout or refresh"""

    def __init__(self):
        super().__init__("Token has been revoked")
        self.code = "TOKEN_REVOKED"


class AuthorizationError(SiwesError):
    """Caller is authenticated but may not do this"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied", code: str = "NOT_AUTHORIZED"):
        super().__init__(message, code=code)


class PasswordChangeRequiredError(AuthorizationError):
    def __init__(self):
        super().__init__(
            "You must change your password before continuing.",
            code="PASSWORD_CHANGE_REQUIRED"
        )


# ============================================
# 404
# ============================================

class ResourceNotFoundError(SiwesError):
    """Base class for not found errors"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message, code=code)


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, code="USER_NOT_FOUND")


class StudentNotFoundError(ResourceNotFoundError):
    def __init__(self, message: str = "Student not found"):
        super().__init__(message, code="STUDENT_NOT_FOUND")


# ============================================
# 409
# ============================================

class ConflictError(SiwesError):
    """Request clashes with the current state of a record"""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, code: str = "CONFLICT",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class DuplicateRecordError(ConflictError):
    def __init__(self, message: str):
        super().__init__(message, code="DUPLICATE")


# ============================================
# Helpers for API responses
# ============================================

def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into field/message pairs"""
    formatted = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        formatted.append({
            "field": ".".join(loc) or "request",
            "message": err.get("msg", "Invalid value"),
        })
    return formatted
