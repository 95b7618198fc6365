"""
Custom Exceptions for CampusQA
==============================

Every error raised by a handler or service derives from CampusQAError and is
turned into an HTTP response by app.core.error_handlers. Each class carries
its HTTP status and a stable machine-readable code.

Usage:
    from app.core.exceptions import QuestionNotFoundError, JoinRequiredError

    if not question:
        raise QuestionNotFoundError(question_id)
"""

from typing import Optional, Any, Dict


class CampusQAError(Exception):
    """Base exception for all CampusQA errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_SERVER_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            body["details"] = self.details
        return body


class InternalError(CampusQAError):
    """Unexpected store or programming failure"""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, code="INTERNAL_SERVER_ERROR")


# ============================================
# Validation Errors (400)
# ============================================

class ValidationError(CampusQAError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"issues": [{"path": field, "message": message}]} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Authentication Errors (401)
# ============================================

class AuthenticationError(CampusQAError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", code: str = "AUTH_FAILED"):
        super().__init__(message, code=code)


class AuthRequiredError(AuthenticationError):
    """No bearer credential was presented"""

    def __init__(self):
        super().__init__("Authentication required", code="AUTH_REQUIRED")


class TokenInvalidError(AuthenticationError):
    """Bearer token is expired, malformed or badly signed"""

    def __init__(self):
        super().__init__("Session expired. Please log in again.", code="TOKEN_INVALID_OR_EXPIRED")


class InvalidCredentialsError(AuthenticationError):
    """Identifier/password pair rejected"""

    def __init__(self):
        super().__init__("Invalid credentials", code="INVALID_CREDENTIALS")


class RefreshMissingError(AuthenticationError):
    """No refresh cookie on a refresh request"""

    def __init__(self):
        super().__init__("Missing refresh token", code="REFRESH_MISSING")


class RefreshInvalidError(AuthenticationError):
    """Refresh token failed signature, expiry or stored-hash checks"""

    def __init__(self, message: str = "Refresh token not recognized"):
        super().__init__(message, code="REFRESH_INVALID")


# ============================================
# Authorization Errors (403)
# ============================================

class AuthorizationError(CampusQAError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized", code: str = "FORBIDDEN"):
        super().__init__(message, code=code)


class JoinRequiredError(AuthorizationError):
    """Posting, answering and liking need community membership"""

    def __init__(self, action: str = "posting"):
        super().__init__(f"Join the community before {action}", code="JOIN_REQUIRED")


class NotQuestionOwnerError(AuthorizationError):
    """Only the question author may accept an answer"""

    def __init__(self):
        super().__init__("Only the question owner can accept an answer", code="NOT_QUESTION_OWNER")


# ============================================
# Resource Errors (404)
# ============================================

class ResourceNotFoundError(CampusQAError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class QuestionNotFoundError(ResourceNotFoundError):
    def __init__(self, question_id: str):
        super().__init__("Question", question_id)


class AnswerNotFoundError(ResourceNotFoundError):
    def __init__(self, answer_id: str):
        super().__init__("Answer", answer_id)


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


# ============================================
# Conflict Errors (409)
# ============================================

class ConflictError(CampusQAError):
    """State conflict with an existing record"""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, code=code)


class UserExistsError(ConflictError):
    """Email or roll number already registered"""

    def __init__(self):
        super().__init__("Email or Roll Number already registered", code="USER_EXISTS")


class AcceptConflictError(ConflictError):
    """Accepted-answer pointer moved between read and write"""

    def __init__(self, question_id: str):
        super().__init__(
            "The accepted answer changed while processing this request. Please retry.",
            code="ACCEPT_CONFLICT"
        )
        self.details = {"question_id": question_id}
