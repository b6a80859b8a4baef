"""
Custom Exceptions for Hive Community
====================================

Every failure that reaches a caller is one of these types. The API layer maps
them to HTTP responses via ``HiveError.status_code``; service code raises them
and lets them propagate.

Usage:
    from hivecommunity.core.exceptions import NotFoundError, ValidationError

    record = await store.get("members", member_id)
    if not record:
        raise NotFoundError("Member application", member_id)
"""

from typing import Optional, Any, Dict, List


class HiveError(Exception):
    """Base exception for all Hive Community errors"""

    status_code: int = 500

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
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(HiveError):
    """Credential lookup failed or session is no longer valid"""

    status_code = 401

    def __init__(
        self,
        message: str = "Invalid credentials. Please check your email and password.",
        code: str = "INVALID_CREDENTIALS"
    ):
        super().__init__(message, code=code)


class SessionExpiredError(AuthenticationError):
    """Stored session refers to deactivated or missing credentials"""

    def __init__(self, message: str = "Session expired or credentials deactivated."):
        super().__init__(message, code="SESSION_EXPIRED")


class AuthorizationError(HiveError):
    """Actor not allowed to perform this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class NotFoundError(HiveError):
    """Referenced application, credential, event or opportunity is absent.

    Usually means another actor already moved the record; callers should
    present it as "please retry".
    """

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str, message: Optional[str] = None):
        code_name = resource_type.upper().replace(" ", "_")
        super().__init__(
            message or f"{resource_type} with ID '{resource_id}' not found",
            code=f"{code_name}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# ============================================
# Validation Errors (4xx-type)
# ============================================

class ValidationError(HiveError):
    """Missing or malformed required fields"""

    status_code = 422

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        missing_fields: Optional[List[str]] = None
    ):
        details: Dict[str, Any] = {}
        if errors:
            details["errors"] = list(errors)
        if missing_fields:
            details["missing_fields"] = list(missing_fields)
        super().__init__(message, code="VALIDATION_ERROR", details=details)

    @property
    def errors(self) -> List[str]:
        return self.details.get("errors", [])


class DuplicateApplicationError(HiveError):
    """Member already applied for this volunteer opportunity"""

    status_code = 409

    def __init__(self, opportunity_id: str, member_email: str):
        super().__init__(
            "You have already applied for this volunteer opportunity",
            code="DUPLICATE_APPLICATION",
            details={"opportunity_id": opportunity_id, "member_email": member_email}
        )


# ============================================
# Storage Errors
# ============================================

class ServiceError(HiveError):
    """Storage layer unreachable or rejected the operation"""

    status_code = 503

    def __init__(self, message: str = "Service temporarily unavailable. Please try again later.",
                 operation: Optional[str] = None):
        super().__init__(message, code="SERVICE_ERROR")
        if operation:
            self.details["operation"] = operation

