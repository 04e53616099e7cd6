"""
Domain errors for the marketplace core
Every error carries a machine code and a Turkish user-facing message.
The API layer maps each class to an HTTP status.
"""

from typing import Optional, Dict, Any


class DomainError(Exception):
    """Base class for all user-facing domain failures"""

    status_code: int = 400
    code: str = "domain_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(DomainError):
    """Bad input (missing reason, empty item list, score out of range)"""
    status_code = 400
    code = "validation_error"


class InvalidStateError(DomainError):
    """Transition attempted from a status that does not allow it"""
    status_code = 400
    code = "invalid_state"


class ConflictError(DomainError):
    """Duplicate rating, already-resolved dispute, second shipment"""
    status_code = 400
    code = "conflict"


class UnsupportedResolutionError(DomainError):
    """Known dispute outcome whose effect has not been defined yet"""
    status_code = 400
    code = "unsupported_resolution"


class AuthenticationError(DomainError):
    """Missing or invalid bearer token"""
    status_code = 401
    code = "unauthenticated"


class AuthorizationError(DomainError):
    """Caller is not allowed to act on this entity"""
    status_code = 403
    code = "forbidden"


class NotFoundError(DomainError):
    """Trade, order, user or rating target does not exist"""
    status_code = 404
    code = "not_found"


class PaymentError(DomainError):
    """Payment gateway refused or failed a refund"""
    status_code = 502
    code = "payment_failed"
