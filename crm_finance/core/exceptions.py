"""
Custom exception hierarchy for structured error handling.

Every error raised by the service and DAO layers derives from AppException,
which carries an HTTP status code, a human-readable message and a context
dict. The exception handlers in crm_finance.core.exception_handlers turn these into
the JSON response envelope.

Finance taxonomy:
- ValidationError (400): malformed or missing input
- ResourceNotFoundError (404): id not found within the tenant
- ConflictError (409): duplicate invoice number, deletion blocked by payments
- InvalidStateTransitionError (400): e.g. approving a payment that is not pending
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "success": False,
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when the bearer token is missing, invalid or expired.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication failed"


class AuthorizationError(AppException):
    """
    Raised when the caller lacks the permission for an action, or a client
    tries to reach a record it does not own.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to perform this action"


class TokenExpiredError(AuthenticationError):
    """Raised when the JWT has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when the JWT is malformed, has a bad signature or misses claims."""

    default_message = "Token is invalid"


class InsufficientPermissionsError(AuthorizationError):
    """
    Raised when the caller's role does not grant the required permission.

    HTTP Status: 403 Forbidden
    """

    default_message = "Insufficient permissions"


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    Examples: empty line item list, non-positive amount, blank transaction id,
    due date before issue date.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist within the caller's tenant.

    Records owned by another organization are reported exactly like missing
    ones, so ids from other tenants cannot be probed.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class InvoiceNotFoundError(ResourceNotFoundError):
    default_message = "Invoice not found"


class PaymentNotFoundError(ResourceNotFoundError):
    default_message = "Payment not found"


class PaymentGatewayNotFoundError(ResourceNotFoundError):
    default_message = "Payment gateway not found or inactive"


class ClientNotFoundError(ResourceNotFoundError):
    default_message = "Client not found"


class ProjectNotFoundError(ResourceNotFoundError):
    default_message = "Project not found"


class ConflictError(AppException):
    """
    Raised when a request conflicts with the current state of stored data.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Request conflicts with existing data"


class ResourceAlreadyExistsError(ConflictError):
    """
    Raised when attempting to create a resource that already exists
    (e.g. a caller-supplied invoice number already used by the tenant).

    HTTP Status: 409 Conflict
    """

    default_message = "Resource already exists"


class InvoiceHasApprovedPaymentsError(ConflictError):
    """
    Raised when deleting or cancelling an invoice that already received
    approved payments.

    HTTP Status: 409 Conflict
    """

    default_message = "Invoice has approved payments and cannot be removed"


class PaymentGatewayInUseError(ConflictError):
    default_message = "Cannot delete payment gateway with existing payments"


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class BusinessRuleViolation(AppException):
    """
    Raised when a business rule is violated.

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    default_message = "Business rule violation"


class InvalidStateTransitionError(BusinessRuleViolation):
    """
    Raised when an invalid state transition is attempted.

    Examples: approving a payment that is not pending, paying a cancelled
    invoice, editing line items of a paid invoice.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Invalid state transition"


class InvoiceNumberExhaustedError(AppException):
    """
    Raised when no free invoice number could be allocated within the retry
    budget (sustained concurrent inserts for the same tenant).

    HTTP Status: 503 Service Unavailable
    """

    status_code = 503
    default_message = "Could not allocate an invoice number, please retry"


class AuditLogImmutableError(AppException):
    """
    Raised when attempting to update or delete an audit log entry.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "Audit logs are immutable"
