"""
Tests for the exception hierarchy.

WHY: Handlers turn these exceptions into the API error envelope; status
codes and filtering of sensitive context are part of the API contract.
"""

import pytest

from crm_finance.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InsufficientPermissionsError,
    InvalidStateTransitionError,
    InvoiceHasApprovedPaymentsError,
    InvoiceNotFoundError,
    InvoiceNumberExhaustedError,
    PaymentGatewayInUseError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    TokenExpiredError,
    ValidationError,
)


class TestStatusCodes:
    @pytest.mark.parametrize(
        "exc_class, expected",
        [
            (ValidationError, 400),
            (InvalidStateTransitionError, 400),
            (AuthenticationError, 401),
            (TokenExpiredError, 401),
            (AuthorizationError, 403),
            (InsufficientPermissionsError, 403),
            (ResourceNotFoundError, 404),
            (InvoiceNotFoundError, 404),
            (ConflictError, 409),
            (ResourceAlreadyExistsError, 409),
            (InvoiceHasApprovedPaymentsError, 409),
            (PaymentGatewayInUseError, 409),
            (InvoiceNumberExhaustedError, 503),
            (AppException, 500),
        ],
    )
    def test_default_status_code(self, exc_class, expected):
        assert exc_class().status_code == expected

    def test_status_code_override(self):
        exc = ValidationError(message="Nope", status_code=422)
        assert exc.status_code == 422

    def test_subclasses_share_base(self):
        assert issubclass(InvoiceNotFoundError, ResourceNotFoundError)
        assert issubclass(InvoiceHasApprovedPaymentsError, ConflictError)
        assert issubclass(TokenExpiredError, AuthenticationError)


class TestToDict:
    def test_envelope_shape(self):
        exc = InvoiceNotFoundError(invoice_id=7)
        data = exc.to_dict()

        assert data == {
            "success": False,
            "error": "InvoiceNotFoundError",
            "message": "Invoice not found",
            "status_code": 404,
            "details": {"invoice_id": 7},
        }

    def test_sensitive_context_is_filtered(self):
        exc = AuthenticationError(message="Bad token", token="abc", password="x", user_id=3)
        assert exc.to_dict()["details"] == {"user_id": 3}

    def test_empty_context_gives_none_details(self):
        assert ValidationError(message="Bad").to_dict()["details"] is None

    def test_str_is_message(self):
        assert str(ValidationError(message="Amount must be greater than zero")) == (
            "Amount must be greater than zero"
        )
