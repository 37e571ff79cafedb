"""
Unit tests for invoice number allocation.

WHY: Invoice numbers are what clients quote when they pay; they must be
unique per organization and sequential per year, even when two requests
race for the same number.
"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from crm_finance.core.exceptions import (
    InvoiceNumberExhaustedError,
    ResourceAlreadyExistsError,
    ValidationError,
)
from crm_finance.models.base import utcnow
from crm_finance.services.invoice_numbering import InvoiceNumberGenerator, parse_sequence
from crm_finance.services.invoice_service import InvoiceService
from tests.factories import ClientFactory, InvoiceFactory

ITEMS = [{"description": "Consulting", "quantity": 1, "unit_price": "100.00"}]


async def _create(service, org_id, client_id, **kwargs):
    now = utcnow()
    return await service.create_invoice(
        org_id=org_id,
        client_id=client_id,
        items=ITEMS,
        issue_date=now,
        due_date=now + timedelta(days=30),
        **kwargs,
    )


class TestParseSequence:
    @pytest.mark.parametrize(
        "number, expected",
        [
            ("INV-2024-0042", 42),
            ("INV-2024-12345", 12345),
            ("INV-2024-00A1", None),
            ("INV-2023-0001", None),
            ("CUSTOM-7", None),
        ],
    )
    def test_parse(self, number, expected):
        assert parse_sequence(number, "INV-2024-") == expected


class TestSequentialNumbers:
    @pytest.mark.asyncio
    async def test_numbers_increase_per_org(self, db_session, test_org, other_org, test_client_record):
        year = utcnow().year
        other_client = await ClientFactory.create(db_session, org_id=other_org.id)
        service = InvoiceService(db_session)

        first = await _create(service, test_org.id, test_client_record.id)
        second = await _create(service, test_org.id, test_client_record.id)
        elsewhere = await _create(service, other_org.id, other_client.id)

        assert first.invoice_number == f"INV-{year}-0001"
        assert second.invoice_number == f"INV-{year}-0002"
        assert elsewhere.invoice_number == f"INV-{year}-0001"

    @pytest.mark.asyncio
    async def test_next_number_skips_custom_numbers(self, db_session, test_org, test_client_record):
        year = utcnow().year
        await InvoiceFactory.create(db_session, test_org.id, test_client_record.id, invoice_number=f"INV-{year}-0009")
        await InvoiceFactory.create(db_session, test_org.id, test_client_record.id, invoice_number=f"INV-{year}-CUSTOM")

        assert await InvoiceNumberGenerator(db_session).next_number(test_org.id) == f"INV-{year}-0010"

    @pytest.mark.asyncio
    async def test_sequence_grows_past_four_digits(self, db_session, test_org, test_client_record):
        year = utcnow().year
        await InvoiceFactory.create(db_session, test_org.id, test_client_record.id, invoice_number=f"INV-{year}-9999")

        assert await InvoiceNumberGenerator(db_session).next_number(test_org.id) == f"INV-{year}-10000"


class TestRequestedNumbers:
    @pytest.mark.asyncio
    async def test_requested_number_is_used(self, db_session, test_org, test_client_record):
        invoice = await _create(InvoiceService(db_session), test_org.id, test_client_record.id, invoice_number=" ACME-1 ")
        assert invoice.invoice_number == "ACME-1"

    @pytest.mark.asyncio
    async def test_duplicate_requested_number(self, db_session, test_org, test_client_record):
        service = InvoiceService(db_session)
        await _create(service, test_org.id, test_client_record.id, invoice_number="ACME-1")

        with pytest.raises(ResourceAlreadyExistsError):
            await _create(service, test_org.id, test_client_record.id, invoice_number="ACME-1")

    @pytest.mark.asyncio
    async def test_blank_requested_number(self, db_session, test_org, test_client_record):
        with pytest.raises(ValidationError):
            await _create(InvoiceService(db_session), test_org.id, test_client_record.id, invoice_number="   ")


class TestCollisions:
    @pytest.mark.asyncio
    async def test_collision_retries_with_next_number(self, db_session, test_org, test_client_record):
        """
        WHY: Simulates losing a race: the first candidate number was taken
        by another request between read and insert.
        """
        year = utcnow().year
        taken = f"INV-{year}-0001"
        await InvoiceFactory.create(db_session, test_org.id, test_client_record.id, invoice_number=taken)

        service = InvoiceService(db_session)
        service.numbering.next_number = AsyncMock(side_effect=[taken, f"INV-{year}-0002"])

        invoice = await _create(service, test_org.id, test_client_record.id)

        assert invoice.invoice_number == f"INV-{year}-0002"
        assert service.numbering.next_number.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries(self, db_session, test_org, test_client_record):
        year = utcnow().year
        taken = f"INV-{year}-0001"
        await InvoiceFactory.create(db_session, test_org.id, test_client_record.id, invoice_number=taken)

        service = InvoiceService(db_session)
        service.numbering.next_number = AsyncMock(return_value=taken)

        with pytest.raises(InvoiceNumberExhaustedError):
            await _create(service, test_org.id, test_client_record.id)
        assert service.numbering.next_number.await_count == service.numbering.max_retries
