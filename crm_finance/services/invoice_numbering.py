"""
Invoice number allocation.

WHAT: Produces human-readable invoice numbers (INV-2024-0001) that are
unique within an organization and sequential per calendar year.

WHY: Reading the highest sequence and inserting the next one is a race
between concurrent requests of the same organization. Rather than a
counter table, the UNIQUE(org_id, invoice_number) constraint is the
arbiter: the loser of a race gets an IntegrityError inside its SAVEPOINT,
rolls back only that savepoint and retries with a freshly read number.

HOW:
- next_number() reads the organization's numbers for the current year's
  prefix and returns max(sequence) + 1
- insert_with_unique_number() calls a builder with a candidate number,
  flushes it in a nested transaction and retries on a unique violation
- a number supplied by the caller is never regenerated: it either inserts
  or raises ResourceAlreadyExistsError
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.config import settings
from crm_finance.core.exceptions import (
    InvoiceNumberExhaustedError,
    ResourceAlreadyExistsError,
    ValidationError,
)
from crm_finance.dao.invoice import InvoiceDAO
from crm_finance.models.base import utcnow
from crm_finance.models.invoice import Invoice

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_sequence(invoice_number: str, prefix: str) -> Optional[int]:
    """
    Extract the numeric sequence following a year prefix.

    Returns None for numbers that do not follow the PREFIX-YYYY-NNNN format,
    such as caller-supplied custom numbers.

    Example:
        >>> parse_sequence("INV-2024-0042", "INV-2024-")
        42
    """
    if not invoice_number.startswith(prefix):
        return None
    tail = invoice_number[len(prefix):]
    if not tail.isdigit():
        return None
    return int(tail)


class InvoiceNumberGenerator:
    """
    Allocates invoice numbers for one session.

    Example:
        generator = InvoiceNumberGenerator(session)
        invoice = await generator.insert_with_unique_number(
            org_id,
            lambda number: invoice_dao.create(org_id=org_id, invoice_number=number, ...),
        )
    """

    def __init__(
        self,
        session: AsyncSession,
        prefix: Optional[str] = None,
        max_retries: Optional[int] = None,
    ):
        self.session = session
        self.invoice_dao = InvoiceDAO(session)
        self.prefix = prefix or settings.INVOICE_NUMBER_PREFIX
        self.max_retries = max_retries or settings.INVOICE_NUMBER_MAX_RETRIES

    def _year_prefix(self) -> str:
        return f"{self.prefix}-{utcnow().year}-"

    async def next_number(self, org_id: int) -> str:
        """
        Compute the next free number for the organization.

        Args:
            org_id: Organization ID

        Returns:
            e.g. "INV-2024-0007" when 0006 is the highest used this year
        """
        year_prefix = self._year_prefix()
        numbers = await self.invoice_dao.get_numbers_with_prefix(org_id, year_prefix)
        sequences = [s for s in (parse_sequence(n, year_prefix) for n in numbers) if s is not None]
        next_sequence = max(sequences, default=0) + 1
        return Invoice.format_invoice_number(self.prefix, utcnow().year, next_sequence)

    async def insert_with_unique_number(
        self,
        org_id: int,
        build: Callable[[str], Awaitable[T]],
        requested_number: Optional[str] = None,
    ) -> T:
        """
        Insert a row produced by ``build`` under a unique invoice number.

        Args:
            org_id: Organization ID
            build: Coroutine function taking the number; must add and flush
                the invoice (e.g. InvoiceDAO.create)
            requested_number: Caller-supplied number, used as is

        Returns:
            Whatever ``build`` returned

        Raises:
            ValidationError: If requested_number is blank
            ResourceAlreadyExistsError: If requested_number is already used
            InvoiceNumberExhaustedError: If every retry collided
        """
        if requested_number is not None:
            requested_number = requested_number.strip()
            if not requested_number:
                raise ValidationError(message="Invoice number cannot be blank")
            if await self.invoice_dao.get_by_invoice_number(requested_number, org_id):
                raise ResourceAlreadyExistsError(
                    message=f"Invoice number {requested_number} already exists",
                    invoice_number=requested_number,
                )
            try:
                async with self.session.begin_nested():
                    return await build(requested_number)
            except IntegrityError:
                # Inserted concurrently between the check and the flush
                raise ResourceAlreadyExistsError(
                    message=f"Invoice number {requested_number} already exists",
                    invoice_number=requested_number,
                )

        for attempt in range(1, self.max_retries + 1):
            number = await self.next_number(org_id)
            try:
                async with self.session.begin_nested():
                    return await build(number)
            except IntegrityError:
                logger.warning(
                    f"Invoice number {number} taken for org {org_id} "
                    f"(attempt {attempt}/{self.max_retries}), retrying"
                )

        raise InvoiceNumberExhaustedError(org_id=org_id, attempts=self.max_retries)
