"""
Client Data Access Object (DAO).

Lookups used when invoices are raised from a project and when client users
are matched to their records by email.
"""

from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.dao.base import BaseDAO
from crm_finance.models.client import Client


class ClientDAO(BaseDAO[Client]):
    """Data Access Object for Client model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Client, session)

    async def get_by_email(self, email: str, org_id: int) -> Optional[Client]:
        """
        Get a client by email, case-insensitively.

        Args:
            email: Email to match
            org_id: Organization ID for security

        Returns:
            The oldest matching client, or None
        """
        result = await self.session.execute(
            select(Client)
            .where(
                Client.org_id == org_id,
                func.lower(Client.email) == email.strip().lower(),
            )
            .order_by(Client.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_ids_by_email(self, email: str, org_id: int) -> List[int]:
        """All client ids of the organization sharing an email."""
        result = await self.session.execute(
            select(Client.id).where(
                Client.org_id == org_id,
                func.lower(Client.email) == email.strip().lower(),
            )
        )
        return list(result.scalars().all())
