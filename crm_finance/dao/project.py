"""
Project Data Access Object (DAO).

WHAT: Database operations for the Project model.

WHY: Invoices are raised for projects and payment approval advances a
project's status; the row lock variant keeps that transition consistent
with concurrent approvals.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.dao.base import BaseDAO
from crm_finance.models.project import Project


class ProjectDAO(BaseDAO[Project]):
    """Data Access Object for Project model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Project, session)

    async def get_for_update(self, project_id: int, org_id: int) -> Optional[Project]:
        """
        Get a project and lock its row until the transaction ends.

        SQLite ignores FOR UPDATE; its writes are serialized anyway.
        """
        result = await self.session.execute(
            select(Project)
            .where(Project.id == project_id, Project.org_id == org_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

