"""Read-only DAOs for campaigns and leads attached to projects."""

from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.dao.base import BaseDAO
from crm_finance.models.marketing import Campaign, Lead


class CampaignDAO(BaseDAO[Campaign]):
    def __init__(self, session: AsyncSession):
        super().__init__(Campaign, session)

    async def get_by_project(self, project_id: int, org_id: int) -> List[Campaign]:
        result = await self.session.execute(
            select(Campaign)
            .where(Campaign.project_id == project_id, Campaign.org_id == org_id)
            .order_by(Campaign.created_at.desc(), Campaign.id.desc())
        )
        return list(result.scalars().all())


class LeadDAO(BaseDAO[Lead]):
    def __init__(self, session: AsyncSession):
        super().__init__(Lead, session)

    async def get_by_project(self, project_id: int, org_id: int) -> List[Lead]:
        result = await self.session.execute(
            select(Lead)
            .where(Lead.project_id == project_id, Lead.org_id == org_id)
            .order_by(Lead.created_at.desc(), Lead.id.desc())
        )
        return list(result.scalars().all())
