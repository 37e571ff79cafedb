"""
Unit tests for the audit log DAO.

WHY: Audit rows are evidence; the DAO must refuse to change them.
"""

import pytest

from crm_finance.core.exceptions import AuditLogImmutableError
from crm_finance.dao.audit_log import AuditLogDAO
from crm_finance.models.audit_log import AuditAction


class TestAuditLogDAO:
    @pytest.mark.asyncio
    async def test_create_and_read_history(self, db_session, test_org):
        dao = AuditLogDAO(db_session)
        await dao.create(action=AuditAction.CREATE, resource_type="invoice", resource_id=1, org_id=test_org.id)
        await dao.create(
            action=AuditAction.STATUS_CHANGE,
            resource_type="invoice",
            resource_id=1,
            org_id=test_org.id,
            changes={"status": {"before": "unpaid", "after": "paid"}},
        )
        await dao.create(action=AuditAction.CREATE, resource_type="payment", resource_id=1, org_id=test_org.id)

        history = await dao.get_by_resource("invoice", 1, test_org.id)
        assert [log.action for log in history] == [AuditAction.CREATE, AuditAction.STATUS_CHANGE]
        assert history[1].changes["status"]["after"] == "paid"

    @pytest.mark.asyncio
    async def test_update_is_refused(self, db_session, test_org):
        dao = AuditLogDAO(db_session)
        log = await dao.create(action=AuditAction.CREATE, resource_type="invoice", org_id=test_org.id)

        with pytest.raises(AuditLogImmutableError):
            await dao.update(log.id, resource_type="payment")

    @pytest.mark.asyncio
    async def test_delete_is_refused(self, db_session, test_org):
        dao = AuditLogDAO(db_session)
        log = await dao.create(action=AuditAction.CREATE, resource_type="invoice", org_id=test_org.id)

        with pytest.raises(AuditLogImmutableError):
            await dao.delete(log.id)
