"""
Integration tests for the project API.

WHAT: The project overview and project status endpoints.

WHY: Submitting a project is what raises its invoice, and the overview is
where the project's money is summarised; both must respect client
ownership and tenant boundaries.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient

from crm_finance.core.permissions import Role
from crm_finance.models.payment import PaymentStatus
from crm_finance.models.project import ProjectStatus
from tests.factories import (
    InvoiceFactory,
    MarketingFactory,
    PaymentFactory,
    ProjectFactory,
    auth_headers,
)


class TestProjectOverview:
    @pytest.mark.asyncio
    async def test_overview(
        self, client: AsyncClient, admin_headers, db_session, test_org, test_client_record, test_gateway
    ):
        project = await ProjectFactory.create(
            db_session, test_org.id, client_id=test_client_record.id, client_email="buyer@example.com"
        )
        invoice = await InvoiceFactory.create(db_session, test_org.id, test_client_record.id, project_id=project.id)
        await PaymentFactory.create(db_session, invoice, test_gateway, Decimal("700.00"), PaymentStatus.APPROVED)
        await PaymentFactory.create(db_session, invoice, test_gateway, Decimal("100.00"))
        await MarketingFactory.create_campaign(db_session, test_org.id, project.id)
        await MarketingFactory.create_lead(db_session, test_org.id, project.id)

        response = await client.get(f"/api/projects/{project.id}/overview", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Project overview retrieved"
        data = body["data"]
        assert data["project"]["id"] == project.id
        assert data["client"]["email"] == "buyer@example.com"
        assert [i["invoice_number"] for i in data["invoices"]] == [invoice.invoice_number]
        assert len(data["payments"]) == 2
        assert [c["name"] for c in data["campaigns"]] == ["Launch"]
        assert [lead["name"] for lead in data["leads"]] == ["Jordan Lee"]

        summary = data["summary"]
        assert summary["invoice_count"] == 1
        assert Decimal(summary["total_invoiced"]) == Decimal("2000.00")
        assert Decimal(summary["total_paid"]) == Decimal("700.00")
        assert Decimal(summary["total_due"]) == Decimal("1300.00")
        assert Decimal(summary["total_pending"]) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_client_access(self, client: AsyncClient, db_session, test_org):
        own = await ProjectFactory.create(db_session, test_org.id, client_email="buyer@example.com")
        foreign = await ProjectFactory.create(db_session, test_org.id, name="Other", client_email="x@example.com")
        headers = auth_headers(test_org.id, Role.CLIENT, user_id=3, email="buyer@example.com")

        assert (await client.get(f"/api/projects/{own.id}/overview", headers=headers)).status_code == 200
        assert (await client.get(f"/api/projects/{foreign.id}/overview", headers=headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_other_org(self, client: AsyncClient, db_session, test_org, other_org):
        project = await ProjectFactory.create(db_session, test_org.id)
        outsider = auth_headers(other_org.id, Role.ADMIN, user_id=99)

        response = await client.get(f"/api/projects/{project.id}/overview", headers=outsider)

        assert response.status_code == 404
        assert response.json()["error"] == "ProjectNotFoundError"


class TestProjectStatus:
    @pytest.mark.asyncio
    async def test_submit_generates_invoice(self, client: AsyncClient, admin_headers, db_session, test_org):
        project = await ProjectFactory.create(db_session, test_org.id, client_email="newbuyer@example.com")

        response = await client.put(
            f"/api/projects/{project.id}/status", headers=admin_headers, json={"status": "submitted"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["project"]["status"] == ProjectStatus.SUBMITTED.value
        assert data["invoice"]["project_id"] == project.id
        assert data["invoice"]["client_email"] == "newbuyer@example.com"
        assert Decimal(data["invoice"]["total_amount"]) == Decimal("2000.00")

    @pytest.mark.asyncio
    async def test_resubmitting_reuses_invoice(self, client: AsyncClient, admin_headers, db_session, test_org):
        project = await ProjectFactory.create(db_session, test_org.id, client_email="newbuyer@example.com")
        url = f"/api/projects/{project.id}/status"

        first = (await client.put(url, headers=admin_headers, json={"status": "submitted"})).json()["data"]
        await client.put(url, headers=admin_headers, json={"status": "draft"})
        second = (await client.put(url, headers=admin_headers, json={"status": "submitted"})).json()["data"]

        assert second["invoice"]["id"] == first["invoice"]["id"]

    @pytest.mark.asyncio
    async def test_draft_move_has_no_invoice(self, client: AsyncClient, admin_headers, db_session, test_org):
        project = await ProjectFactory.create(db_session, test_org.id, status=ProjectStatus.SUBMITTED)

        response = await client.put(
            f"/api/projects/{project.id}/status", headers=admin_headers, json={"status": "draft"}
        )

        assert response.json()["data"]["invoice"] is None

    @pytest.mark.asyncio
    async def test_invalid_transition(self, client: AsyncClient, admin_headers, db_session, test_org):
        project = await ProjectFactory.create(db_session, test_org.id, status=ProjectStatus.COMPLETED)

        response = await client.put(
            f"/api/projects/{project.id}/status", headers=admin_headers, json={"status": "draft"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidStateTransitionError"

    @pytest.mark.asyncio
    async def test_unknown_status(self, client: AsyncClient, admin_headers, db_session, test_org):
        project = await ProjectFactory.create(db_session, test_org.id)

        response = await client.put(
            f"/api/projects/{project.id}/status", headers=admin_headers, json={"status": "launched"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_client_cannot_start_work(self, client: AsyncClient, db_session, test_org):
        project = await ProjectFactory.create(
            db_session, test_org.id, status=ProjectStatus.SUBMITTED, client_email="buyer@example.com"
        )
        headers = auth_headers(test_org.id, Role.CLIENT, user_id=3, email="buyer@example.com")

        response = await client.put(
            f"/api/projects/{project.id}/status", headers=headers, json={"status": "in_progress"}
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_staff_lacks_project_write(self, client: AsyncClient, db_session, test_org):
        project = await ProjectFactory.create(db_session, test_org.id)
        staff = auth_headers(test_org.id, Role.STAFF, user_id=2)

        response = await client.put(f"/api/projects/{project.id}/status", headers=staff, json={"status": "submitted"})

        assert response.status_code == 403
