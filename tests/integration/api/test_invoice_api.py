"""
Integration tests for the invoice API.

WHAT: Tests for invoice endpoints via HTTP.

WHY: These tests ensure:
1. Responses use the {"success", "message", "data"} envelope
2. Money figures come back as exact decimals
3. Org-scoping hides other tenants' invoices (404, not 403)
4. Client users only see and renew their own invoices
5. Business rule violations map to the documented status codes

HOW: Uses pytest-asyncio with AsyncClient against the ASGI app.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from crm_finance.core.permissions import Role
from crm_finance.models.base import utcnow
from crm_finance.models.invoice import InvoiceStatus
from crm_finance.models.payment import PaymentStatus
from tests.factories import (
    ClientFactory,
    InvoiceFactory,
    PaymentFactory,
    ProjectFactory,
    auth_headers,
)

ITEMS = [
    {"description": "Design", "quantity": 2, "unit_price": "500.00"},
    {"description": "Build", "quantity": 1, "unit_price": "1000.00"},
]


def _payload(client_id, days_until_due=30, **extra):
    now = utcnow()
    payload = {
        "client_id": client_id,
        "items": ITEMS,
        "issue_date": (now - timedelta(days=max(0, -days_until_due) + 1)).isoformat(),
        "due_date": (now + timedelta(days=days_until_due)).isoformat(),
    }
    payload.update(extra)
    return payload


async def _create(client, headers, client_id, **kwargs):
    response = await client.post("/api/finance/invoices", headers=headers, json=_payload(client_id, **kwargs))
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestInvoiceCreate:
    @pytest.mark.asyncio
    async def test_create_invoice(self, client: AsyncClient, admin_headers, test_client_record):
        response = await client.post(
            "/api/finance/invoices", headers=admin_headers, json=_payload(test_client_record.id, notes="Q1")
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Invoice created"

        data = body["data"]
        assert data["invoice_number"].startswith(f"INV-{utcnow().year}-")
        assert data["status"] == "unpaid"
        assert Decimal(data["total_amount"]) == Decimal("2000.00")
        assert Decimal(data["amount_due"]) == Decimal("2000.00")
        assert Decimal(data["amount_paid"]) == Decimal("0")
        assert data["client_email"] == "buyer@example.com"
        assert data["is_editable"] is True
        assert [item["description"] for item in data["items"]] == ["Design", "Build"]

    @pytest.mark.asyncio
    async def test_empty_items(self, client: AsyncClient, admin_headers, test_client_record):
        response = await client.post(
            "/api/finance/invoices", headers=admin_headers, json=_payload(test_client_record.id, items=[])
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["error"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_malformed_body(self, client: AsyncClient, admin_headers, test_client_record):
        payload = _payload(test_client_record.id)
        payload["items"] = [{"description": "X", "quantity": "many", "unit_price": "1.00"}]

        response = await client.post("/api/finance/invoices", headers=admin_headers, json=payload)

        assert response.status_code == 400
        assert response.json()["details"]["errors"]

    @pytest.mark.asyncio
    async def test_duplicate_number(self, client: AsyncClient, admin_headers, test_client_record):
        await _create(client, admin_headers, test_client_record.id, invoice_number="ACME-7")
        response = await client.post(
            "/api/finance/invoices",
            headers=admin_headers,
            json=_payload(test_client_record.id, invoice_number="ACME-7"),
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_staff_can_create_client_cannot(self, client: AsyncClient, test_org, test_client_record):
        staff = auth_headers(test_org.id, Role.STAFF, user_id=2)
        client_user = auth_headers(test_org.id, Role.CLIENT, user_id=3, email="buyer@example.com")

        assert (await client.post("/api/finance/invoices", headers=staff, json=_payload(test_client_record.id))).status_code == 201
        response = await client.post("/api/finance/invoices", headers=client_user, json=_payload(test_client_record.id))
        assert response.status_code == 403
        assert response.json()["error"] == "InsufficientPermissionsError"

    @pytest.mark.asyncio
    async def test_from_project(self, client: AsyncClient, admin_headers, db_session, test_org):
        project = await ProjectFactory.create(db_session, test_org.id, client_email="fresh@example.com")

        response = await client.post(
            "/api/finance/invoices/from-project",
            headers=admin_headers,
            json={"project_id": project.id, "items": ITEMS},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["project_id"] == project.id
        assert data["client_email"] == "fresh@example.com"
        assert data["notes"] == f"Invoice for project: {project.name}"


class TestInvoiceRead:
    @pytest.mark.asyncio
    async def test_list_and_filter(self, client: AsyncClient, admin_headers, test_client_record):
        await _create(client, admin_headers, test_client_record.id)
        await _create(client, admin_headers, test_client_record.id, days_until_due=-2)

        all_invoices = (await client.get("/api/finance/invoices", headers=admin_headers)).json()["data"]
        overdue = (
            await client.get("/api/finance/invoices", headers=admin_headers, params={"status": "overdue"})
        ).json()["data"]

        assert len(all_invoices) == 2
        assert [i["status"] for i in overdue] == ["overdue"]

    @pytest.mark.asyncio
    async def test_other_org_gets_404(self, client: AsyncClient, admin_headers, other_org, test_client_record):
        invoice = await _create(client, admin_headers, test_client_record.id)
        outsider = auth_headers(other_org.id, Role.ADMIN, user_id=99)

        response = await client.get(f"/api/finance/invoices/{invoice['id']}", headers=outsider)
        assert response.status_code == 404
        assert response.json()["error"] == "InvoiceNotFoundError"

        listed = await client.get("/api/finance/invoices", headers=outsider)
        assert listed.json()["data"] == []

    @pytest.mark.asyncio
    async def test_client_sees_only_own_invoices(
        self, client: AsyncClient, admin_headers, db_session, test_org, test_client_record
    ):
        other = await ClientFactory.create(db_session, test_org.id, name="Other", email="other@example.com")
        mine = await _create(client, admin_headers, test_client_record.id)
        theirs = await _create(client, admin_headers, other.id)
        client_user = auth_headers(test_org.id, Role.CLIENT, user_id=3, email="buyer@example.com")

        listed = (await client.get("/api/finance/invoices", headers=client_user)).json()["data"]
        assert [i["id"] for i in listed] == [mine["id"]]

        forbidden = await client.get(f"/api/finance/invoices/{theirs['id']}", headers=client_user)
        assert forbidden.status_code == 403

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, admin_headers, test_org, test_client_record):
        await _create(client, admin_headers, test_client_record.id)

        response = await client.get("/api/finance/invoices/stats", headers=admin_headers)
        data = response.json()["data"]
        assert data["counts"]["unpaid"] == 1
        assert Decimal(data["total_outstanding"]) == Decimal("2000.00")

        client_user = auth_headers(test_org.id, Role.CLIENT, user_id=3, email="buyer@example.com")
        assert (await client.get("/api/finance/invoices/stats", headers=client_user)).status_code == 403

    @pytest.mark.asyncio
    async def test_invoice_payments(
        self, client: AsyncClient, admin_headers, db_session, test_org, test_client_record, test_gateway
    ):
        invoice = await InvoiceFactory.create(db_session, test_org.id, test_client_record.id)
        await PaymentFactory.create(db_session, invoice, test_gateway, Decimal("250.00"))

        response = await client.get(f"/api/finance/invoices/{invoice.id}/payments", headers=admin_headers)

        payments = response.json()["data"]
        assert len(payments) == 1
        assert payments[0]["invoice_number"] == invoice.invoice_number
        assert payments[0]["gateway_name"] == test_gateway.name


    @pytest.mark.asyncio
    async def test_past_due_row_reads_as_overdue(
        self, client: AsyncClient, admin_headers, db_session, test_org, test_client_record
    ):
        stale = await InvoiceFactory.create(
            db_session,
            test_org.id,
            test_client_record.id,
            issue_date=utcnow() - timedelta(days=40),
            due_date=utcnow() - timedelta(days=10),
        )

        detail = await client.get(f"/api/finance/invoices/{stale.id}", headers=admin_headers)
        assert detail.json()["data"]["status"] == "overdue"

        overdue = await client.get("/api/finance/invoices", headers=admin_headers, params={"status": "overdue"})
        assert [i["id"] for i in overdue.json()["data"]] == [stale.id]

        stats = (await client.get("/api/finance/invoices/stats", headers=admin_headers)).json()["data"]
        assert stats["counts"]["overdue"] == 1
        assert stats["counts"]["unpaid"] == 0

    @pytest.mark.asyncio
    async def test_stats_see_past_due_row_first(
        self, client: AsyncClient, admin_headers, db_session, test_org, test_client_record
    ):
        await InvoiceFactory.create(
            db_session,
            test_org.id,
            test_client_record.id,
            issue_date=utcnow() - timedelta(days=40),
            due_date=utcnow() - timedelta(days=10),
        )

        stats = (await client.get("/api/finance/invoices/stats", headers=admin_headers)).json()["data"]

        assert stats["counts"] == {"unpaid": 0, "paid": 0, "overdue": 1, "cancelled": 0}


class TestInvoiceMutation:
    @pytest.mark.asyncio
    async def test_update_items(self, client: AsyncClient, admin_headers, test_client_record):
        invoice = await _create(client, admin_headers, test_client_record.id)

        response = await client.put(
            f"/api/finance/invoices/{invoice['id']}",
            headers=admin_headers,
            json={"items": [{"description": "Hosting", "quantity": 12, "unit_price": "10.00"}]},
        )

        assert response.status_code == 200
        assert Decimal(response.json()["data"]["total_amount"]) == Decimal("120.00")

    @pytest.mark.asyncio
    async def test_cancel_and_delete_rules(
        self, client: AsyncClient, admin_headers, db_session, test_org, test_client_record, test_gateway
    ):
        paid_in_part = await InvoiceFactory.create(db_session, test_org.id, test_client_record.id)
        await PaymentFactory.create(db_session, paid_in_part, test_gateway, Decimal("100.00"), PaymentStatus.APPROVED)

        assert (
            await client.delete(f"/api/finance/invoices/{paid_in_part.id}", headers=admin_headers)
        ).status_code == 409
        assert (
            await client.post(f"/api/finance/invoices/{paid_in_part.id}/cancel", headers=admin_headers)
        ).status_code == 409

        fresh = await _create(client, admin_headers, test_client_record.id)
        cancelled = await client.post(
            f"/api/finance/invoices/{fresh['id']}/cancel", headers=admin_headers, json={"reason": "Duplicate"}
        )
        assert cancelled.json()["data"]["status"] == InvoiceStatus.CANCELLED.value

        deleted = await client.delete(f"/api/finance/invoices/{fresh['id']}", headers=admin_headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"success": True, "message": "Invoice deleted", "data": None}

    @pytest.mark.asyncio
    async def test_staff_cannot_delete(self, client: AsyncClient, admin_headers, test_org, test_client_record):
        invoice = await _create(client, admin_headers, test_client_record.id)
        staff = auth_headers(test_org.id, Role.STAFF, user_id=2)

        assert (await client.delete(f"/api/finance/invoices/{invoice['id']}", headers=staff)).status_code == 403


class TestInvoiceRenewal:
    @pytest.mark.asyncio
    async def test_client_renews_due_invoice(self, client: AsyncClient, admin_headers, test_org, test_client_record):
        due = await _create(client, admin_headers, test_client_record.id, days_until_due=-1)
        client_user = auth_headers(test_org.id, Role.CLIENT, user_id=3, email="buyer@example.com")

        check = await client.get(f"/api/finance/invoices/{due['id']}/can-renew", headers=client_user)
        assert check.json()["data"] == {"invoice_id": due["id"], "can_renew": True}

        response = await client.post(f"/api/finance/invoices/{due['id']}/renew", headers=client_user)

        assert response.status_code == 201
        renewal = response.json()["data"]
        assert renewal["renewed_from_id"] == due["id"]
        assert renewal["invoice_number"] != due["invoice_number"]
        assert renewal["status"] == "unpaid"

    @pytest.mark.asyncio
    async def test_client_cannot_renew_early(self, client: AsyncClient, admin_headers, test_org, test_client_record):
        current = await _create(client, admin_headers, test_client_record.id)
        client_user = auth_headers(test_org.id, Role.CLIENT, user_id=3, email="buyer@example.com")

        response = await client.post(f"/api/finance/invoices/{current['id']}/renew", headers=client_user)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_staff_renews_any_time(self, client: AsyncClient, admin_headers, test_org, test_client_record):
        current = await _create(client, admin_headers, test_client_record.id)
        staff = auth_headers(test_org.id, Role.STAFF, user_id=2)

        response = await client.post(f"/api/finance/invoices/{current['id']}/renew", headers=staff)
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_future_dated_invoice_is_not_renewed(self, client: AsyncClient, admin_headers, test_client_record):
        issue_date = utcnow() + timedelta(days=5)
        payload = {
            "client_id": test_client_record.id,
            "items": ITEMS,
            "issue_date": issue_date.isoformat(),
            "due_date": (issue_date + timedelta(days=30)).isoformat(),
        }
        scheduled = (await client.post("/api/finance/invoices", headers=admin_headers, json=payload)).json()["data"]

        response = await client.post(f"/api/finance/invoices/{scheduled['id']}/renew", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidStateTransitionError"
