"""
Unit tests for PaymentGatewayService.
"""

import pytest

from crm_finance.core.exceptions import (
    PaymentGatewayInUseError,
    PaymentGatewayNotFoundError,
    ValidationError,
)
from crm_finance.models.payment import GatewayAccountType
from crm_finance.services.payment_gateway_service import PaymentGatewayService
from tests.factories import InvoiceFactory, PaymentFactory, PaymentGatewayFactory


class TestCreateGateway:
    @pytest.mark.asyncio
    async def test_create(self, db_session, test_org):
        gateway = await PaymentGatewayService(db_session).create_gateway(
            test_org.id, " bKash ", "01700000000", account_type="Agent", auto_approve=True
        )

        assert gateway.name == "bKash"
        assert gateway.account_type == GatewayAccountType.AGENT
        assert gateway.is_active
        assert gateway.auto_approve

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name, number", [("", "123"), ("Bank", "  "), (None, "1")])
    async def test_blank_fields(self, db_session, test_org, name, number):
        with pytest.raises(ValidationError):
            await PaymentGatewayService(db_session).create_gateway(test_org.id, name, number)

    @pytest.mark.asyncio
    async def test_unknown_account_type(self, db_session, test_org):
        with pytest.raises(ValidationError):
            await PaymentGatewayService(db_session).create_gateway(test_org.id, "Bank", "1", account_type="Savings")


class TestUpdateGateway:
    @pytest.mark.asyncio
    async def test_update(self, db_session, test_org, test_gateway):
        gateway = await PaymentGatewayService(db_session).update_gateway(
            test_gateway.id, test_org.id, {"is_active": False, "account_type": "Personal"}
        )
        assert not gateway.is_active
        assert gateway.account_type == GatewayAccountType.PERSONAL

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields",
        [{"name": " "}, {"is_active": None}, {"account_type": "Savings"}, {"org_id": 5}],
    )
    async def test_invalid_updates(self, db_session, test_org, test_gateway, fields):
        with pytest.raises(ValidationError):
            await PaymentGatewayService(db_session).update_gateway(test_gateway.id, test_org.id, fields)

    @pytest.mark.asyncio
    async def test_other_org(self, db_session, other_org, test_gateway):
        with pytest.raises(PaymentGatewayNotFoundError):
            await PaymentGatewayService(db_session).update_gateway(test_gateway.id, other_org.id, {"name": "X"})


class TestDeleteGateway:
    @pytest.mark.asyncio
    async def test_delete_unused(self, db_session, test_org, test_gateway):
        service = PaymentGatewayService(db_session)
        await service.delete_gateway(test_gateway.id, test_org.id)

        with pytest.raises(PaymentGatewayNotFoundError):
            await service.get_gateway(test_gateway.id, test_org.id)

    @pytest.mark.asyncio
    async def test_delete_in_use(self, db_session, test_org, test_client_record, test_gateway):
        invoice = await InvoiceFactory.create(db_session, test_org.id, test_client_record.id)
        await PaymentFactory.create(db_session, invoice, test_gateway)

        with pytest.raises(PaymentGatewayInUseError):
            await PaymentGatewayService(db_session).delete_gateway(test_gateway.id, test_org.id)


class TestListGateways:
    @pytest.mark.asyncio
    async def test_active_only(self, db_session, test_org, test_gateway):
        await PaymentGatewayFactory.create(db_session, test_org.id, name="Old wallet", is_active=False)
        service = PaymentGatewayService(db_session)

        assert len(await service.list_gateways(test_org.id)) == 2
        assert [g.id for g in await service.list_gateways(test_org.id, active_only=True)] == [test_gateway.id]
