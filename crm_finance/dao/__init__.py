"""Data Access Objects package"""

from crm_finance.dao.base import BaseDAO
from crm_finance.dao.client import ClientDAO
from crm_finance.dao.project import ProjectDAO
from crm_finance.dao.marketing import CampaignDAO, LeadDAO
from crm_finance.dao.invoice import InvoiceDAO
from crm_finance.dao.payment import PaymentDAO, PaymentGatewayDAO
from crm_finance.dao.audit_log import AuditLogDAO

__all__ = [
    "BaseDAO",
    "ClientDAO",
    "ProjectDAO",
    "CampaignDAO",
    "LeadDAO",
    "InvoiceDAO",
    "PaymentDAO",
    "PaymentGatewayDAO",
    "AuditLogDAO",
]
