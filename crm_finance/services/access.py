"""
Client ownership checks.

WHAT: Decides whether a client-role user may see a given project, invoice
or payment.

WHY: Role permissions say a client may read invoices; they do not say
which ones. A client user owns a record when it is addressed to their
client record (by id from the token, or by a client record sharing their
email) or belongs to a project whose client email is theirs. Staff roles
are scoped by organization only and pass through unchanged.

HOW: ClientAccessPolicy resolves the user's client ids once and raises
AuthorizationError on a mismatch.
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.exceptions import AuthorizationError
from crm_finance.core.permissions import Principal
from crm_finance.dao.client import ClientDAO
from crm_finance.dao.project import ProjectDAO
from crm_finance.models.invoice import Invoice
from crm_finance.models.payment import Payment
from crm_finance.models.project import Project


def _same_email(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a and b) and a.strip().lower() == b.strip().lower()


class ClientAccessPolicy:
    def __init__(self, session: AsyncSession, principal: Principal):
        self.principal = principal
        self.client_dao = ClientDAO(session)
        self.project_dao = ProjectDAO(session)
        self._client_ids: Optional[List[int]] = None

    async def client_ids(self) -> List[int]:
        """Client record ids that belong to the principal."""
        if self._client_ids is None:
            ids = set()
            if self.principal.client_id is not None:
                ids.add(self.principal.client_id)
            if self.principal.email:
                ids.update(await self.client_dao.get_ids_by_email(self.principal.email, self.principal.org_id))
            self._client_ids = sorted(ids)
        return self._client_ids

    async def owns_project(self, project: Project) -> bool:
        if project.client_id is not None and project.client_id in await self.client_ids():
            return True
        return _same_email(project.client_email, self.principal.email)

    async def owns_invoice(self, invoice: Invoice) -> bool:
        if invoice.client_id in await self.client_ids():
            return True
        if invoice.project_id is not None:
            project = await self.project_dao.get_by_id_and_org(invoice.project_id, invoice.org_id)
            if project is not None and _same_email(project.client_email, self.principal.email):
                return True
        return False

    async def ensure_project(self, project: Project) -> None:
        """
        Raises:
            AuthorizationError: If a client user does not own the project
        """
        if self.principal.is_client and not await self.owns_project(project):
            raise AuthorizationError(
                message="You do not have access to this project",
                project_id=project.id,
                user_id=self.principal.user_id,
            )

    async def ensure_invoice(self, invoice: Invoice) -> None:
        """
        Raises:
            AuthorizationError: If a client user does not own the invoice
        """
        if self.principal.is_client and not await self.owns_invoice(invoice):
            raise AuthorizationError(
                message="You do not have access to this invoice",
                invoice_id=invoice.id,
                user_id=self.principal.user_id,
            )

    async def ensure_payment(self, payment: Payment) -> None:
        if not self.principal.is_client:
            return
        if payment.client_id is not None and payment.client_id in await self.client_ids():
            return
        await self.ensure_invoice(payment.invoice)
