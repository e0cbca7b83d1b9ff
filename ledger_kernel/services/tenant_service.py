"""
TenantService -- tenant creation and TenantContext construction.

Every ledger operation is scoped by a TenantContext built here from the
Tenant row, so the tenant's base currency always comes from storage rather
than from the caller.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import TenantContext
from ledger_kernel.domain.money import validate_currency
from ledger_kernel.exceptions import TenantNotFoundError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.tenant import Tenant
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.tenant")


class TenantService(BaseService):
    """
    Contract:
        create_tenant() persists a Tenant and its journal sequence counter.
        context_for() raises TenantNotFoundError for an unknown id.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        default_base_currency: str = "SAR",
    ):
        super().__init__(session, clock)
        self.default_base_currency = default_base_currency
        self._sequences = SequenceService(session)

    def create_tenant(
        self,
        name: str,
        base_currency: str | None = None,
        actor_id: UUID | None = None,
    ) -> Tenant:
        """Create a tenant; base_currency defaults to the service default."""
        if not name or not name.strip():
            raise ValidationError("Tenant name is required", field="name")
        currency = validate_currency(base_currency or self.default_base_currency)

        tenant = Tenant(
            name=name.strip(),
            base_currency=currency,
            created_by_id=actor_id,
        )
        self.session.add(tenant)
        self.session.flush()
        self._sequences.ensure_sequence(SequenceService.journal_sequence_name(tenant.id))

        logger.info(
            "tenant_created",
            extra={"tenant_id": str(tenant.id), "base_currency": currency},
        )
        return tenant

    def get_tenant(self, tenant_id: UUID) -> Tenant:
        tenant = self.session.get(Tenant, tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    def context_for(self, tenant_id: UUID, actor_id: UUID | None = None) -> TenantContext:
        tenant = self.get_tenant(tenant_id)
        return TenantContext(
            tenant_id=tenant.id,
            base_currency=tenant.base_currency,
            actor_id=actor_id,
        )
