"""
ChartOfAccountsService -- per-tenant chart of accounts and role map.

Responsibility:
    Creates, looks up, lists and deactivates accounts, records explicit role
    bindings, and resolves a tenant's ChartOfAccountsRoleMap.

Architecture position:
    Kernel > Services.  Used directly by callers and by the ledger modules
    to resolve posting accounts.

Invariants enforced:
    - Account codes are unique per tenant (DuplicateCodeError is raised
      before the insert, the unique constraint is the backstop).
    - Accounts are never deleted; deactivation blocks new postings only.
    - Role resolution: explicit binding first, then the active account with
      the conventional code, else the role is missing.
"""

from collections.abc import Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import TenantContext
from ledger_kernel.domain.roles import (
    DEFAULT_ROLE_CODES,
    AccountRole,
    ChartOfAccountsRoleMap,
    RoleBinding,
)
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    DuplicateCodeError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountRoleBinding, AccountType
from ledger_kernel.services.base import BaseService, tenant_operation

logger = get_logger("services.accounts")


def _coerce_account_type(account_type: AccountType | str) -> AccountType:
    try:
        if isinstance(account_type, AccountType):
            return account_type
        return AccountType(str(account_type).upper())
    except ValueError:
        raise ValidationError(
            f"Unknown account type: {account_type!r}", field="account_type"
        ) from None


class ChartOfAccountsService(BaseService):
    """
    Contract:
        All methods are scoped by ctx.tenant_id; an account id belonging to
        another tenant is reported as not found.

    Non-goals:
        - Account hierarchies, renames, or physical deletion.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    @tenant_operation
    def create_account(
        self,
        ctx: TenantContext,
        code: str,
        name: str,
        account_type: AccountType | str,
        is_retained_earnings: bool = False,
    ) -> Account:
        if not code or not str(code).strip():
            raise ValidationError("Account code is required", field="code")
        if not name or not str(name).strip():
            raise ValidationError("Account name is required", field="name")
        acct_type = _coerce_account_type(account_type)
        code = str(code).strip()

        if self.find_by_code(ctx, code) is not None:
            raise DuplicateCodeError("Account", code)

        account = Account(
            tenant_id=ctx.tenant_id,
            code=code,
            name=str(name).strip(),
            account_type=acct_type.value,
            is_retained_earnings=bool(is_retained_earnings),
            is_active=True,
            created_by_id=ctx.actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "account_type": acct_type.value,
            },
        )
        return account

    def find_by_code(self, ctx: TenantContext, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.tenant_id == ctx.tenant_id,
                Account.code == code,
            )
        ).scalar_one_or_none()

    def get_account(self, ctx: TenantContext, account_id: UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None or account.tenant_id != ctx.tenant_id:
            raise AccountNotFoundError(account_id)
        return account

    def list_active(self, ctx: TenantContext) -> list[Account]:
        return list(
            self.session.execute(
                select(Account)
                .where(
                    Account.tenant_id == ctx.tenant_id,
                    Account.is_active.is_(True),
                )
                .order_by(Account.code.asc())
            ).scalars()
        )

    @tenant_operation
    def deactivate_account(self, ctx: TenantContext, account_id: UUID) -> Account:
        """Soft-delete: the account keeps its history but accepts no new lines."""
        account = self.get_account(ctx, account_id)
        if account.is_active:
            account.is_active = False
            account.updated_by_id = ctx.actor_id
            self.session.flush()
            logger.info(
                "account_deactivated",
                extra={"account_id": str(account.id)},
            )
        return account

    # ------------------------------------------------------------------
    # Role map
    # ------------------------------------------------------------------

    @tenant_operation
    def bind_role(
        self,
        ctx: TenantContext,
        role: AccountRole | str,
        account_id: UUID,
    ) -> AccountRoleBinding:
        """Bind a logical role to an account, replacing any existing binding."""
        role_key = role.value if isinstance(role, AccountRole) else str(role)
        account = self.get_account(ctx, account_id)
        if not account.is_active:
            raise AccountInactiveError(account.id, account.code)

        binding = self.session.execute(
            select(AccountRoleBinding).where(
                AccountRoleBinding.tenant_id == ctx.tenant_id,
                AccountRoleBinding.role == role_key,
            )
        ).scalar_one_or_none()

        if binding is None:
            binding = AccountRoleBinding(
                tenant_id=ctx.tenant_id,
                role=role_key,
                account_id=account.id,
                created_by_id=ctx.actor_id,
            )
            self.session.add(binding)
        else:
            binding.account_id = account.id
            binding.updated_by_id = ctx.actor_id
        self.session.flush()

        logger.info(
            "account_role_bound",
            extra={
                "role": role_key,
                "account_id": str(account.id),
                "account_code": account.code,
            },
        )
        return binding

    @tenant_operation
    def load_role_map(
        self,
        ctx: TenantContext,
        role_codes: Mapping[str, str] | None = None,
    ) -> ChartOfAccountsRoleMap:
        """
        Resolve every known role for the tenant.

        Args:
            ctx: Tenant scope.
            role_codes: Conventional role -> account code fallback map;
                defaults to DEFAULT_ROLE_CODES.
        """
        conventional = dict(DEFAULT_ROLE_CODES)
        if role_codes:
            conventional.update(role_codes)

        resolved: dict[str, RoleBinding] = {}

        explicit = self.session.execute(
            select(AccountRoleBinding, Account)
            .join(Account, Account.id == AccountRoleBinding.account_id)
            .where(
                AccountRoleBinding.tenant_id == ctx.tenant_id,
                Account.is_active.is_(True),
            )
        ).all()
        for binding, account in explicit:
            resolved[binding.role] = RoleBinding(
                role=binding.role,
                account_id=account.id,
                account_code=account.code,
                source="binding",
            )

        pending = {
            role: code for role, code in conventional.items() if role not in resolved
        }
        if pending:
            accounts = self.session.execute(
                select(Account).where(
                    Account.tenant_id == ctx.tenant_id,
                    Account.is_active.is_(True),
                    Account.code.in_(set(pending.values())),
                )
            ).scalars()
            by_code = {a.code: a for a in accounts}
            for role, code in pending.items():
                account = by_code.get(code)
                if account is not None:
                    resolved[role] = RoleBinding(
                        role=role,
                        account_id=account.id,
                        account_code=account.code,
                        source="convention",
                    )

        logger.debug(
            "role_map_loaded",
            extra={"resolved_roles": sorted(resolved)},
        )
        return ChartOfAccountsRoleMap(tenant_id=ctx.tenant_id, bindings=resolved)
