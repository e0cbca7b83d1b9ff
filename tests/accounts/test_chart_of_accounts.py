"""
Tests for the per-tenant chart of accounts and role map.

Verifies:
- Account creation, lookup and listing are tenant-scoped
- Duplicate codes are rejected within a tenant only
- Deactivation is a soft delete
- Role resolution: explicit binding first, then conventional code
"""

from uuid import uuid4

import pytest

from ledger_kernel.domain.roles import AccountRole
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    DuplicateCodeError,
    MissingConfigurationError,
    ValidationError,
)
from ledger_kernel.models.account import Account, AccountType


class TestCreateAccount:

    def test_create(self, account_service, tenant_ctx, test_actor_id):
        account = account_service.create_account(tenant_ctx, "1200", "Accounts Receivable", AccountType.ASSET)

        assert account.id is not None
        assert account.tenant_id == tenant_ctx.tenant_id
        assert account.code == "1200"
        assert account.type is AccountType.ASSET
        assert account.is_active
        assert not account.is_retained_earnings
        assert account.created_by_id == test_actor_id

    def test_type_from_string(self, account_service, tenant_ctx):
        account = account_service.create_account(tenant_ctx, "4000", "Revenue", "revenue")
        assert account.type is AccountType.REVENUE

    def test_unknown_type_rejected(self, account_service, tenant_ctx):
        with pytest.raises(ValidationError) as exc_info:
            account_service.create_account(tenant_ctx, "9000", "Odd", "CONTRA")
        assert exc_info.value.field == "account_type"

    @pytest.mark.parametrize("code, name", [("", "Bank"), ("  ", "Bank"), ("1010", ""), ("1010", None)])
    def test_blank_code_or_name_rejected(self, account_service, tenant_ctx, code, name):
        with pytest.raises(ValidationError):
            account_service.create_account(tenant_ctx, code, name, AccountType.ASSET)

    def test_duplicate_code_rejected(self, account_service, tenant_ctx):
        account_service.create_account(tenant_ctx, "1010", "Bank", AccountType.ASSET)
        with pytest.raises(DuplicateCodeError) as exc_info:
            account_service.create_account(tenant_ctx, "1010", "Other Bank", AccountType.ASSET)
        assert exc_info.value.value == "1010"
        assert exc_info.value.kind == "DUPLICATE_CODE"

    def test_same_code_in_other_tenant_allowed(self, account_service, tenant_ctx, other_tenant_ctx):
        a = account_service.create_account(tenant_ctx, "1010", "Bank", AccountType.ASSET)
        b = account_service.create_account(other_tenant_ctx, "1010", "Bank", AccountType.ASSET)
        assert a.id != b.id

    def test_retained_earnings_flag(self, account_service, tenant_ctx):
        account = account_service.create_account(
            tenant_ctx, "3900", "Retained Earnings", AccountType.EQUITY, is_retained_earnings=True
        )
        assert account.is_retained_earnings


class TestLookup:

    def test_find_by_code(self, account_service, tenant_ctx, standard_accounts):
        assert account_service.find_by_code(tenant_ctx, "4000").id == standard_accounts["4000"].id
        assert account_service.find_by_code(tenant_ctx, "9999") is None

    def test_find_by_code_is_tenant_scoped(self, account_service, other_tenant_ctx, standard_accounts):
        assert account_service.find_by_code(other_tenant_ctx, "4000") is None

    def test_get_account_other_tenant_not_found(self, account_service, other_tenant_ctx, standard_accounts):
        with pytest.raises(AccountNotFoundError):
            account_service.get_account(other_tenant_ctx, standard_accounts["1010"].id)

    def test_get_account_unknown(self, account_service, tenant_ctx):
        with pytest.raises(AccountNotFoundError):
            account_service.get_account(tenant_ctx, uuid4())

    def test_list_active_sorted_by_code(self, account_service, tenant_ctx):
        for code in ("4000", "1200", "2100", "1010"):
            account_service.create_account(tenant_ctx, code, f"Account {code}", AccountType.ASSET)
        assert [a.code for a in account_service.list_active(tenant_ctx)] == ["1010", "1200", "2100", "4000"]


class TestDeactivate:

    def test_deactivate_hides_from_list(self, account_service, tenant_ctx, standard_accounts, session):
        account_service.deactivate_account(tenant_ctx, standard_accounts["7500"].id)

        codes = [a.code for a in account_service.list_active(tenant_ctx)]
        assert "7500" not in codes
        # Row is kept
        assert session.get(Account, standard_accounts["7500"].id) is not None

    def test_deactivate_is_idempotent(self, account_service, tenant_ctx, standard_accounts):
        account_service.deactivate_account(tenant_ctx, standard_accounts["7500"].id)
        account = account_service.deactivate_account(tenant_ctx, standard_accounts["7500"].id)
        assert not account.is_active


class TestRoleMap:

    def test_conventional_codes_resolve(self, account_service, tenant_ctx, standard_accounts):
        roles = account_service.load_role_map(tenant_ctx)

        assert roles.account_id(AccountRole.AR) == standard_accounts["1200"].id
        assert roles.account_id(AccountRole.BANK) == standard_accounts["1010"].id
        assert roles.account_id(AccountRole.REVENUE) == standard_accounts["4000"].id
        assert roles.account_id(AccountRole.PAYROLL_EXPENSE) == standard_accounts["5000"].id
        assert roles.account_id(AccountRole.STAFF_PAYABLE) == standard_accounts["2100"].id
        assert roles.account_id(AccountRole.FX_GAIN) == standard_accounts["7300"].id
        assert roles.account_id(AccountRole.FX_LOSS) == standard_accounts["7500"].id
        assert roles.get(AccountRole.AR).source == "convention"

    def test_missing_roles_reported(self, account_service, tenant_ctx, create_accounts):
        create_accounts("1200", "4000")
        roles = account_service.load_role_map(tenant_ctx)

        assert roles.has(AccountRole.AR, AccountRole.REVENUE)
        assert roles.missing(AccountRole.BANK, AccountRole.FX_GAIN) == ["Bank", "FxGain"]
        with pytest.raises(MissingConfigurationError):
            roles.require(AccountRole.BANK)

    def test_explicit_binding_wins(self, account_service, tenant_ctx, standard_accounts):
        other_ar = account_service.create_account(tenant_ctx, "1210", "AR - Government", AccountType.ASSET)
        account_service.bind_role(tenant_ctx, AccountRole.AR, other_ar.id)

        roles = account_service.load_role_map(tenant_ctx)
        assert roles.account_id(AccountRole.AR) == other_ar.id
        assert roles.get(AccountRole.AR).source == "binding"

    def test_rebinding_replaces(self, account_service, tenant_ctx, standard_accounts):
        first = account_service.create_account(tenant_ctx, "1011", "Bank 2", AccountType.ASSET)
        second = account_service.create_account(tenant_ctx, "1012", "Bank 3", AccountType.ASSET)
        account_service.bind_role(tenant_ctx, "Bank", first.id)
        account_service.bind_role(tenant_ctx, "Bank", second.id)

        assert account_service.load_role_map(tenant_ctx).account_id(AccountRole.BANK) == second.id

    def test_bind_inactive_account_rejected(self, account_service, tenant_ctx, standard_accounts):
        account_service.deactivate_account(tenant_ctx, standard_accounts["1010"].id)
        with pytest.raises(AccountInactiveError):
            account_service.bind_role(tenant_ctx, AccountRole.BANK, standard_accounts["1010"].id)

    def test_role_code_override(self, account_service, tenant_ctx, standard_accounts):
        custom = account_service.create_account(tenant_ctx, "7310", "FX Gain (custom)", AccountType.REVENUE)
        roles = account_service.load_role_map(tenant_ctx, {"FxGain": "7310"})
        assert roles.account_id(AccountRole.FX_GAIN) == custom.id

    def test_inactive_conventional_account_not_resolved(self, account_service, tenant_ctx, standard_accounts):
        account_service.deactivate_account(tenant_ctx, standard_accounts["7300"].id)
        roles = account_service.load_role_map(tenant_ctx)
        assert roles.get(AccountRole.FX_GAIN) is None

    def test_role_map_is_tenant_scoped(self, account_service, other_tenant_ctx, standard_accounts):
        roles = account_service.load_role_map(other_tenant_ctx)
        assert roles.bindings == {}
