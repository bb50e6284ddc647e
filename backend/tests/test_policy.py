"""
Role policy tests.

Verifies the decision table for every role/action pair:
- Admin: every action, any branch
- Manager: invoice and staff actions on own branch only
- Staff: nothing
"""

from types import SimpleNamespace

import pytest

from invoicing.policy import (
    PolicyAction,
    REASON_OUT_OF_SCOPE,
    REASON_ROLE_NOT_PERMITTED,
    REASON_UNKNOWN_ACTION,
    authorize,
    role_may_attempt,
    same_branch,
)


B1 = "b1" * 16
B2 = "b2" * 16

BRANCH_SCOPED = [
    PolicyAction.CREATE_INVOICE,
    PolicyAction.UPDATE_INVOICE,
    PolicyAction.READ_INVOICE,
    PolicyAction.READ_WORKER,
    PolicyAction.LIST_BRANCH_WORKERS,
]

ADMIN_ONLY = [
    PolicyAction.LIST_ALL_INVOICES,
    PolicyAction.DELETE_INVOICE,
    PolicyAction.LIST_ALL_WORKERS,
    PolicyAction.RECONCILE_BRANCH,
]


def _actor(role, branch_id=None):
    return SimpleNamespace(id="a" * 32, role=role, branch_id=branch_id)


class TestAdmin:

    @pytest.mark.parametrize("action", BRANCH_SCOPED + ADMIN_ONLY)
    def test_allowed_everywhere(self, action):
        admin = _actor("Admin")
        assert authorize(admin, action, B1).allowed
        assert authorize(admin, action, B2).allowed
        assert authorize(admin, action, None).allowed


class TestManager:

    @pytest.mark.parametrize("action", BRANCH_SCOPED)
    def test_own_branch_allowed(self, action):
        assert authorize(_actor("Manager", B1), action, B1).allowed

    @pytest.mark.parametrize("action", BRANCH_SCOPED)
    def test_other_branch_out_of_scope(self, action):
        decision = authorize(_actor("Manager", B1), action, B2)
        assert not decision.allowed
        assert decision.reason == REASON_OUT_OF_SCOPE

    @pytest.mark.parametrize("action", ADMIN_ONLY)
    def test_admin_only_actions_denied(self, action):
        decision = authorize(_actor("Manager", B1), action, B1)
        assert not decision
        assert decision.reason == REASON_ROLE_NOT_PERMITTED

    def test_manager_without_branch_is_out_of_scope(self):
        decision = authorize(_actor("Manager", None), PolicyAction.CREATE_INVOICE, B1)
        assert decision.reason == REASON_OUT_OF_SCOPE


class TestStaff:

    @pytest.mark.parametrize("action", BRANCH_SCOPED + ADMIN_ONLY)
    def test_denied_even_on_own_branch(self, action):
        decision = authorize(_actor("Staff", B1), action, B1)
        assert not decision.allowed
        assert decision.reason == REASON_ROLE_NOT_PERMITTED


class TestFailClosed:

    def test_unknown_action(self):
        decision = authorize(_actor("Admin"), "FORMAT_DISK", B1)
        assert decision.reason == REASON_UNKNOWN_ACTION

    def test_unknown_role(self):
        decision = authorize(_actor("Auditor", B1), PolicyAction.READ_INVOICE, B1)
        assert decision.reason == REASON_ROLE_NOT_PERMITTED

    def test_role_may_attempt(self):
        assert role_may_attempt("Manager", PolicyAction.UPDATE_INVOICE)
        assert not role_may_attempt("Staff", PolicyAction.READ_INVOICE)
        assert not role_may_attempt("Manager", PolicyAction.DELETE_INVOICE)


def test_same_branch_compares_as_strings():
    assert same_branch(B1, B1)
    assert not same_branch(B1, B2)
    assert not same_branch(None, B1)
    assert not same_branch(B1, None)
