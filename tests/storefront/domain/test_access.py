"""Caller identity, permissions and cart ownership."""

import pytest
from storefront.access import Caller, Owner, Permission, Role
from storefront.errors import PermissionDenied


class TestCaller:
    def test_guest_is_not_authenticated(self):
        assert Caller.guest().is_authenticated is False

    def test_customer_is_authenticated(self):
        caller = Caller.customer("cust-1")
        assert caller.is_authenticated
        assert caller.role == Role.CUSTOMER

    def test_admin_holds_every_permission(self):
        admin = Caller.staff("a-1", "admin")
        assert admin.can(Permission.MANAGE_ORDERS)
        assert admin.can(Permission.MANAGE_PRODUCT_INQUIRIES)

    def test_moderator_holds_only_granted_permissions(self):
        moderator = Caller.staff("m-1", "moderator", ["manage_orders"])
        assert moderator.can(Permission.MANAGE_ORDERS)
        assert not moderator.can(Permission.MANAGE_PRODUCT_INQUIRIES)

    def test_delivery_agent_is_not_an_operator(self):
        agent = Caller.staff("d-1", "delivery")
        assert not agent.is_operator
        with pytest.raises(PermissionDenied):
            agent.require_operator(Permission.MANAGE_ORDERS)

    def test_require_role(self):
        with pytest.raises(PermissionDenied) as exc:
            Caller.customer("c-1").require_role(Role.DELIVERY)
        assert "permission" in exc.value.messages


class TestClaims:
    def test_from_claims_parses_comma_separated_permissions(self):
        caller = Caller.from_claims("m-1", "moderator", "manage_orders, manage_product_inquiries")
        assert caller.permissions == frozenset({Permission.MANAGE_ORDERS, Permission.MANAGE_PRODUCT_INQUIRIES})

    def test_from_claims_ignores_unknown_permissions(self):
        caller = Caller.from_claims("m-1", "moderator", "manage_orders,launch_rockets")
        assert caller.permissions == frozenset({Permission.MANAGE_ORDERS})

    def test_from_claims_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            Caller.from_claims("x-1", "superuser")

    def test_claims_round_trip_through_command_fields(self):
        caller = Caller.staff("m-1", "moderator", ["manage_orders"])
        claims = caller.claims()

        rebuilt = Caller.from_claims(claims["actor_id"], claims["actor_role"], claims["actor_permissions"])

        assert rebuilt == caller


class TestOwner:
    def test_account_owner(self):
        owner = Owner.account("cust-1")
        assert not owner.is_guest

    def test_guest_owner(self):
        assert Owner.guest("sess-1").is_guest

    def test_owner_needs_exactly_one_identity(self):
        with pytest.raises(ValueError):
            Owner()
        with pytest.raises(ValueError):
            Owner(account_id="a", session_key="s")
