"""Order status, delivery and consent commands, serialized per order."""

import json

import pytest
from protean import current_domain
from storefront.access import Caller
from storefront.errors import InvalidTransition, PermissionDenied
from storefront.lifecycle.dispatch import process_serialized
from storefront.order.consent import SetContactConsent
from storefront.order.delivery import AssignDeliveryAgent, UpdateDeliveryStatus
from storefront.order.order import Order
from storefront.order.placement import PlaceOrder
from storefront.order.status import ChangeOrderStatus


@pytest.fixture()
def order_id(make_product, delivery_address):
    product_id = make_product(list_price=25.0)
    return current_domain.process(
        PlaceOrder(
            customer_id="cust-001",
            lines=json.dumps([{"product_id": product_id, "quantity": 2}]),
            delivery=json.dumps(delivery_address),
        ),
        asynchronous=False,
    )


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _change_status(order_id, status, caller: Caller, note=None):
    return process_serialized(order_id, ChangeOrderStatus(order_id=order_id, status=status, note=note, **caller.claims()))


def _assign(order_id, agent_id, caller: Caller):
    return process_serialized(order_id, AssignDeliveryAgent(order_id=order_id, agent_id=agent_id, **caller.claims()))


def _deliver(order_id, delivery_status, caller: Caller, notes=None):
    return process_serialized(
        order_id,
        UpdateDeliveryStatus(order_id=order_id, delivery_status=delivery_status, notes=notes, **caller.claims()),
    )


class TestChangeOrderStatus:
    def test_operator_contacts_customer(self, order_id, moderator):
        assert _change_status(order_id, "contacted", moderator, note="Confirmed by phone") == "contacted"

        order = _order(order_id)
        assert order.status == "contacted"
        assert any(h.note == "Confirmed by phone" for h in order.history)

    def test_completed_order_cannot_reopen(self, order_id, admin):
        _change_status(order_id, "processing", admin)
        _change_status(order_id, "completed", admin)

        with pytest.raises(InvalidTransition):
            _change_status(order_id, "processing", admin)
        assert _order(order_id).status == "completed"

    def test_customer_is_denied(self, order_id, customer):
        with pytest.raises(PermissionDenied):
            _change_status(order_id, "cancelled", customer)
        assert _order(order_id).status == "new"

    def test_moderator_without_permission(self, order_id):
        bare = Caller.staff("mod-002", "moderator")
        with pytest.raises(PermissionDenied):
            _change_status(order_id, "contacted", bare)

    def test_unknown_status(self, order_id, admin):
        with pytest.raises(InvalidTransition):
            _change_status(order_id, "shipped", admin)


class TestDeliveryCommands:
    def test_full_cash_delivery(self, order_id, moderator, agent):
        _assign(order_id, agent.account_id, moderator)

        _deliver(order_id, "picked_up", agent)
        assert _order(order_id).status == "processing"

        _deliver(order_id, "on_the_way", agent)
        _deliver(order_id, "delivered", agent, notes="Left with concierge")

        order = _order(order_id)
        assert order.status == "completed"
        assert order.delivery_status == "delivered"
        assert order.payment_status == "paid"
        assert order.delivery_notes == "Left with concierge"

    def test_unassigned_agent_is_denied(self, order_id, moderator, agent):
        _assign(order_id, "agent-002", moderator)
        with pytest.raises(PermissionDenied):
            _deliver(order_id, "picked_up", agent)
        assert _order(order_id).delivery_status == "pending"

    def test_agent_cannot_assign(self, order_id, agent):
        with pytest.raises(PermissionDenied):
            _assign(order_id, agent.account_id, agent)

    def test_assigned_agent_completes_through_status_command(self, order_id, moderator, agent):
        _assign(order_id, agent.account_id, moderator)
        _change_status(order_id, "processing", agent)
        _change_status(order_id, "completed", agent)
        assert _order(order_id).status == "completed"


class TestContactConsent:
    def test_owner_sets_consent(self, order_id, customer):
        result = current_domain.process(
            SetContactConsent(order_id=order_id, contact_consent=True, **customer.claims()),
            asynchronous=False,
        )
        assert result is True
        assert _order(order_id).contact_consent is True

    def test_stranger_is_denied(self, order_id):
        stranger = Caller.customer("cust-999")
        with pytest.raises(PermissionDenied):
            current_domain.process(
                SetContactConsent(order_id=order_id, contact_consent=True, **stranger.claims()),
                asynchronous=False,
            )
