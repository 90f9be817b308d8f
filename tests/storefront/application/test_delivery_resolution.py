"""Resolving scanned or typed identifiers to orders."""

import pytest
from protean import current_domain
from storefront.access import Caller
from storefront.delivery import resolution
from storefront.delivery.resolution import Ambiguous, Found, NotFound, lookup_order, require_found, resolve_order
from storefront.errors import AmbiguousIdentifier, OrderNotFound
from storefront.order.order import Order

OPERATOR = Caller.staff("mod-1", "moderator", ["manage_orders"])


def _store_order(order_id):
    order = Order.create(
        lines=[
            {
                "product_id": "prod-1",
                "product_name": "Desk Lamp",
                "quantity": 1,
                "list_price": 10.0,
                "discount_percent": 0.0,
                "unit_price": 10.0,
                "line_total": 10.0,
            }
        ],
        delivery={"city": "Rabat", "address": "12 Av"},
        payment_method="cash",
        source="direct",
        order_id=order_id,
    )
    current_domain.repository_for(Order).add(order)
    return order


class TestLookup:
    def test_tracking_code_resolves(self):
        _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")

        result = lookup_order("ABC123DEF456")

        assert isinstance(result, Found)
        assert str(result.order.id) == "3f2a9c1e-8b7d-4e6f-a5c4-abc123def456"

    @pytest.mark.parametrize("raw", ["abc123def456", "  #ABC123DEF456 ", "#abc123DEF456"])
    def test_input_is_normalized(self, raw):
        _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")
        assert isinstance(lookup_order(raw), Found)

    def test_full_id_resolves_ignoring_case(self):
        _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")
        result = lookup_order("3F2A9C1E-8B7D-4E6F-A5C4-ABC123DEF456")
        assert isinstance(result, Found)

    def test_short_suffix_falls_back_to_scan(self):
        _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")
        assert isinstance(lookup_order("def456"), Found)

    def test_unknown_identifier(self):
        _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")
        result = lookup_order("ZZZ999ZZZ999")
        assert result == NotFound(identifier="ZZZ999ZZZ999")

    def test_blank_identifier(self):
        assert isinstance(lookup_order("  # "), NotFound)

    def test_shared_suffix_is_ambiguous(self):
        _store_order("11111111-2222-4333-8444-aaaa1111beef")
        _store_order("55555555-6666-4777-8888-bbbb1111beef")

        result = lookup_order("1111BEEF")

        assert result == Ambiguous(identifier="1111BEEF", match_count=2)

    def test_scan_walks_every_page(self, monkeypatch):
        monkeypatch.setattr(resolution, "SCAN_PAGE_SIZE", 2)
        for index in range(4):
            _store_order(f"00000000-0000-4000-8000-00000000000{index}")
        _store_order("99999999-0000-4000-8000-0000cafe0042")

        result = lookup_order("cafe0042")

        assert isinstance(result, Found)
        assert str(result.order.id).endswith("cafe0042")


class TestAssignmentWarning:
    def test_unassigned_order_warns(self, agent):
        _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")
        result = lookup_order("ABC123DEF456", caller=agent)
        assert not result.assigned_to_caller
        assert result.warning == "Order is not assigned to a delivery agent yet"

    def test_other_agents_order_warns(self, agent):
        order = _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")
        order.assign_delivery_agent("agent-999", OPERATOR)
        current_domain.repository_for(Order).add(order)

        result = lookup_order("ABC123DEF456", caller=agent)

        assert result.warning == "Order is assigned to another delivery agent"

    def test_own_order_has_no_warning(self, agent):
        order = _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")
        order.assign_delivery_agent(agent.account_id, OPERATOR)
        current_domain.repository_for(Order).add(order)

        result = lookup_order("ABC123DEF456", caller=agent)

        assert result.assigned_to_caller
        assert result.warning is None


class TestRequireFound:
    def test_not_found_raises(self):
        with pytest.raises(OrderNotFound):
            resolve_order("nothing-here")

    def test_ambiguous_raises(self):
        _store_order("11111111-2222-4333-8444-aaaa1111beef")
        _store_order("55555555-6666-4777-8888-bbbb1111beef")
        with pytest.raises(AmbiguousIdentifier) as exc:
            require_found(lookup_order("beef"))
        assert exc.value.match_count == 2

    def test_found_is_returned(self):
        _store_order("3f2a9c1e-8b7d-4e6f-a5c4-abc123def456")
        assert str(resolve_order("#abc123def456").id).endswith("abc123def456")
