"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A cart, buy-now or direct checkout produced a persisted order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier()
    tracking_code = String(required=True)
    source = String(required=True)
    payment_method = String(required=True)
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor_id = Identifier()
    actor_role = String(required=True)
    note = Text()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class DeliveryAgentAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    assigned_by = Identifier(required=True)
    assigned_at = DateTime(required=True)


@storefront.event(part_of="Order")
class DeliveryStatusUpdated:
    """The assigned agent advanced the order's delivery sub-state."""

    __version__ = 1

    order_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    notes = Text()


@storefront.event(part_of="Order")
class OrderPaid:
    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    payment_method = String(required=True)
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class ContactConsentChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    contact_consent = Boolean(required=True)
    changed_by = Identifier()
