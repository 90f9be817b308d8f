"""Domain events for the OrderRequest aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="OrderRequest")
class OrderRequestSubmitted:
    __version__ = 1

    request_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    total_amount = Float(required=True)
    submitted_at = DateTime(required=True)


@storefront.event(part_of="OrderRequest")
class OrderRequestStatusChanged:
    __version__ = 1

    request_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor_id = Identifier()
    changed_at = DateTime(required=True)
