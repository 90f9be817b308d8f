"""Domain events for the ProductInquiry aggregate."""

from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="ProductInquiry")
class ProductInquirySubmitted:
    __version__ = 1

    inquiry_id = Identifier(required=True)
    product_id = Identifier(required=True)
    product_name = String(required=True)
    submitted_at = DateTime(required=True)


@storefront.event(part_of="ProductInquiry")
class ProductInquiryStatusChanged:
    __version__ = 1

    inquiry_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor_id = Identifier()
    changed_at = DateTime(required=True)


@storefront.event(part_of="ProductInquiry")
class InquiryDeliveryAssigned:
    __version__ = 1

    inquiry_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    assigned_by = Identifier(required=True)


@storefront.event(part_of="ProductInquiry")
class InquiryDeliveryUpdated:
    __version__ = 1

    inquiry_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
