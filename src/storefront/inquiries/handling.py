"""Product inquiry submission, follow-up and delivery: commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.access import Caller, Permission, Role
from storefront.catalogue.lookup import get_product
from storefront.domain import storefront
from storefront.inquiries.inquiry import ProductInquiry
from storefront.lifecycle.dispatch import caller_of
from storefront.lifecycle.machine import PRODUCT_INQUIRY_LIFECYCLE
from storefront.order.factory import validate_phone

logger = structlog.get_logger(__name__)


@storefront.command(part_of="ProductInquiry")
class SubmitProductInquiry:
    product_id = Identifier()
    full_name = String(max_length=200)
    phone = String(max_length=30)
    city = String(max_length=100)
    address = String(max_length=500)
    note = Text()


@storefront.command(part_of="ProductInquiry")
class ChangeInquiryStatus:
    inquiry_id = Identifier(required=True)
    status = String(required=True, max_length=30)
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)
    actor_permissions = String(max_length=200)


@storefront.command(part_of="ProductInquiry")
class AssignInquiryDelivery:
    inquiry_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)
    actor_permissions = String(max_length=200)


@storefront.command(part_of="ProductInquiry")
class UpdateInquiryDelivery:
    inquiry_id = Identifier(required=True)
    delivery_status = String(required=True, max_length=20)
    notes = Text()
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)
    actor_permissions = String(max_length=200)


@storefront.command_handler(part_of=ProductInquiry)
class ProductInquiryHandler:
    @handle(SubmitProductInquiry)
    def submit_product_inquiry(self, command):
        fields = ("full_name", "phone", "city", "address")
        values = {f: (getattr(command, f) or "").strip() for f in fields}
        missing = {f: [f"{f.replace('_', ' ').capitalize()} is required"] for f, v in values.items() if not v}
        if not command.product_id:
            missing["product_id"] = ["Product is required"]
        if missing:
            raise ValidationError(missing)
        validate_phone(values["phone"])

        product = get_product(command.product_id)
        inquiry = ProductInquiry.submit(product=product, note=(command.note or "").strip() or None, **values)
        current_domain.repository_for(ProductInquiry).add(inquiry)

        logger.info("Product inquiry submitted", inquiry_id=str(inquiry.id), product_id=str(product.id))
        return str(inquiry.id)

    @handle(ChangeInquiryStatus)
    def change_inquiry_status(self, command):
        repo = current_domain.repository_for(ProductInquiry)
        inquiry = repo.get(command.inquiry_id)
        inquiry.transition_to(command.status, caller_of(command))
        repo.add(inquiry)
        return inquiry.status

    @handle(AssignInquiryDelivery)
    def assign_inquiry_delivery(self, command):
        repo = current_domain.repository_for(ProductInquiry)
        inquiry = repo.get(command.inquiry_id)
        inquiry.assign_delivery_agent(command.agent_id, caller_of(command))
        repo.add(inquiry)
        return str(inquiry.id)

    @handle(UpdateInquiryDelivery)
    def update_inquiry_delivery(self, command):
        repo = current_domain.repository_for(ProductInquiry)
        inquiry = repo.get(command.inquiry_id)
        inquiry.update_delivery_status(command.delivery_status, caller_of(command), notes=command.notes)
        repo.add(inquiry)
        return inquiry.delivery_status


def list_inquiries(caller: Caller, status=None, limit=100):
    """Operators see every inquiry; delivery agents see the ones assigned to them."""
    query = current_domain.repository_for(ProductInquiry)._dao.query
    if caller.role == Role.DELIVERY:
        query = query.filter(delivery_agent_id=caller.account_id)
    else:
        caller.require_operator(Permission.MANAGE_PRODUCT_INQUIRIES)
    if status:
        if status not in PRODUCT_INQUIRY_LIFECYCLE.states:
            raise ValidationError({"status": [f"Unknown inquiry status: {status}"]})
        query = query.filter(status=status)
    return query.order_by("-created_at").limit(limit).all().items
