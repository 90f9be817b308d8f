"""Product inquiry aggregate: "contact me about this product".

Inquiries carry the same delivery assignment as orders, with their own
delivery sub-states. A delivered inquiry is converted.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text

from storefront.access import Caller, Permission, Role
from storefront.domain import storefront
from storefront.errors import InvalidTransition, PermissionDenied
from storefront.inquiries.events import (
    InquiryDeliveryAssigned,
    InquiryDeliveryUpdated,
    ProductInquiryStatusChanged,
    ProductInquirySubmitted,
)
from storefront.lifecycle.machine import INQUIRY_DELIVERY_FLOW, PRODUCT_INQUIRY_LIFECYCLE, check_delivery_step


class InquiryStatus(Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    CONVERTED = "converted"
    CLOSED = "closed"


class InquiryDeliveryStatus(Enum):
    NONE = "none"
    PENDING = "pending"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@storefront.aggregate
class ProductInquiry:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    full_name = String(required=True, max_length=200)
    phone = String(required=True, max_length=30)
    city = String(required=True, max_length=100)
    address = String(required=True, max_length=500)
    note = Text()
    status = String(choices=InquiryStatus, default=InquiryStatus.NEW.value)
    delivery_agent_id = Identifier()
    delivery_status = String(choices=InquiryDeliveryStatus, default=InquiryDeliveryStatus.NONE.value)
    delivery_notes = Text()
    assigned_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def submit(cls, product, full_name, phone, city, address, note=None):
        now = datetime.now(UTC)
        inquiry = cls(
            product_id=str(product.id),
            product_name=product.name,
            full_name=full_name,
            phone=phone,
            city=city,
            address=address,
            note=note,
            created_at=now,
            updated_at=now,
        )
        inquiry.raise_(
            ProductInquirySubmitted(
                inquiry_id=str(inquiry.id),
                product_id=str(product.id),
                product_name=product.name,
                submitted_at=now,
            )
        )
        return inquiry

    def _apply_status(self, target, caller: Caller):
        now = datetime.now(UTC)
        previous = self.status
        self.status = target
        self.updated_at = now
        self.raise_(
            ProductInquiryStatusChanged(
                inquiry_id=str(self.id),
                from_status=previous,
                to_status=target,
                actor_id=caller.account_id,
                changed_at=now,
            )
        )

    def transition_to(self, target, caller: Caller):
        PRODUCT_INQUIRY_LIFECYCLE.check(self.status, target, caller)
        if caller.role == Role.DELIVERY and str(self.delivery_agent_id) != caller.account_id:
            raise PermissionDenied("Inquiry is not assigned to you")
        self._apply_status(target, caller)

    def assign_delivery_agent(self, agent_id, caller: Caller):
        caller.require_operator(Permission.MANAGE_PRODUCT_INQUIRIES)
        if PRODUCT_INQUIRY_LIFECYCLE.is_terminal(self.status):
            raise InvalidTransition(self.status, "assigned", kind="product inquiry")

        now = datetime.now(UTC)
        self.delivery_agent_id = agent_id
        self.delivery_status = InquiryDeliveryStatus.PENDING.value
        self.assigned_at = now
        self.updated_at = now
        self.raise_(
            InquiryDeliveryAssigned(inquiry_id=str(self.id), agent_id=str(agent_id), assigned_by=caller.account_id)
        )

    def update_delivery_status(self, delivery_status, caller: Caller, notes=None):
        caller.require_role(Role.DELIVERY)
        if not self.delivery_agent_id or str(self.delivery_agent_id) != caller.account_id:
            raise PermissionDenied("Inquiry is not assigned to you")
        if PRODUCT_INQUIRY_LIFECYCLE.is_terminal(self.status):
            raise InvalidTransition(self.status, delivery_status, kind="product inquiry")

        current = self.delivery_status or InquiryDeliveryStatus.NONE.value
        check_delivery_step(INQUIRY_DELIVERY_FLOW, current, delivery_status)
        converts = delivery_status == InquiryDeliveryStatus.DELIVERED.value
        if converts:
            PRODUCT_INQUIRY_LIFECYCLE.check(self.status, InquiryStatus.CONVERTED.value, caller)

        self.delivery_status = delivery_status
        if notes is not None:
            self.delivery_notes = notes
        self.updated_at = datetime.now(UTC)
        self.raise_(
            InquiryDeliveryUpdated(
                inquiry_id=str(self.id),
                agent_id=caller.account_id,
                previous_status=current,
                new_status=delivery_status,
            )
        )
        if converts:
            self._apply_status(InquiryStatus.CONVERTED.value, caller)
