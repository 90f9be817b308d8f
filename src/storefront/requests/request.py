"""Order request aggregate: "buy now" without a cart or an account.

A request captures who wants what and the price at the moment it was made.
Staff follow up by phone and move it through its own, smaller lifecycle.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from storefront.access import Caller
from storefront.domain import storefront
from storefront.lifecycle.machine import ORDER_REQUEST_LIFECYCLE
from storefront.requests.events import OrderRequestStatusChanged, OrderRequestSubmitted


class OrderRequestStatus(Enum):
    NEW = "new"
    CONTACTED = "contacted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@storefront.aggregate
class OrderRequest:
    customer_name = String(required=True, max_length=200)
    customer_phone = String(required=True, max_length=30)
    city = String(required=True, max_length=100)
    address = String(required=True, max_length=500)
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    quantity = Integer(default=1, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_amount = Float(required=True, min_value=0.0)
    status = String(choices=OrderRequestStatus, default=OrderRequestStatus.NEW.value)
    status_note = Text()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def submit(cls, customer_name, customer_phone, city, address, product, price, quantity):
        now = datetime.now(UTC)
        request = cls(
            customer_name=customer_name,
            customer_phone=customer_phone,
            city=city,
            address=address,
            product_id=str(product.id),
            product_name=product.name,
            quantity=quantity,
            unit_price=price.unit_price,
            total_amount=price.line_total(quantity),
            created_at=now,
            updated_at=now,
        )
        request.raise_(
            OrderRequestSubmitted(
                request_id=str(request.id),
                product_id=str(product.id),
                quantity=quantity,
                total_amount=request.total_amount,
                submitted_at=now,
            )
        )
        return request

    def transition_to(self, target, caller: Caller, note=None):
        ORDER_REQUEST_LIFECYCLE.check(self.status, target, caller)
        previous = self.status
        now = datetime.now(UTC)
        self.status = target
        self.status_note = note
        self.updated_at = now
        self.raise_(
            OrderRequestStatusChanged(
                request_id=str(self.id),
                from_status=previous,
                to_status=target,
                actor_id=caller.account_id,
                changed_at=now,
            )
        )
