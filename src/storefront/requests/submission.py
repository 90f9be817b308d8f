"""Order request submission and follow-up: commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.access import Caller, Permission
from storefront.catalogue.lookup import ensure_in_stock, get_product
from storefront.catalogue.pricing import resolve_price
from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.lifecycle.dispatch import caller_of
from storefront.lifecycle.machine import ORDER_REQUEST_LIFECYCLE
from storefront.order.factory import validate_phone
from storefront.requests.request import OrderRequest

logger = structlog.get_logger(__name__)


@storefront.command(part_of="OrderRequest")
class SubmitOrderRequest:
    customer_name = String(max_length=200)
    customer_phone = String(max_length=30)
    city = String(max_length=100)
    address = String(max_length=500)
    product_id = Identifier()
    quantity = Integer(default=1)


@storefront.command(part_of="OrderRequest")
class ChangeOrderRequestStatus:
    request_id = Identifier(required=True)
    status = String(required=True, max_length=30)
    note = Text()
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)
    actor_permissions = String(max_length=200)


def _required(command, *fields):
    values = {f: (getattr(command, f) or "").strip() for f in fields}
    missing = {f: [f"{f.replace('_', ' ').capitalize()} is required"] for f, v in values.items() if not v}
    if missing:
        raise ValidationError(missing)
    return values


@storefront.command_handler(part_of=OrderRequest)
class OrderRequestHandler:
    @handle(SubmitOrderRequest)
    def submit_order_request(self, command):
        values = _required(command, "customer_name", "customer_phone", "city", "address")
        validate_phone(values["customer_phone"], field="customer_phone")
        if not command.product_id:
            raise ValidationError({"product_id": ["Product is required"]})

        quantity = max(1, command.quantity or 1)
        product = get_product(command.product_id)
        ensure_in_stock(product, quantity)

        request = OrderRequest.submit(product=product, price=resolve_price(product), quantity=quantity, **values)
        current_domain.repository_for(OrderRequest).add(request)

        product.decrement_stock(quantity)
        current_domain.repository_for(Product).add(product)

        logger.info("Order request submitted", request_id=str(request.id), product_id=str(product.id))
        return str(request.id)

    @handle(ChangeOrderRequestStatus)
    def change_order_request_status(self, command):
        repo = current_domain.repository_for(OrderRequest)
        request = repo.get(command.request_id)
        request.transition_to(command.status, caller_of(command), note=command.note)
        repo.add(request)
        return request.status


def list_order_requests(caller: Caller, status=None, limit=100):
    caller.require_operator(Permission.MANAGE_ORDERS)
    query = current_domain.repository_for(OrderRequest)._dao.query
    if status:
        if status not in ORDER_REQUEST_LIFECYCLE.states:
            raise ValidationError({"status": [f"Unknown request status: {status}"]})
        query = query.filter(status=status)
    return query.order_by("-created_at").limit(limit).all().items
