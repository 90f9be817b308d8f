"""Order placement: commands and handler.

Three entry points share one factory:

* ``PlaceOrder``   explicit lines, from a guest or an account.
* ``CheckoutCart`` the account's server cart; the cart is emptied in the
  same unit of work that persists the order.
* ``BuyNow``       a single product, bypassing and leaving the cart alone.

Stock is decremented when the order is persisted. There is no reservation
step, so two concurrent checkouts may both pass the stock check.

Card fields reach these commands already masked (see ``mask_card``).
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.access import Caller
from storefront.cart.cart import ShoppingCart
from storefront.cart.lookup import find_cart
from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.order.factory import build_order, submission_fingerprint
from storefront.order.order import Order, OrderSource

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier()  # None for guests
    lines = Text(required=True)  # JSON: list of {product_id, quantity}
    delivery = Text(required=True)  # JSON: DeliveryInfo fields
    payment_method = String(default="cash", max_length=10)
    card = Text()  # JSON: {holder_name, last4, expiry}
    contact_consent = Boolean(default=False)
    client_total = Float()
    idempotency_key = String(max_length=100)


@storefront.command(part_of="Order")
class CheckoutCart:
    customer_id = Identifier(required=True)
    delivery = Text(required=True)
    payment_method = String(default="cash", max_length=10)
    card = Text()
    contact_consent = Boolean(default=False)
    client_total = Float()
    idempotency_key = String(max_length=100)


@storefront.command(part_of="Order")
class BuyNow:
    customer_id = Identifier()
    product_id = Identifier(required=True)
    quantity = Integer(default=1)
    delivery = Text(required=True)
    payment_method = String(default="cash", max_length=10)
    card = Text()
    contact_consent = Boolean(default=False)


def _loads(value):
    if value is None or value == "":
        return None
    return json.loads(value) if isinstance(value, str) else value


def _caller_for(customer_id) -> Caller:
    return Caller.customer(customer_id) if customer_id else Caller.guest()


def find_by_idempotency_key(key, customer_id=None, fingerprint=None) -> Order | None:
    """Return the order a retried checkout already placed, if any.

    An account's keys are scoped to that account. Guests share no identity,
    so a guest key only matches an order placed from the same submission;
    reusing it for different contents is refused.
    """
    if not key:
        return None
    candidates = current_domain.repository_for(Order)._dao.query.filter(idempotency_key=key).all().items
    if customer_id:
        owner = str(customer_id)
        return next((o for o in candidates if o.customer_id and str(o.customer_id) == owner), None)

    guest_orders = [o for o in candidates if not o.customer_id]
    for order in guest_orders:
        if order.request_fingerprint == fingerprint:
            return order
    if guest_orders:
        raise ValidationError({"idempotency_key": ["Idempotency key was already used for a different order"]})
    return None


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    def _persist(self, order, products):
        current_domain.repository_for(Order).add(order)

        product_repo = current_domain.repository_for(Product)
        for product, quantity in products:
            product.decrement_stock(quantity)
            product_repo.add(product)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            tracking_code=order.tracking_code,
            source=order.source,
            total_amount=order.total_amount,
            customer_id=str(order.customer_id) if order.customer_id else None,
        )
        return str(order.id)

    @handle(PlaceOrder)
    def place_order(self, command):
        lines, delivery = _loads(command.lines), _loads(command.delivery)
        fingerprint = None
        if command.idempotency_key and not command.customer_id:
            fingerprint = submission_fingerprint(lines, delivery, command.payment_method)

        existing = find_by_idempotency_key(command.idempotency_key, command.customer_id, fingerprint)
        if existing:
            return str(existing.id)

        order, products = build_order(
            _caller_for(command.customer_id),
            lines=lines,
            delivery=delivery,
            payment_method=command.payment_method,
            source=OrderSource.DIRECT.value,
            card=_loads(command.card),
            contact_consent=command.contact_consent,
            client_total=command.client_total,
            idempotency_key=command.idempotency_key,
            request_fingerprint=fingerprint,
        )
        return self._persist(order, products)

    @handle(CheckoutCart)
    def checkout_cart(self, command):
        existing = find_by_idempotency_key(command.idempotency_key, command.customer_id)
        if existing:
            return str(existing.id)

        cart = find_cart(command.customer_id)
        if cart is None or not cart.items:
            raise ValidationError({"lines": ["Cart is empty"]})

        order, products = build_order(
            _caller_for(command.customer_id),
            lines=[{"product_id": str(i.product_id), "quantity": i.quantity} for i in cart.items],
            delivery=_loads(command.delivery),
            payment_method=command.payment_method,
            source=OrderSource.CART.value,
            card=_loads(command.card),
            contact_consent=command.contact_consent,
            client_total=command.client_total,
            idempotency_key=command.idempotency_key,
        )
        order_id = self._persist(order, products)

        cart.clear(reason="checked_out")
        current_domain.repository_for(ShoppingCart).add(cart)
        return order_id

    @handle(BuyNow)
    def buy_now(self, command):
        order, products = build_order(
            _caller_for(command.customer_id),
            lines=[{"product_id": command.product_id, "quantity": command.quantity}],
            delivery=_loads(command.delivery),
            payment_method=command.payment_method,
            source=OrderSource.BUY_NOW.value,
            card=_loads(command.card),
            contact_consent=command.contact_consent,
        )
        return self._persist(order, products)
