"""Order factory: turns checkout input into a priced, validated Order.

Nothing here trusts client prices. Every line is re-priced from the
catalogue at the moment the order is built, and the total is summed from
those captured prices. A client-submitted total is compared for logging
only.

All validation happens before the Order is constructed, so a rejected
checkout never produces a record.
"""

import hashlib
import json
import re

import structlog
from protean.exceptions import ValidationError

from storefront.access import Caller
from storefront.catalogue.lookup import ensure_in_stock, get_product
from storefront.catalogue.pricing import resolve_price
from storefront.order.order import Order, PaymentMethod
from storefront.settings import MIN_PHONE_DIGITS

logger = structlog.get_logger(__name__)

GUEST_REQUIRED = ("full_name", "phone", "city", "address")
ACCOUNT_REQUIRED = ("city", "address")
DELIVERY_FIELDS = ("full_name", "phone", "city", "address", "postal_code", "country")

_EXPIRY = re.compile(r"^(0[1-9]|1[0-2])/(\d{2}|\d{4})$")


def phone_digits(phone) -> str:
    return re.sub(r"\D", "", str(phone or ""))


def validate_phone(phone, field="phone"):
    if len(phone_digits(phone)) < MIN_PHONE_DIGITS:
        raise ValidationError({field: [f"Phone number must contain at least {MIN_PHONE_DIGITS} digits"]})


def consolidate_lines(raw_lines):
    """Validate raw ``{product_id, quantity}`` lines and merge repeats of a product.

    Returns a list of ``(product_id, quantity)`` in first-seen order.
    """
    if not raw_lines:
        raise ValidationError({"lines": ["At least one line is required"]})

    quantities: dict[str, int] = {}
    for index, line in enumerate(raw_lines):
        product_id = line.get("product_id") if isinstance(line, dict) else None
        quantity = line.get("quantity") if isinstance(line, dict) else None
        if not product_id:
            raise ValidationError({f"lines[{index}].product_id": ["Product is required"]})
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError({f"lines[{index}].quantity": ["Quantity must be at least 1"]})
        key = str(product_id)
        quantities[key] = quantities.get(key, 0) + quantity
    return list(quantities.items())


def clean_delivery(delivery, guest: bool) -> dict:
    """Trim delivery fields and check the ones this kind of customer must supply."""
    delivery = delivery or {}
    cleaned = {}
    for field in DELIVERY_FIELDS:
        value = delivery.get(field)
        value = value.strip() if isinstance(value, str) else value
        cleaned[field] = value or None

    required = GUEST_REQUIRED if guest else ACCOUNT_REQUIRED
    missing = {field: [f"{field.replace('_', ' ').capitalize()} is required"] for field in required if not cleaned[field]}
    if missing:
        raise ValidationError(missing)
    if cleaned["phone"]:
        validate_phone(cleaned["phone"])
    return cleaned


def mask_card(card) -> dict:
    """Validate raw card fields and keep only what may be stored."""
    number = re.sub(r"\D", "", str(card.get("number") or ""))
    if not 12 <= len(number) <= 19:
        raise ValidationError({"card.number": ["Card number must have 12 to 19 digits"]})
    expiry = str(card.get("expiry") or "").strip()
    if not _EXPIRY.match(expiry):
        raise ValidationError({"card.expiry": ["Expiry must be MM/YY"]})
    return {
        "holder_name": (card.get("holder_name") or "").strip() or None,
        "last4": number[-4:],
        "expiry": expiry,
    }


def clean_payment(payment_method, card=None):
    """Return ``(method, card_details)``; only the last four digits of a card survive."""
    try:
        method = PaymentMethod(payment_method or PaymentMethod.CASH.value)
    except ValueError:
        raise ValidationError({"payment_method": [f"Unsupported payment method: {payment_method}"]}) from None

    if method == PaymentMethod.CASH:
        return method.value, None

    card = card or {}
    if card.get("number"):
        return method.value, mask_card(card)

    last4 = str(card.get("last4") or "")
    expiry = str(card.get("expiry") or "").strip()
    if not (len(last4) == 4 and last4.isdigit()):
        raise ValidationError({"card.number": ["Card details are required for card payments"]})
    if not _EXPIRY.match(expiry):
        raise ValidationError({"card.expiry": ["Expiry must be MM/YY"]})
    return method.value, {"holder_name": card.get("holder_name") or None, "last4": last4, "expiry": expiry}


def submission_fingerprint(lines, delivery, payment_method) -> str:
    """Digest of what a guest submitted; resubmitting the same checkout gives the same digest."""
    canonical = {
        "lines": sorted(consolidate_lines(lines)),
        "delivery": clean_delivery(delivery, guest=True),
        "payment_method": payment_method or PaymentMethod.CASH.value,
    }
    return hashlib.sha256(json.dumps(canonical, sort_keys=True).encode()).hexdigest()


def price_lines(lines):
    """Resolve every line against the live catalogue.

    Returns ``(priced_lines, products)``. Raises ProductNotFound or
    OutOfStock for the first line that cannot be fulfilled.
    """
    priced, products = [], []
    for product_id, quantity in lines:
        product = get_product(product_id)
        ensure_in_stock(product, quantity)
        snapshot = resolve_price(product)
        priced.append(
            {
                "product_id": str(product.id),
                "product_name": product.name,
                "quantity": quantity,
                "list_price": snapshot.list_price,
                "discount_percent": snapshot.discount_percent,
                "unit_price": snapshot.unit_price,
                "line_total": snapshot.line_total(quantity),
            }
        )
        products.append((product, quantity))
    return priced, products


def build_order(
    caller: Caller,
    lines,
    delivery,
    payment_method,
    source,
    card=None,
    contact_consent=False,
    client_total=None,
    idempotency_key=None,
    request_fingerprint=None,
):
    """Validate, price and construct an unsaved Order.

    Returns ``(order, products)`` where ``products`` pairs each Product with
    the quantity to take out of stock once the order is persisted.
    """
    consolidated = consolidate_lines(lines)
    guest = not caller.is_authenticated
    delivery_info = clean_delivery(delivery, guest=guest)
    method, card_details = clean_payment(payment_method, card)
    priced, products = price_lines(consolidated)

    order = Order.create(
        lines=priced,
        delivery=delivery_info,
        payment_method=method,
        source=source,
        customer_id=None if guest else caller.account_id,
        card=card_details,
        contact_consent=contact_consent,
        idempotency_key=idempotency_key,
        request_fingerprint=request_fingerprint,
        placed_by=caller,
    )

    if client_total is not None and round(float(client_total), 2) != order.total_amount:
        logger.info(
            "Client total ignored",
            order_id=str(order.id),
            client_total=client_total,
            server_total=order.total_amount,
        )
    return order, products
