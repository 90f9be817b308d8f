"""Guest cart merge: command and handler.

The whole guest snapshot is merged in one unit of work: either every valid
line lands in the account cart or none does. Lines whose product no longer
exists, or whose quantity is not a positive integer, are dropped without
failing the batch.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart, is_positive_quantity
from storefront.cart.lookup import cart_for
from storefront.catalogue.lookup import get_product
from storefront.domain import storefront
from storefront.errors import ProductNotFound

logger = structlog.get_logger(__name__)


@storefront.command(part_of="ShoppingCart")
class MergeGuestCart:
    account_id = Identifier(required=True)
    guest_lines = Text(required=True)  # JSON: list of {product_id, quantity}
    revision = String(max_length=64)


def _valid_lines(raw_lines):
    """Yield ``(product_id, quantity)`` for usable guest lines; count the rest."""
    valid, dropped = [], 0
    for line in raw_lines:
        product_id = line.get("product_id") if isinstance(line, dict) else None
        quantity = line.get("quantity") if isinstance(line, dict) else None
        if not product_id or not is_positive_quantity(quantity):
            dropped += 1
            continue
        try:
            product = get_product(product_id)
        except ProductNotFound:
            dropped += 1
            continue
        valid.append((str(product.id), quantity))
    return valid, dropped


@storefront.command_handler(part_of=ShoppingCart)
class MergeGuestCartHandler:
    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        raw_lines = json.loads(command.guest_lines) if isinstance(command.guest_lines, str) else command.guest_lines
        lines, dropped = _valid_lines(raw_lines or [])

        cart = cart_for(command.account_id)
        merged = cart.merge_guest_lines(lines, revision=command.revision, dropped=dropped)
        if dropped:
            logger.info(
                "Dropped invalid guest cart lines during merge",
                account_id=str(command.account_id),
                dropped=dropped,
            )

        current_domain.repository_for(ShoppingCart).add(cart)
        return merged
