"""Price snapshot resolution.

The effective unit price is always computed from the product as it is
stored at the moment of the call. Nothing here caches: the display-time
total in a cart and the authoritative price captured into an order are two
separate calls, and the later one wins for whatever gets persisted.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PriceSnapshot:
    list_price: float
    discount_percent: float
    unit_price: float

    def line_total(self, quantity: int) -> float:
        return round(self.unit_price * quantity, 2)


def effective_price(list_price, discount_percent) -> float:
    discount = discount_percent or 0.0
    if discount > 0:
        return round(list_price * (1 - discount / 100), 2)
    return round(list_price, 2)


def resolve_price(product) -> PriceSnapshot:
    """Resolve the unit price of ``product`` as of now.

    ``product`` is anything exposing ``list_price`` and ``discount_percent``:
    the Product aggregate or a guest cart's denormalized copy of it.
    """
    list_price = float(product.list_price)
    discount = float(product.discount_percent or 0.0)
    return PriceSnapshot(
        list_price=list_price,
        discount_percent=discount,
        unit_price=effective_price(list_price, discount),
    )
