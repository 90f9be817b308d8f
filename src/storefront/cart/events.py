"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to an account cart, or its quantity increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.event(part_of="ShoppingCart")
class CartCleared:
    """All lines were removed, explicitly or by a successful checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    reason = String(required=True)


@storefront.event(part_of="ShoppingCart")
class CartsMerged:
    """A guest cart snapshot was folded into an account cart at sign-in."""

    __version__ = 1

    cart_id = Identifier(required=True)
    account_id = Identifier(required=True)
    revision = String()
    lines_merged = Integer(required=True)
    lines_dropped = Integer(default=0)
