"""Domain events for the Product aggregate."""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductRegistered:
    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    list_price = Float(required=True)
    discount_percent = Float()
    stock = Integer()


@storefront.event(part_of="Product")
class ProductPriceChanged:
    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Float()
    new_price = Float(required=True)


@storefront.event(part_of="Product")
class ProductDiscountChanged:
    __version__ = 1

    product_id = Identifier(required=True)
    previous_discount = Float()
    new_discount = Float(required=True)


@storefront.event(part_of="Product")
class ProductRestocked:
    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_stock = Integer(required=True)


@storefront.event(part_of="Product")
class StockDecremented:
    """Stock was taken by a placed order. There is no reservation step."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
