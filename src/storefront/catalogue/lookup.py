"""Catalogue lookups used by carts and checkout."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.errors import OutOfStock, ProductNotFound


def get_product(product_id) -> Product:
    """Return the product, or raise ``ProductNotFound`` if missing or withdrawn."""
    if not product_id:
        raise ProductNotFound(product_id)
    try:
        product = current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        raise ProductNotFound(product_id) from None
    if not product.is_active:
        raise ProductNotFound(product_id)
    return product


def ensure_in_stock(product, quantity):
    if product.stock < quantity:
        raise OutOfStock(
            product_id=product.id,
            requested=quantity,
            available=product.stock,
            product_name=product.name,
        )
