"""Account cart lookups."""

from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart


def find_cart(account_id) -> ShoppingCart | None:
    """Return the account's cart, or None if it has never been created."""
    results = (
        current_domain.repository_for(ShoppingCart)._dao.query.filter(account_id=str(account_id)).all().items
    )
    return results[0] if results else None


def cart_for(account_id) -> ShoppingCart:
    """Return the account's cart, creating an unsaved empty one on first use."""
    return find_cart(account_id) or ShoppingCart.create(account_id=str(account_id))
