"""Account cart line management: commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.lookup import cart_for, find_cart
from storefront.catalogue.lookup import ensure_in_stock, get_product
from storefront.domain import storefront


@storefront.command(part_of="ShoppingCart")
class AddToCart:
    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    """Set a line's quantity; zero or less removes the line."""

    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of="ShoppingCart")
class RemoveFromCart:
    account_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.command(part_of="ShoppingCart")
class ClearCart:
    account_id = Identifier(required=True)
    reason = String(default="cleared", max_length=50)


@storefront.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = get_product(command.product_id)
        cart = cart_for(command.account_id)
        ensure_in_stock(product, cart.quantity_of(product.id) + command.quantity)

        cart.add_item(product_id=str(product.id), quantity=command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = find_cart(command.account_id)
        if cart is None:
            if command.quantity <= 0:
                return None
            cart = ShoppingCart.create(account_id=command.account_id)

        if command.quantity > 0:
            product = get_product(command.product_id)
            ensure_in_stock(product, command.quantity)

        cart.set_quantity(product_id=command.product_id, quantity=command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = find_cart(command.account_id)
        if cart is None:
            return None
        cart.remove_item(product_id=command.product_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = find_cart(command.account_id)
        if cart is None:
            return None
        cart.clear(reason=command.reason)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)
