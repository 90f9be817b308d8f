"""Account cart store backed by the ShoppingCart aggregate."""

import json

from protean.utils.globals import current_domain

from storefront.access import Owner
from storefront.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from storefront.cart.lookup import find_cart
from storefront.cart.merging import MergeGuestCart
from storefront.cart.store.port import CartLineView, CartStore, CartView, ProductSnapshot, product_id_of
from storefront.catalogue.lookup import get_product
from storefront.errors import ProductNotFound


def _account_id(owner: Owner) -> str:
    if owner.is_guest:
        raise ValueError("AccountCartStore only holds account carts")
    return owner.account_id


class AccountCartStore(CartStore):
    def get_cart(self, owner: Owner) -> CartView:
        cart = find_cart(_account_id(owner))
        if cart is None:
            return CartView(owner=owner)

        views = []
        for item in cart.items:
            try:
                product = get_product(item.product_id)
            except ProductNotFound:
                views.append(CartLineView.unavailable(item.product_id, item.quantity))
                continue
            views.append(CartLineView.priced(ProductSnapshot.from_product(product), item.quantity))
        return CartView(owner=owner, lines=tuple(views))

    def add_line(self, owner: Owner, product_ref, quantity: int) -> CartView:
        current_domain.process(
            AddToCart(
                account_id=_account_id(owner),
                product_id=product_id_of(product_ref),
                quantity=quantity,
            ),
            asynchronous=False,
        )
        return self.get_cart(owner)

    def set_line_quantity(self, owner: Owner, product_ref, quantity: int) -> CartView:
        current_domain.process(
            UpdateCartQuantity(
                account_id=_account_id(owner),
                product_id=product_id_of(product_ref),
                quantity=quantity,
            ),
            asynchronous=False,
        )
        return self.get_cart(owner)

    def remove_line(self, owner: Owner, product_ref) -> CartView:
        current_domain.process(
            RemoveFromCart(account_id=_account_id(owner), product_id=product_id_of(product_ref)),
            asynchronous=False,
        )
        return self.get_cart(owner)

    def clear(self, owner: Owner) -> None:
        current_domain.process(ClearCart(account_id=_account_id(owner)), asynchronous=False)

    def merge(self, owner: Owner, guest_lines, revision=None) -> int:
        """Merge a guest snapshot as one batch; returns the number of lines merged."""
        return current_domain.process(
            MergeGuestCart(
                account_id=_account_id(owner),
                guest_lines=json.dumps(list(guest_lines)),
                revision=revision,
            ),
            asynchronous=False,
        )
