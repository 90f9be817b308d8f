"""Cart session: one caller's view of their cart, wherever it lives.

Guests keep their cart in client storage; signed-in customers use the
server cart. The session picks the store from the caller, folds the guest
cart into the account cart when the caller signs in, and retries that merge
before any later change if it failed. Work on one account's cart is
serialized through the cart lock, so a merge never interleaves with an add.
"""

import json

from protean.utils.globals import current_domain

from storefront.access import Caller, Owner
from storefront.cart.reconciler import CartReconciler, MergeOutcome
from storefront.cart.store import get_account_store, guest_store_for
from storefront.cart.store.guest import ClientStorage
from storefront.cart.store.port import CartStore, CartView
from storefront.locks import cart_locks
from storefront.order.factory import mask_card
from storefront.order.placement import CheckoutCart, PlaceOrder


class CartSession:
    def __init__(
        self,
        caller: Caller,
        storage: ClientStorage,
        session_key: str = "local",
        account_store: CartStore | None = None,
    ) -> None:
        self.caller = caller
        self.guest = Owner.guest(session_key)
        self.guest_store = guest_store_for(storage)
        self.account_store = account_store or get_account_store()
        self.reconciler = CartReconciler(self.guest_store, self.account_store)
        self.last_merge: MergeOutcome | None = None

    @property
    def owner(self) -> Owner:
        if self.caller.is_authenticated:
            return Owner.account(self.caller.account_id)
        return self.guest

    @property
    def store(self) -> CartStore:
        return self.account_store if self.caller.is_authenticated else self.guest_store

    # -------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------
    def sign_in(self, caller: Caller) -> MergeOutcome:
        """Switch to ``caller``'s account cart and fold the guest cart into it."""
        self.caller = caller
        self.last_merge = self.reconciler.reconcile(self.guest, self.owner)
        return self.last_merge

    def sign_out(self) -> None:
        self.caller = Caller.guest()

    def _retry_pending_merge(self):
        if self.reconciler.has_pending(self.guest):
            self.last_merge = self.reconciler.reconcile(self.guest, self.owner)

    def _run(self, operation):
        if not self.caller.is_authenticated:
            return operation()
        with cart_locks.hold(self.caller.account_id):
            self._retry_pending_merge()
            return operation()

    # -------------------------------------------------------------------
    # Cart operations
    # -------------------------------------------------------------------
    def get_cart(self) -> CartView:
        return self.store.get_cart(self.owner)

    def add_line(self, product_ref, quantity: int) -> CartView:
        return self._run(lambda: self.store.add_line(self.owner, product_ref, quantity))

    def set_line_quantity(self, product_ref, quantity: int) -> CartView:
        return self._run(lambda: self.store.set_line_quantity(self.owner, product_ref, quantity))

    def remove_line(self, product_ref) -> CartView:
        return self._run(lambda: self.store.remove_line(self.owner, product_ref))

    def clear(self) -> None:
        self._run(lambda: self.store.clear(self.owner))

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def checkout(
        self,
        delivery,
        payment_method="cash",
        card=None,
        contact_consent=False,
        client_total=None,
        idempotency_key=None,
    ):
        """Place an order for everything in the cart and empty it. Returns the order id.

        ``client_total`` defaults to the total the cart shows now; either way
        it is only compared against the server total, never stored.
        """
        masked = json.dumps(mask_card(card)) if card and payment_method == "card" else None
        if client_total is None:
            client_total = self.get_cart().total

        if self.caller.is_authenticated:
            command = CheckoutCart(
                customer_id=self.caller.account_id,
                delivery=json.dumps(delivery),
                payment_method=payment_method,
                card=masked,
                contact_consent=contact_consent,
                client_total=client_total,
                idempotency_key=idempotency_key,
            )
            return self._run(lambda: current_domain.process(command, asynchronous=False))

        _, lines = self.guest_store.snapshot(self.guest)
        order_id = current_domain.process(
            PlaceOrder(
                lines=json.dumps(lines),
                delivery=json.dumps(delivery),
                payment_method=payment_method,
                card=masked,
                contact_consent=contact_consent,
                client_total=client_total,
                idempotency_key=idempotency_key,
            ),
            asynchronous=False,
        )
        self.guest_store.clear(self.guest)
        return order_id
