"""Cart store factory.

Guest carts are bound to a client's storage, so a guest store is built per
session. The account store is shared; get_account_store() / set_account_store()
swap the implementation (tests inject failing stores to exercise merge retry).
"""

from storefront.cart.store.account import AccountCartStore
from storefront.cart.store.guest import ClientStorage, GuestCartStore
from storefront.cart.store.port import CartStore

_current_account_store: CartStore | None = None


def get_account_store() -> CartStore:
    """Return the account cart store. Defaults to AccountCartStore."""
    global _current_account_store
    if _current_account_store is None:
        _current_account_store = AccountCartStore()
    return _current_account_store


def set_account_store(store: CartStore) -> None:
    global _current_account_store
    _current_account_store = store


def reset_account_store() -> None:
    global _current_account_store
    _current_account_store = None


def guest_store_for(storage: ClientStorage) -> GuestCartStore:
    return GuestCartStore(storage)
