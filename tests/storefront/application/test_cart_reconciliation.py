"""Guest-to-account cart reconciliation at sign-in."""

import json

import pytest
from storefront.access import Caller, Owner
from storefront.cart.reconciler import CartReconciler
from storefront.cart.session import CartSession
from storefront.cart.store import set_account_store
from storefront.cart.store.account import AccountCartStore
from storefront.cart.store.guest import GuestCartStore, InMemoryClientStorage

GUEST = Owner.guest("local")
ACCOUNT = Owner.account("cust-001")


class FlakyAccountStore(AccountCartStore):
    """Account store whose merge fails a given number of times."""

    def __init__(self, failures=1):
        self.failures = failures
        self.merge_calls = 0

    def merge(self, owner, guest_lines, revision=None):
        self.merge_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("cart service unavailable")
        return super().merge(owner, guest_lines, revision=revision)


@pytest.fixture()
def storage():
    return InMemoryClientStorage()


def _guest_session(storage):
    return CartSession(Caller.guest(), storage)


class TestReconciler:
    def test_guest_and_account_quantities_are_summed(self, storage, make_product, customer):
        a, b = make_product(name="A"), make_product(name="B")
        account_store = AccountCartStore()
        account_store.add_line(ACCOUNT, a, 2)
        guest_store = GuestCartStore(storage)
        guest_store.add_line(GUEST, a, 3)
        guest_store.add_line(GUEST, b, 1)

        outcome = CartReconciler(guest_store, account_store).reconcile(GUEST, ACCOUNT)

        assert outcome.merged
        assert outcome.lines_merged == 2
        assert outcome.cart.quantities() == {a: 5, b: 1}
        assert guest_store.get_cart(GUEST).is_empty

    def test_empty_guest_cart_leaves_account_cart(self, storage, make_product):
        a = make_product()
        account_store = AccountCartStore()
        account_store.add_line(ACCOUNT, a, 2)

        outcome = CartReconciler(GuestCartStore(storage), account_store).reconcile(GUEST, ACCOUNT)

        assert outcome.merged
        assert outcome.lines_merged == 0
        assert outcome.cart.quantities() == {a: 2}

    def test_same_snapshot_is_not_merged_twice(self, storage, make_product):
        a = make_product()
        account_store = AccountCartStore()
        guest_store = GuestCartStore(storage)
        guest_store.add_line(GUEST, a, 3)
        revision, lines = guest_store.snapshot(GUEST)
        reconciler = CartReconciler(guest_store, account_store)

        reconciler.merge_snapshot(ACCOUNT, lines, revision=revision)
        outcome = reconciler.merge_snapshot(ACCOUNT, lines, revision=revision)

        assert outcome.merged
        assert outcome.lines_merged == 0
        assert outcome.cart.quantities() == {a: 3}

    def test_revisionless_snapshot_is_not_merged_twice(self, storage, make_product):
        a = make_product()
        storage.set(
            "cart:local",
            json.dumps([{"product": {"id": a, "name": "A", "list_price": 10.0}, "quantity": 2}]),
        )
        account_store = AccountCartStore()
        guest_store = GuestCartStore(storage)
        reconciler = CartReconciler(guest_store, account_store)
        _, lines = guest_store.snapshot(GUEST)

        reconciler.merge_snapshot(ACCOUNT, lines)
        outcome = reconciler.reconcile(GUEST, ACCOUNT)

        assert outcome.merged
        assert outcome.cart.quantities() == {a: 2}
        assert guest_store.get_cart(GUEST).is_empty

    def test_failed_merge_keeps_guest_cart(self, storage, make_product):
        a = make_product()
        guest_store = GuestCartStore(storage)
        guest_store.add_line(GUEST, a, 3)

        outcome = CartReconciler(guest_store, FlakyAccountStore()).reconcile(GUEST, ACCOUNT)

        assert not outcome.merged
        assert outcome.pending
        assert "cart service unavailable" in outcome.error.reason
        assert outcome.cart.is_empty
        assert guest_store.get_cart(GUEST).quantities() == {a: 3}


class TestCartSession:
    def test_guest_session_uses_client_storage(self, storage, make_product):
        a = make_product()
        session = _guest_session(storage)
        session.add_line(a, 1)

        assert session.owner.is_guest
        assert storage.data

    def test_sign_in_merges_guest_cart(self, storage, make_product, customer):
        p1 = make_product(list_price=50.0)
        session = _guest_session(storage)
        session.add_line(p1, 2)

        outcome = session.sign_in(customer)

        assert outcome.merged
        assert session.get_cart().total == 100.0
        assert session.get_cart().quantities() == {p1: 2}
        assert not session.reconciler.has_pending(session.guest)

    def test_failed_merge_is_retried_on_next_mutation(self, storage, make_product, customer):
        a, b = make_product(name="A"), make_product(name="B")
        flaky = FlakyAccountStore(failures=1)
        set_account_store(flaky)
        session = _guest_session(storage)
        session.add_line(a, 2)

        outcome = session.sign_in(customer)
        assert outcome.pending
        assert session.get_cart().is_empty

        view = session.add_line(b, 1)

        assert flaky.merge_calls == 2
        assert view.quantities() == {a: 2, b: 1}
        assert session.last_merge.merged
        assert not session.reconciler.has_pending(session.guest)

    def test_account_store_can_be_passed_in(self, storage, make_product, customer):
        flaky = FlakyAccountStore(failures=5)
        session = CartSession(Caller.guest(), storage, account_store=flaky)
        session.add_line(make_product(), 1)

        assert session.sign_in(customer).pending
        assert flaky.merge_calls == 1

    def test_sign_out_returns_to_guest_cart(self, storage, make_product, customer):
        a = make_product()
        session = _guest_session(storage)
        session.sign_in(customer)
        session.add_line(a, 1)

        session.sign_out()

        assert session.get_cart().is_empty
