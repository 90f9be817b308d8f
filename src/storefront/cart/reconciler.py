"""Cart reconciler: folds a guest cart into an account cart at sign-in.

Runs once per authentication event:

1. Read the guest snapshot (may be empty).
2. Merge it into the account cart as a single batch: shared products sum
   their quantities, new products are inserted at the guest quantity, and
   lines for missing products are dropped.
3. Discard the guest cart only after the server confirmed the batch.

If the batch fails, the guest cart is left untouched and the caller sees
the account cart as it stands. The next mutating call retries the merge.
Each guest write stamps a revision that the account cart remembers once
merged, so a retry of a snapshot that already landed changes nothing.
"""

from dataclasses import dataclass

import structlog

from storefront.access import Owner
from storefront.cart.store.account import AccountCartStore
from storefront.cart.store.guest import GuestCartStore
from storefront.cart.store.port import CartView, content_revision
from storefront.errors import MergeConflict
from storefront.locks import cart_locks

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MergeOutcome:
    cart: CartView
    merged: bool
    lines_merged: int = 0
    error: MergeConflict | None = None

    @property
    def pending(self) -> bool:
        """True while the guest cart still awaits a successful merge."""
        return self.error is not None


class CartReconciler:
    def __init__(self, guest_store: GuestCartStore, account_store: AccountCartStore) -> None:
        self.guest_store = guest_store
        self.account_store = account_store

    def has_pending(self, guest: Owner) -> bool:
        _, lines = self.guest_store.snapshot(guest)
        return bool(lines)

    def _merge_batch(self, account: Owner, lines, revision) -> int:
        try:
            return self.account_store.merge(account, lines, revision=revision)
        except Exception as exc:
            raise MergeConflict(account.account_id, str(exc)) from exc

    def merge_snapshot(self, account: Owner, lines, revision=None) -> MergeOutcome:
        """Merge one guest snapshot into ``account``'s cart as a single batch.

        A rejected batch is reported on the outcome, never raised.
        """
        revision = revision or (content_revision(lines) if lines else None)
        with cart_locks.hold(account.account_id):
            try:
                merged = self._merge_batch(account, lines, revision)
            except MergeConflict as exc:
                logger.warning(
                    "Guest cart merge failed; guest cart kept for retry",
                    account_id=account.account_id,
                    lines=len(lines),
                    reason=exc.reason,
                )
                return MergeOutcome(cart=self.account_store.get_cart(account), merged=False, error=exc)

            logger.info(
                "Guest cart merged",
                account_id=account.account_id,
                lines_merged=merged,
                revision=revision,
            )
            return MergeOutcome(
                cart=self.account_store.get_cart(account),
                merged=True,
                lines_merged=merged,
            )

    def reconcile(self, guest: Owner, account: Owner) -> MergeOutcome:
        """Merge ``guest``'s cart into ``account``'s cart.

        Holds the account's cart lock for the whole merge, so no other
        mutation of that cart can interleave with it. The guest cart is
        discarded only once the batch is confirmed.
        """
        with cart_locks.hold(account.account_id):
            revision, lines = self.guest_store.snapshot(guest)
            if not lines:
                self.guest_store.clear(guest)
                return MergeOutcome(cart=self.account_store.get_cart(account), merged=True)

            outcome = self.merge_snapshot(account, lines, revision=revision)
            if outcome.merged:
                self.guest_store.clear(guest)
            return outcome
