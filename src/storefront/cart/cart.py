"""Shopping cart aggregate for authenticated accounts.

One cart per account, created lazily on the first add and never deleted:
checkout and explicit clears empty it instead. Lines are keyed by product,
so a product appears at most once and a line never holds a quantity below
one. Guest carts do not live here; they stay in client storage until the
owner signs in and the reconciler folds them in.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, Text

from storefront.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartsMerged,
)
from storefront.domain import storefront
from storefront.settings import MERGE_TOKEN_HISTORY


def is_positive_quantity(quantity) -> bool:
    return isinstance(quantity, int) and not isinstance(quantity, bool) and quantity >= 1


@storefront.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@storefront.aggregate
class ShoppingCart:
    account_id = Identifier(required=True)
    items = HasMany(CartItem)
    merged_revisions = Text()  # JSON array of guest snapshot revisions already merged
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def one_line_per_product(self):
        product_ids = [str(i.product_id) for i in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"items": ["A product can appear only once in a cart"]})

    @classmethod
    def create(cls, account_id):
        now = datetime.now(UTC)
        return cls(
            account_id=account_id,
            merged_revisions=json.dumps([]),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def quantity_of(self, product_id) -> int:
        line = self.line_for(product_id)
        return line.quantity if line else 0

    def has_merged(self, revision) -> bool:
        if not revision:
            return False
        return revision in json.loads(self.merged_revisions or "[]")

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity):
        """Add ``quantity`` of a product, incrementing an existing line."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        existing = self.line_for(product_id)
        if existing:
            existing.quantity += quantity
            new_quantity = existing.quantity
        else:
            self.add_items(CartItem(product_id=product_id, quantity=quantity, added_at=now))
            new_quantity = quantity
        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                account_id=str(self.account_id),
                product_id=str(product_id),
                quantity=quantity,
                new_quantity=new_quantity,
            )
        )

    def set_quantity(self, product_id, quantity):
        """Set a line's quantity. Zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(product_id)
            return

        existing = self.line_for(product_id)
        if existing is None:
            raise ValidationError({"product_id": ["Product is not in the cart"]})

        previous = existing.quantity
        existing.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id):
        """Remove a product's line. Removing an absent line is a no-op."""
        existing = self.line_for(product_id)
        if existing is None:
            return

        self.remove_items(existing)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def clear(self, reason="cleared"):
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(cart_id=str(self.id), reason=reason))

    # -------------------------------------------------------------------
    # Guest cart merge
    # -------------------------------------------------------------------
    def merge_guest_lines(self, guest_lines, revision=None, dropped=0):
        """Fold a guest snapshot into this cart, summing shared products.

        Args:
            guest_lines: Iterable of ``(product_id, quantity)`` pairs already
                checked against the catalogue.
            revision: Token of the guest snapshot. A snapshot merged once is
                not merged again.
            dropped: Number of guest lines the caller discarded as invalid.

        Returns:
            The number of lines merged.
        """
        if self.has_merged(revision):
            return 0

        now = datetime.now(UTC)
        merged = 0
        for product_id, quantity in guest_lines:
            existing = self.line_for(product_id)
            if existing:
                existing.quantity += quantity
            else:
                self.add_items(CartItem(product_id=product_id, quantity=quantity, added_at=now))
            merged += 1

        if revision:
            revisions = json.loads(self.merged_revisions or "[]")
            revisions.append(revision)
            self.merged_revisions = json.dumps(revisions[-MERGE_TOKEN_HISTORY:])
        self.updated_at = now

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                account_id=str(self.account_id),
                revision=revision,
                lines_merged=merged,
                lines_dropped=dropped,
            )
        )
        return merged
