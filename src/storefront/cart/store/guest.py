"""Guest cart store backed by client-owned key/value storage.

The guest cart is never server-addressable. It lives in whatever blob store
the client owns (browser local storage in the storefront UI) and keeps full
product snapshots, because there is no guaranteed round trip to re-hydrate
product data. Reads refresh the snapshots against the catalogue when they
can and fall back to the last-known copy when they cannot.
"""

import json
from abc import ABC, abstractmethod
from uuid import uuid4

import structlog
from protean.exceptions import ProteanException, ValidationError

from storefront.access import Owner
from storefront.cart.cart import is_positive_quantity
from storefront.cart.store.port import (
    CartLineView,
    CartStore,
    CartView,
    ProductSnapshot,
    content_revision,
    product_id_of,
)
from storefront.catalogue.lookup import ensure_in_stock, get_product
from storefront.settings import GUEST_CART_KEY

logger = structlog.get_logger(__name__)


class ClientStorage(ABC):
    """Client-local key/value persistence (e.g. browser local storage)."""

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...


class InMemoryClientStorage(ClientStorage):
    def __init__(self, initial: dict | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class GuestCartStore(CartStore):
    def __init__(self, storage: ClientStorage, key: str = GUEST_CART_KEY) -> None:
        self.storage = storage
        self.key = key

    # -------------------------------------------------------------------
    # Blob handling
    # -------------------------------------------------------------------
    def _key_for(self, owner: Owner) -> str:
        if not owner.is_guest:
            raise ValueError("GuestCartStore only holds guest carts")
        return f"{self.key}:{owner.session_key}"

    def _load(self, owner):
        """Read the blob, discarding anything that is not a usable line.

        Blobs written without a revision (older list-shaped carts) get one
        derived from their lines, so merging them twice is still detected.
        """
        raw = self.storage.get(self._key_for(owner))
        if not raw:
            return {"revision": None, "lines": []}
        try:
            blob = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Unreadable guest cart discarded", session_key=owner.session_key)
            return {"revision": None, "lines": []}

        if isinstance(blob, list):
            blob = {"revision": None, "lines": blob}
        lines = [
            line
            for line in blob.get("lines") or []
            if isinstance(line, dict)
            and isinstance(line.get("product"), dict)
            and is_positive_quantity(line.get("quantity"))
        ]
        revision = blob.get("revision")
        if not revision and lines:
            revision = content_revision(self._as_snapshot_lines(lines))
        return {"revision": revision, "lines": lines}

    @staticmethod
    def _as_snapshot_lines(lines):
        return [{"product_id": product_id_of(line["product"]), "quantity": line["quantity"]} for line in lines]

    def _save(self, owner, lines, revision):
        self.storage.set(self._key_for(owner), json.dumps({"revision": revision, "lines": lines}))

    def _write(self, owner, lines):
        """Persist a mutation; every mutation stamps a new revision."""
        self._save(owner, lines, uuid4().hex)

    @staticmethod
    def _find(lines, product_id):
        return next((line for line in lines if product_id_of(line["product"]) == product_id), None)

    # -------------------------------------------------------------------
    # Snapshot access for the reconciler
    # -------------------------------------------------------------------
    def snapshot(self, owner: Owner):
        """Return ``(revision, [{product_id, quantity}, ...])`` without refreshing."""
        blob = self._load(owner)
        return blob["revision"], self._as_snapshot_lines(blob["lines"])

    # -------------------------------------------------------------------
    # CartStore contract
    # -------------------------------------------------------------------
    def get_cart(self, owner: Owner) -> CartView:
        blob = self._load(owner)
        views = []
        refreshed = []
        for line in blob["lines"]:
            snapshot = ProductSnapshot.from_dict(line["product"])
            stale = False
            try:
                snapshot = ProductSnapshot.from_product(get_product(snapshot.id))
            except (ProteanException, ConnectionError) as exc:
                logger.warning(
                    "Guest cart line kept with last-known product data",
                    product_id=snapshot.id,
                    error=str(exc),
                )
                stale = True
            refreshed.append({"product": snapshot.to_dict(), "quantity": line["quantity"]})
            views.append(CartLineView.priced(snapshot, line["quantity"], stale=stale))

        if blob["lines"]:
            # Refreshing product data does not count as a cart mutation
            self._save(owner, refreshed, blob["revision"])
        return CartView(owner=owner, lines=tuple(views))

    def add_line(self, owner: Owner, product_ref, quantity: int) -> CartView:
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        product = get_product(product_id_of(product_ref))
        lines = self._load(owner)["lines"]
        existing = self._find(lines, str(product.id))
        new_quantity = (existing["quantity"] if existing else 0) + quantity
        ensure_in_stock(product, new_quantity)

        snapshot = ProductSnapshot.from_product(product).to_dict()
        if existing:
            existing["quantity"] = new_quantity
            existing["product"] = snapshot
        else:
            lines.append({"product": snapshot, "quantity": quantity})
        self._write(owner, lines)
        return self.get_cart(owner)

    def set_line_quantity(self, owner: Owner, product_ref, quantity: int) -> CartView:
        if quantity <= 0:
            return self.remove_line(owner, product_ref)

        product_id = product_id_of(product_ref)
        lines = self._load(owner)["lines"]
        existing = self._find(lines, product_id)
        if existing is None:
            raise ValidationError({"product_id": ["Product is not in the cart"]})

        existing["quantity"] = quantity
        self._write(owner, lines)
        return self.get_cart(owner)

    def remove_line(self, owner: Owner, product_ref) -> CartView:
        product_id = product_id_of(product_ref)
        lines = self._load(owner)["lines"]
        remaining = [line for line in lines if product_id_of(line["product"]) != product_id]
        if len(remaining) != len(lines):
            self._write(owner, remaining)
        return self.get_cart(owner)

    def clear(self, owner: Owner) -> None:
        self.storage.delete(self._key_for(owner))
