"""Cart store port (abstract interface).

Guest carts and account carts are interchangeable behind this contract.
Every operation names the owner explicitly, so callers never depend on an
ambient "current cart".
"""

import hashlib
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass

from storefront.access import Owner
from storefront.catalogue.pricing import resolve_price


@dataclass(frozen=True)
class ProductSnapshot:
    """A denormalized copy of the product fields a cart needs to render."""

    id: str
    name: str
    list_price: float
    discount_percent: float = 0.0
    stock: int = 0

    @classmethod
    def from_product(cls, product):
        return cls(
            id=str(product.id),
            name=product.name,
            list_price=float(product.list_price),
            discount_percent=float(product.discount_percent or 0.0),
            stock=int(product.stock or 0),
        )

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data.get("id") or data.get("_id")),
            name=data.get("name") or "",
            list_price=float(data.get("list_price", 0.0)),
            discount_percent=float(data.get("discount_percent") or 0.0),
            stock=int(data.get("stock") or 0),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "list_price": self.list_price,
            "discount_percent": self.discount_percent,
            "stock": self.stock,
        }


@dataclass(frozen=True)
class CartLineView:
    product_id: str
    name: str
    quantity: int
    list_price: float
    discount_percent: float
    unit_price: float
    line_total: float
    available: bool = True
    stale: bool = False

    @classmethod
    def priced(cls, snapshot, quantity, stale=False):
        price = resolve_price(snapshot)
        return cls(
            product_id=snapshot.id,
            name=snapshot.name,
            quantity=quantity,
            list_price=price.list_price,
            discount_percent=price.discount_percent,
            unit_price=price.unit_price,
            line_total=price.line_total(quantity),
            stale=stale,
        )

    @classmethod
    def unavailable(cls, product_id, quantity):
        return cls(
            product_id=str(product_id),
            name="",
            quantity=quantity,
            list_price=0.0,
            discount_percent=0.0,
            unit_price=0.0,
            line_total=0.0,
            available=False,
        )


@dataclass(frozen=True)
class CartView:
    owner: Owner
    lines: tuple = ()

    @property
    def total(self) -> float:
        """Informational total, priced at read time. Checkout reprices."""
        return round(sum(line.unit_price * line.quantity for line in self.lines if line.available), 2)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def quantities(self) -> dict:
        return {line.product_id: line.quantity for line in self.lines}


def content_revision(lines) -> str:
    """Revision token derived from a snapshot's lines, for snapshots that carry none.

    Line order does not matter; the same lines always give the same token.
    """
    canonical = sorted(json.dumps(line, sort_keys=True, default=str) for line in lines)
    return hashlib.sha256(json.dumps(canonical).encode()).hexdigest()[:32]


def product_id_of(product_ref) -> str:
    """Accept a product id, a snapshot, or a dict copy of a product."""
    if isinstance(product_ref, ProductSnapshot):
        return product_ref.id
    if isinstance(product_ref, dict):
        return str(product_ref.get("id") or product_ref.get("_id") or "")
    return str(product_ref)


class CartStore(ABC):
    """Abstract cart store interface."""

    @abstractmethod
    def get_cart(self, owner: Owner) -> CartView:
        """Return the owner's cart priced as of now."""
        ...

    @abstractmethod
    def add_line(self, owner: Owner, product_ref, quantity: int) -> CartView:
        """Insert a line, or increment the existing line for the product."""
        ...

    @abstractmethod
    def set_line_quantity(self, owner: Owner, product_ref, quantity: int) -> CartView:
        """Set a line's quantity; zero or less removes it."""
        ...

    @abstractmethod
    def remove_line(self, owner: Owner, product_ref) -> CartView:
        ...

    @abstractmethod
    def clear(self, owner: Owner) -> None:
        ...
