"""Product aggregate: the slice of the catalogue that checkout depends on.

Only what carts and orders need is modelled here: a display name, the list
price, an active discount and the stock count. Everything else a catalogue
carries (media, SEO, categories) belongs to the catalogue service.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from storefront.catalogue.events import (
    ProductDiscountChanged,
    ProductPriceChanged,
    ProductRegistered,
    ProductRestocked,
    StockDecremented,
)
from storefront.domain import storefront


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    list_price = Float(required=True, min_value=0.0)
    discount_percent = Float(default=0.0, min_value=0.0, max_value=100.0)
    stock = Integer(default=0)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    @classmethod
    def register(cls, name, list_price, discount_percent=0.0, stock=0):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            list_price=list_price,
            discount_percent=discount_percent or 0.0,
            stock=stock,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                list_price=list_price,
                discount_percent=product.discount_percent,
                stock=stock,
            )
        )
        return product

    def change_price(self, new_price):
        previous = self.list_price
        self.list_price = new_price
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous,
                new_price=new_price,
            )
        )

    def set_discount(self, discount_percent):
        previous = self.discount_percent
        self.discount_percent = discount_percent
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ProductDiscountChanged(
                product_id=str(self.id),
                previous_discount=previous,
                new_discount=discount_percent,
            )
        )

    def restock(self, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Restock quantity must be at least 1"]})
        self.stock += quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(ProductRestocked(product_id=str(self.id), quantity=quantity, new_stock=self.stock))

    def decrement_stock(self, quantity):
        """Take stock for a placed order. Callers check availability first."""
        self.stock -= quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(StockDecremented(product_id=str(self.id), quantity=quantity, remaining=self.stock))

    def withdraw(self):
        self.is_active = False
        self.updated_at = datetime.now(UTC)
