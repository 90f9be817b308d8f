"""Catalogue upkeep: commands and handler.

These keep the local product read model current: registration, repricing,
discounts, restocking and withdrawal from sale.
"""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=255)
    list_price = Float(required=True, min_value=0.0)
    discount_percent = Float(default=0.0, min_value=0.0, max_value=100.0)
    stock = Integer(default=0, min_value=0)


@storefront.command(part_of="Product")
class ChangeProductPrice:
    product_id = Identifier(required=True)
    new_price = Float(required=True, min_value=0.0)


@storefront.command(part_of="Product")
class SetProductDiscount:
    product_id = Identifier(required=True)
    discount_percent = Float(required=True, min_value=0.0, max_value=100.0)


@storefront.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Product")
class WithdrawProduct:
    product_id = Identifier(required=True)


@storefront.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            name=command.name,
            list_price=command.list_price,
            discount_percent=command.discount_percent,
            stock=command.stock,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ChangeProductPrice)
    def change_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_price(command.new_price)
        repo.add(product)

    @handle(SetProductDiscount)
    def set_discount(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.set_discount(command.discount_percent)
        repo.add(product)

    @handle(RestockProduct)
    def restock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.restock(command.quantity)
        repo.add(product)

    @handle(WithdrawProduct)
    def withdraw(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.withdraw()
        repo.add(product)
