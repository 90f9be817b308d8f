"""Order placement: direct orders, cart checkout and buy-now."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.access import Caller
from storefront.cart.session import CartSession
from storefront.cart.store.guest import InMemoryClientStorage
from storefront.catalogue.product import Product
from storefront.errors import OutOfStock, ProductNotFound
from storefront.order.order import Order
from storefront.order.placement import BuyNow, CheckoutCart, PlaceOrder


def _place(lines, delivery, customer_id=None, **kwargs):
    return current_domain.process(
        PlaceOrder(
            customer_id=customer_id,
            lines=json.dumps(lines),
            delivery=json.dumps(delivery),
            **kwargs,
        ),
        asynchronous=False,
    )


def _order_count():
    return len(current_domain.repository_for(Order)._dao.query.all().items)


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


class TestPlaceOrder:
    def test_total_comes_from_catalogue(self, make_product, delivery_address):
        product_id = make_product(list_price=100.0, discount_percent=20.0)

        order_id = _place([{"product_id": product_id, "quantity": 3}], delivery_address, client_total=1.0)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.total_amount == 240.0
        assert order.items[0].unit_price == 80.0
        assert order.items[0].list_price == 100.0
        assert order.status == "new"
        assert order.source == "direct"

    def test_repeated_product_lines_are_consolidated(self, make_product, delivery_address):
        product_id = make_product(list_price=10.0)
        order_id = _place(
            [{"product_id": product_id, "quantity": 1}, {"product_id": product_id, "quantity": 2}],
            delivery_address,
        )
        order = current_domain.repository_for(Order).get(order_id)
        assert len(order.items) == 1
        assert order.items[0].quantity == 3

    def test_stock_is_decremented(self, make_product, delivery_address):
        product_id = make_product(stock=5)
        _place([{"product_id": product_id, "quantity": 2}], delivery_address)
        assert _stock(product_id) == 3

    def test_empty_lines_create_nothing(self, delivery_address):
        with pytest.raises(ValidationError) as exc:
            _place([], delivery_address)
        assert "lines" in exc.value.messages
        assert _order_count() == 0

    def test_unknown_product_creates_nothing(self, make_product, delivery_address):
        product_id = make_product(stock=5)
        with pytest.raises(ProductNotFound):
            _place(
                [{"product_id": product_id, "quantity": 1}, {"product_id": "missing", "quantity": 1}],
                delivery_address,
            )
        assert _order_count() == 0
        assert _stock(product_id) == 5

    def test_insufficient_stock_creates_nothing(self, make_product, delivery_address):
        product_id = make_product(stock=1)
        with pytest.raises(OutOfStock):
            _place([{"product_id": product_id, "quantity": 2}], delivery_address)
        assert _order_count() == 0
        assert _stock(product_id) == 1

    def test_guest_needs_phone_with_enough_digits(self, make_product, delivery_address):
        product_id = make_product()
        with pytest.raises(ValidationError) as exc:
            _place([{"product_id": product_id, "quantity": 1}], {**delivery_address, "phone": "12-34-56"})
        assert "phone" in exc.value.messages
        assert _order_count() == 0

    def test_guest_needs_name(self, make_product, delivery_address):
        product_id = make_product()
        with pytest.raises(ValidationError) as exc:
            _place([{"product_id": product_id, "quantity": 1}], {**delivery_address, "full_name": "  "})
        assert "full_name" in exc.value.messages

    def test_account_needs_only_address(self, make_product):
        product_id = make_product()
        order_id = _place(
            [{"product_id": product_id, "quantity": 1}],
            {"city": "Rabat", "address": "12 Av"},
            customer_id="cust-001",
        )
        order = current_domain.repository_for(Order).get(order_id)
        assert str(order.customer_id) == "cust-001"
        assert order.delivery.full_name is None

    def test_bad_quantity_is_rejected(self, make_product, delivery_address):
        product_id = make_product()
        with pytest.raises(ValidationError):
            _place([{"product_id": product_id, "quantity": 0}], delivery_address)

    def test_unknown_payment_method(self, make_product, delivery_address):
        with pytest.raises(ValidationError) as exc:
            _place([{"product_id": make_product(), "quantity": 1}], delivery_address, payment_method="bitcoin")
        assert "payment_method" in exc.value.messages

    def test_card_order_keeps_last_four_only(self, make_product, delivery_address):
        order_id = _place(
            [{"product_id": make_product(), "quantity": 1}],
            delivery_address,
            payment_method="card",
            card=json.dumps({"holder_name": "Amal", "number": "4242 4242 4242 4242", "expiry": "12/29"}),
        )
        order = current_domain.repository_for(Order).get(order_id)
        assert order.card.last4 == "4242"
        assert order.payment_status == "pending"

    def test_card_order_without_card(self, make_product, delivery_address):
        with pytest.raises(ValidationError):
            _place([{"product_id": make_product(), "quantity": 1}], delivery_address, payment_method="card")

    def test_idempotency_key_returns_same_order(self, make_product, delivery_address):
        product_id = make_product(stock=10)
        lines = [{"product_id": product_id, "quantity": 1}]

        first = _place(lines, delivery_address, idempotency_key="key-1")
        second = _place(lines, delivery_address, idempotency_key="key-1")

        assert first == second
        assert _order_count() == 1
        assert _stock(product_id) == 9

    def test_idempotency_key_is_scoped_per_owner(self, make_product, delivery_address):
        lines = [{"product_id": make_product(), "quantity": 1}]
        first = _place(lines, delivery_address, idempotency_key="key-1")
        second = _place(lines, delivery_address, customer_id="cust-001", idempotency_key="key-1")
        assert first != second

    def test_guests_reusing_a_key_do_not_share_an_order(self, make_product, delivery_address):
        lamp, chair = make_product(name="Lamp"), make_product(name="Chair")
        other_address = {**delivery_address, "full_name": "Youssef Amrani", "address": "3 Rue Fes"}

        first = _place([{"product_id": lamp, "quantity": 1}], delivery_address, idempotency_key="checkout-1")
        with pytest.raises(ValidationError) as exc:
            _place([{"product_id": chair, "quantity": 1}], other_address, idempotency_key="checkout-1")

        assert "idempotency_key" in exc.value.messages
        assert _order_count() == 1
        order = current_domain.repository_for(Order).get(first)
        assert [str(item.product_id) for item in order.items] == [lamp]

    def test_guest_retry_matches_on_contents_not_formatting(self, make_product, delivery_address):
        product_id = make_product(stock=10)
        padded = {key: f"  {value}  " for key, value in delivery_address.items() if value}

        first = _place([{"product_id": product_id, "quantity": 2}], delivery_address, idempotency_key="k")
        second = _place(
            [{"product_id": product_id, "quantity": 1}, {"product_id": product_id, "quantity": 1}],
            padded,
            idempotency_key="k",
        )

        assert first == second
        assert _stock(product_id) == 8

    def test_guest_session_keeps_cart_when_key_is_taken(self, make_product, delivery_address):
        lamp, chair = make_product(name="Lamp"), make_product(name="Chair")
        first_guest = CartSession(Caller.guest(), InMemoryClientStorage(), session_key="a")
        second_guest = CartSession(Caller.guest(), InMemoryClientStorage(), session_key="b")
        first_guest.add_line(lamp, 1)
        second_guest.add_line(chair, 1)

        first_guest.checkout(delivery_address, idempotency_key="checkout-1")
        with pytest.raises(ValidationError):
            second_guest.checkout({**delivery_address, "full_name": "Youssef Amrani"}, idempotency_key="checkout-1")

        assert first_guest.get_cart().is_empty
        assert second_guest.get_cart().quantities() == {chair: 1}


class TestCheckoutCart:
    def test_checkout_empties_cart(self, make_product, customer, delivery_address):
        product_id = make_product(list_price=50.0)
        session = CartSession(customer, InMemoryClientStorage())
        session.add_line(product_id, 2)

        order_id = session.checkout(delivery_address)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == "new"
        assert order.source == "cart"
        assert order.total_amount == 100.0
        assert order.payment_method == "cash"
        assert session.get_cart().is_empty

    def test_empty_cart_cannot_check_out(self, customer, delivery_address):
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                CheckoutCart(customer_id=customer.account_id, delivery=json.dumps(delivery_address)),
                asynchronous=False,
            )
        assert exc.value.messages == {"lines": ["Cart is empty"]}

    def test_failed_checkout_keeps_cart(self, make_product, customer, delivery_address):
        product_id = make_product(stock=5)
        session = CartSession(customer, InMemoryClientStorage())
        session.add_line(product_id, 2)

        with pytest.raises(ValidationError):
            session.checkout({"city": "", "address": ""})

        assert session.get_cart().quantities() == {product_id: 2}
        assert _order_count() == 0

    def test_guest_checkout_clears_client_cart(self, make_product, delivery_address):
        product_id = make_product(list_price=20.0)
        storage = InMemoryClientStorage()
        session = CartSession(Caller.guest(), storage)
        session.add_line(product_id, 3)

        order_id = session.checkout(delivery_address)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.customer_id is None
        assert order.total_amount == 60.0
        assert session.get_cart().is_empty

    def test_guest_checkout_masks_card(self, make_product, delivery_address):
        session = CartSession(Caller.guest(), InMemoryClientStorage())
        session.add_line(make_product(), 1)

        order_id = session.checkout(
            delivery_address,
            payment_method="card",
            card={"number": "5555555555554444", "expiry": "01/30"},
        )

        assert current_domain.repository_for(Order).get(order_id).card.last4 == "4444"


class TestBuyNow:
    def test_buy_now_leaves_cart_alone(self, make_product, customer, delivery_address):
        in_cart, bought = make_product(name="In cart"), make_product(name="Bought", list_price=30.0)
        session = CartSession(customer, InMemoryClientStorage())
        session.add_line(in_cart, 1)

        order_id = current_domain.process(
            BuyNow(
                customer_id=customer.account_id,
                product_id=bought,
                quantity=2,
                delivery=json.dumps(delivery_address),
            ),
            asynchronous=False,
        )

        order = current_domain.repository_for(Order).get(order_id)
        assert order.source == "buy_now"
        assert order.total_amount == 60.0
        assert session.get_cart().quantities() == {in_cart: 1}
