import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from storefront.access import Caller, Permission
from storefront.cart.store import reset_account_store
from storefront.catalogue.management import RegisterProduct


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield

        reset_account_store()
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def make_product():
    """Register a product through the catalogue command and return its id."""

    def _make(name="Desk Lamp", list_price=100.0, discount_percent=0.0, stock=50):
        return current_domain.process(
            RegisterProduct(
                name=name,
                list_price=list_price,
                discount_percent=discount_percent,
                stock=stock,
            ),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def customer():
    return Caller.customer("cust-001")


@pytest.fixture()
def moderator():
    return Caller.staff("mod-001", "moderator", [Permission.MANAGE_ORDERS.value])


@pytest.fixture()
def admin():
    return Caller.staff("admin-001", "admin")


@pytest.fixture()
def agent():
    return Caller.staff("agent-001", "delivery")


@pytest.fixture()
def delivery_address():
    return {
        "full_name": "Amal Haddad",
        "phone": "+212 600-123-456",
        "city": "Rabat",
        "address": "12 Avenue Mohammed V",
    }
