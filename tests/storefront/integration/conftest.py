import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from storefront.api import ROUTERS
from storefront.api.errors import register_error_handlers

ADMIN = {"X-Account-Id": "admin-001", "X-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()
    for router in ROUTERS:
        app.include_router(router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def create_product(client):
    """Register a product through the admin API and return its id."""

    def _create(name="Desk Lamp", list_price=100.0, discount_percent=0.0, stock=50):
        response = client.post(
            "/products",
            json={"name": name, "list_price": list_price, "discount_percent": discount_percent, "stock": stock},
            headers=ADMIN,
        )
        assert response.status_code == 201
        return response.json()["product_id"]

    return _create


@pytest.fixture()
def delivery_json():
    return {
        "full_name": "Amal Haddad",
        "phone": "+212 600-123-456",
        "city": "Rabat",
        "address": "12 Avenue Mohammed V",
    }
