"""Integration tests for order requests and product inquiries."""

MODERATOR = {"X-Account-Id": "mod-001", "X-Role": "moderator", "X-Permissions": "manage_orders"}
INQUIRY_DESK = {"X-Account-Id": "mod-002", "X-Role": "moderator", "X-Permissions": "manage_product_inquiries"}
AGENT = {"X-Account-Id": "agent-001", "X-Role": "delivery"}


class TestOrderRequestEndpoints:
    def test_submit_and_follow_up(self, client, create_product):
        product_id = create_product(list_price=25.0)

        response = client.post(
            "/requests",
            json={
                "customer_name": "Amal Haddad",
                "customer_phone": "0600123456",
                "city": "Rabat",
                "address": "12 Av",
                "product_id": product_id,
                "quantity": 2,
            },
        )
        assert response.status_code == 201
        request_id = response.json()["id"]

        listed = client.get("/requests", headers=MODERATOR).json()
        assert listed[0]["total_amount"] == 50.0

        changed = client.put(f"/requests/{request_id}/status", json={"status": "contacted"}, headers=MODERATOR)
        assert changed.json() == {"status": "contacted"}

    def test_missing_fields(self, client):
        response = client.post("/requests", json={"customer_name": "Amal"})
        assert response.status_code == 400
        assert "customer_phone" in response.json()["error"]


class TestInquiryEndpoints:
    def _submit(self, client, product_id):
        response = client.post(
            "/inquiries",
            json={
                "product_id": product_id,
                "full_name": "Amal Haddad",
                "phone": "0600123456",
                "city": "Rabat",
                "address": "12 Av",
            },
        )
        assert response.status_code == 201
        return response.json()["id"]

    def test_delivery_converts_inquiry(self, client, create_product):
        inquiry_id = self._submit(client, create_product())

        assign = client.put(f"/inquiries/{inquiry_id}/assign", json={"agent_id": "agent-001"}, headers=INQUIRY_DESK)
        assert assign.status_code == 200

        response = client.put(
            f"/inquiries/{inquiry_id}/delivery", json={"delivery_status": "delivered"}, headers=AGENT
        )
        assert response.json() == {"status": "delivered"}

        inquiries = client.get("/inquiries", headers=AGENT).json()
        assert inquiries[0]["status"] == "converted"

    def test_orders_moderator_cannot_assign_inquiries(self, client, create_product):
        inquiry_id = self._submit(client, create_product())
        response = client.put(f"/inquiries/{inquiry_id}/assign", json={"agent_id": "agent-001"}, headers=MODERATOR)
        assert response.status_code == 403

    def test_status_change(self, client, create_product):
        inquiry_id = self._submit(client, create_product())
        response = client.put(f"/inquiries/{inquiry_id}/status", json={"status": "closed"}, headers=INQUIRY_DESK)
        assert response.json() == {"status": "closed"}
