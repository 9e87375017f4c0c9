import pytest

@pytest.fixture
def production_orders(client, auth, users, make_order):
    """An order sent to both producers; returns {producer_username: po_id}."""
    order = make_order()
    results = client.post(f"/api/orders/{order['id']}/send-to-production", json={},
                          headers=auth("logistics")).json()["results"]
    by_id = {users["producer_a"]: "producer_a", users["producer_b"]: "producer_b"}
    return {by_id[r["producer_id"]]: r["production_order_id"] for r in results}

@pytest.fixture
def payable(client, auth, production_orders):
    """Producer A's payable of 12.50 on their production order."""
    response = client.post("/api/producer-payments/",
                           json={"production_order_id": production_orders["producer_a"], "amount": 12.5},
                           headers=auth("finance"))
    assert response.status_code == 201, response.text
    return response.json()

def set_status(client, auth, payment_id, status, **extra):
    return client.patch(f"/api/producer-payments/{payment_id}", json={"status": status, **extra},
                        headers=auth("finance"))

class TestRegisteringPayables:
    def test_payable_copies_production_order_parties(self, users, production_orders, payable):
        assert payable["producer_id"] == users["producer_a"]
        assert payable["production_order_id"] == production_orders["producer_a"]
        assert payable["status"] == "pending"
        assert payable["amount"] == 12.5

    def test_one_open_payable_per_production_order(self, client, auth, production_orders, payable):
        response = client.post("/api/producer-payments/",
                               json={"production_order_id": production_orders["producer_a"], "amount": 5},
                               headers=auth("finance"))
        assert response.status_code == 409

    def test_rejected_payable_can_be_replaced(self, client, auth, production_orders, payable):
        set_status(client, auth, payable["id"], "rejected")
        response = client.post("/api/producer-payments/",
                               json={"production_order_id": production_orders["producer_a"], "amount": 11},
                               headers=auth("finance"))
        assert response.status_code == 201

    def test_producer_registers_only_their_own(self, client, auth, production_orders):
        own = {"production_order_id": production_orders["producer_b"], "amount": 30}
        assert client.post("/api/producer-payments/", json=own, headers=auth("producer_b")).status_code == 201
        other = {"production_order_id": production_orders["producer_a"], "amount": 30}
        assert client.post("/api/producer-payments/", json=other, headers=auth("producer_b")).status_code == 403

    def test_rejected_production_order_is_not_payable(self, client, auth, production_orders):
        po_id = production_orders["producer_a"]
        client.patch(f"/api/production-orders/{po_id}/status", json={"status": "rejected"}, headers=auth("producer_a"))
        response = client.post("/api/producer-payments/", json={"production_order_id": po_id, "amount": 10},
                               headers=auth("finance"))
        assert response.status_code == 409

    def test_amount_must_be_positive(self, client, auth, production_orders):
        response = client.post("/api/producer-payments/",
                               json={"production_order_id": production_orders["producer_a"], "amount": 0},
                               headers=auth("finance"))
        assert response.status_code == 422

    def test_vendors_cannot_register_payables(self, client, auth, production_orders):
        response = client.post("/api/producer-payments/",
                               json={"production_order_id": production_orders["producer_a"], "amount": 10},
                               headers=auth("vendor"))
        assert response.status_code == 403

class TestPayableLifecycle:
    def test_approve_then_pay(self, client, auth, users, payable):
        response = set_status(client, auth, payable["id"], "approved")
        assert response.status_code == 200
        assert response.json()["approved_by"] == users["finance"]
        assert response.json()["approved_at"] is not None

        response = set_status(client, auth, payable["id"], "paid", payment_method="pix", notes="Batch 12")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "paid"
        assert body["payment_method"] == "pix"
        assert body["paid_by"] == users["finance"]
        assert body["notes"] == "Batch 12"

    def test_cannot_pay_before_approval(self, client, auth, payable):
        response = set_status(client, auth, payable["id"], "paid", payment_method="pix")
        assert response.status_code == 409
        assert response.json()["from"] == "pending"

    def test_paying_needs_a_method(self, client, auth, payable):
        set_status(client, auth, payable["id"], "approved")
        assert set_status(client, auth, payable["id"], "paid").status_code == 422

    def test_approved_payable_cannot_be_rejected(self, client, auth, payable):
        set_status(client, auth, payable["id"], "approved")
        assert set_status(client, auth, payable["id"], "rejected").status_code == 409

    def test_producers_cannot_settle(self, client, auth, payable):
        response = client.patch(f"/api/producer-payments/{payable['id']}", json={"status": "approved"},
                                headers=auth("producer_a"))
        assert response.status_code == 403

    def test_status_changes_are_audited(self, client, auth, payable):
        set_status(client, auth, payable["id"], "approved")
        logs = client.get("/api/logs/", params={"entity": "producer_payment"}, headers=auth("admin")).json()
        assert {"CREATE", "STATUS"} <= {log["action"] for log in logs}

class TestReceivables:
    def test_producer_sees_only_their_receivables(self, client, auth, users, production_orders, payable):
        client.post("/api/producer-payments/", json={"production_order_id": production_orders["producer_b"], "amount": 40},
                    headers=auth("finance"))
        own = client.get(f"/api/finance/producer-payments/producer/{users['producer_a']}", headers=auth("producer_a"))
        assert [p["id"] for p in own.json()] == [payable["id"]]
        other = client.get(f"/api/finance/producer-payments/producer/{users['producer_b']}", headers=auth("producer_a"))
        assert other.status_code == 403
        assert client.get(f"/api/producer-payments/{payable['id']}", headers=auth("producer_b")).status_code == 403
        assert [p["id"] for p in client.get("/api/producer-payments/", headers=auth("producer_a")).json()] == [payable["id"]]

    def test_finance_lists_all_and_filters(self, client, auth, production_orders, payable):
        client.post("/api/producer-payments/", json={"production_order_id": production_orders["producer_b"], "amount": 40},
                    headers=auth("finance"))
        assert len(client.get("/api/producer-payments/", headers=auth("finance")).json()) == 2
        set_status(client, auth, payable["id"], "approved")
        approved = client.get("/api/producer-payments/", params={"status": "approved"}, headers=auth("finance")).json()
        assert [p["id"] for p in approved] == [payable["id"]]

    def test_summary_splits_outstanding_and_paid(self, client, auth, users, production_orders, payable):
        client.post("/api/producer-payments/", json={"production_order_id": production_orders["producer_b"], "amount": 40},
                    headers=auth("finance"))
        set_status(client, auth, payable["id"], "approved")
        set_status(client, auth, payable["id"], "paid", payment_method="bank_transfer")

        summary = client.get("/api/producer-payments/summary", headers=auth("finance")).json()
        assert summary["outstanding"] == 40.0
        assert summary["paid"] == 12.5
        assert summary["counts"] == {"paid": 1, "pending": 1}

        mine = client.get("/api/producer-payments/summary", headers=auth("producer_a")).json()
        assert mine["producer_id"] == users["producer_a"]
        assert mine["outstanding"] == 0.0
        assert mine["paid"] == 12.5
