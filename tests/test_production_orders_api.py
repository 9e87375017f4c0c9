from datetime import datetime, timedelta, timezone

import pytest

@pytest.fixture
def dispatched(client, auth, users, make_order):
    """An order sent to both producers; returns (order, {producer_username: po_id})."""
    order = make_order()
    results = client.post(f"/api/orders/{order['id']}/send-to-production", json={},
                          headers=auth("logistics")).json()["results"]
    by_id = {users["producer_a"]: "producer_a", users["producer_b"]: "producer_b"}
    return order, {by_id[r["producer_id"]]: r["production_order_id"] for r in results}

class TestProductionOrders:
    def test_producers_only_see_their_own(self, client, auth, dispatched):
        _, pos = dispatched
        listed = client.get("/api/production-orders/", headers=auth("producer_a")).json()
        assert [po["id"] for po in listed] == [pos["producer_a"]]
        assert client.get(f"/api/production-orders/{pos['producer_b']}", headers=auth("producer_a")).status_code == 403
        assert client.patch(f"/api/production-orders/{pos['producer_b']}/status", json={"status": "accepted"},
                            headers=auth("producer_a")).status_code == 403

    def test_logistics_filters_by_producer(self, client, auth, users, dispatched):
        listed = client.get("/api/production-orders/", params={"producer_id": users["producer_b"]},
                            headers=auth("logistics")).json()
        assert [po["producer_id"] for po in listed] == [users["producer_b"]]

    def test_accept_stamps_accepted_at(self, client, auth, dispatched):
        _, pos = dispatched
        response = client.patch(f"/api/production-orders/{pos['producer_a']}/status",
                                json={"status": "accepted", "tracking_code": "BR123"}, headers=auth("producer_a"))
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "accepted"
        assert body["accepted_at"] is not None
        assert body["tracking_code"] == "BR123"
        assert body["completed_at"] is None

    def test_illegal_transition(self, client, auth, dispatched):
        _, pos = dispatched
        response = client.patch(f"/api/production-orders/{pos['producer_a']}/status", json={"status": "shipped"},
                                headers=auth("producer_a"))
        assert response.status_code == 409
        assert response.json()["from"] == "pending"

    def test_status_note_sets_unread_flag(self, client, auth, dispatched):
        _, pos = dispatched
        body = client.patch(f"/api/production-orders/{pos['producer_a']}/status",
                            json={"status": "accepted", "notes": "Starting Monday"}, headers=auth("producer_a")).json()
        assert body["notes"] == "Starting Monday"
        assert body["has_unread_notes"] is True

    def test_notes_and_read_receipt(self, client, auth, dispatched):
        _, pos = dispatched
        body = client.patch(f"/api/production-orders/{pos['producer_a']}/notes", json={"notes": "Use blue ink"},
                            headers=auth("vendor")).json()
        assert body["has_unread_notes"] is True
        assert body["last_note_at"] is not None
        body = client.post(f"/api/production-orders/{pos['producer_a']}/notes/read", headers=auth("producer_a")).json()
        assert body["has_unread_notes"] is False

    def test_overdue_filter(self, client, auth, dispatched, db):
        from orderflow.domain.models import ProductionOrder

        _, pos = dispatched
        po = db.get(ProductionOrder, pos["producer_a"])
        po.deadline = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=2)
        db.commit()

        listed = client.get("/api/production-orders/", params={"overdue": True}, headers=auth("logistics")).json()
        assert [p["id"] for p in listed] == [pos["producer_a"]]
        assert listed[0]["priority"] == "overdue"

        dashboard = client.get("/api/logistics/dashboard", headers=auth("logistics")).json()
        assert dashboard["overdue"] == 1
        assert dashboard["by_status"] == {"pending": 2}

    def test_clients_cannot_change_status(self, client, auth, dispatched):
        _, pos = dispatched
        assert client.patch(f"/api/production-orders/{pos['producer_a']}/status", json={"status": "accepted"},
                            headers=auth("client")).status_code == 403

    def test_order_parties_only_see_their_production_orders(self, client, auth, dispatched):
        _, pos = dispatched
        url = f"/api/production-orders/{pos['producer_a']}"
        assert client.get(url, headers=auth("client")).status_code == 200
        assert client.get(url, headers=auth("vendor2")).status_code == 403
        assert client.get(url, headers=auth("partner")).status_code == 403
        assert client.get("/api/production-orders/", headers=auth("vendor2")).json() == []
        assert len(client.get("/api/production-orders/", headers=auth("vendor")).json()) == 2

    def test_unread_flag_is_cleared_only_by_involved_roles(self, client, auth, dispatched):
        _, pos = dispatched
        url = f"/api/production-orders/{pos['producer_a']}"
        client.patch(f"{url}/notes", json={"notes": "Rush it"}, headers=auth("vendor"))
        assert client.post(f"{url}/notes/read", headers=auth("client")).status_code == 403
        assert client.post(f"{url}/notes/read", headers=auth("vendor2")).status_code == 403
        assert client.post(f"{url}/notes/read", headers=auth("producer_b")).status_code == 403
        assert client.get(url, headers=auth("producer_a")).json()["has_unread_notes"] is True

class TestLogisticsViews:
    def test_unpaid_orders_are_not_listed(self, client, auth, make_order):
        make_order()
        assert client.get("/api/logistics/paid-orders", headers=auth("logistics")).json() == []

    def test_paid_order_lists_one_row_per_producer(self, client, auth, users, make_order):
        order = make_order()
        client.post(f"/api/orders/{order['id']}/payments", json={"amount": 20, "method": "boleto"},
                    headers=auth("finance"))
        rows = client.get("/api/logistics/paid-orders", headers=auth("logistics")).json()
        assert sorted(r["producer_id"] for r in rows) == sorted([users["producer_a"], users["producer_b"]])
        assert all(r["priority"] == "normal" for r in rows)

    def test_internal_only_orders_are_omitted(self, client, auth, make_order):
        order = make_order(items=[{"product_name": "Stock", "quantity": 1, "unit_price": 30, "is_internal": True}])
        client.post(f"/api/orders/{order['id']}/payments", json={"amount": 30, "method": "pix"},
                    headers=auth("finance"))
        assert client.get("/api/logistics/paid-orders", headers=auth("logistics")).json() == []

    def test_dashboard_counts_awaiting_groups(self, client, auth, make_order):
        order = make_order()
        client.post(f"/api/orders/{order['id']}/payments", json={"amount": 20, "method": "pix"},
                    headers=auth("finance"))
        dashboard = client.get("/api/logistics/dashboard", headers=auth("logistics")).json()
        assert dashboard["awaiting_dispatch"] == 2
        assert dashboard["by_status"] == {}

    def test_requires_logistics_role(self, client, auth, users):
        assert client.get("/api/logistics/paid-orders", headers=auth("vendor")).status_code == 403
