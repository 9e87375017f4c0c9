from datetime import datetime, timedelta, timezone

class TestBudgetTotals:
    """Totals are always computed server-side."""

    def test_reference_scenario(self, make_budget):
        budget = make_budget(has_discount=True, discount_type="percentage", discount_percentage=10, shipping_cost=15)
        assert budget["subtotal"] == 70.0
        assert budget["discount_amount"] == 7.0
        assert budget["total_value"] == 78.0
        assert budget["status"] == "draft"
        assert budget["budget_number"].startswith("ORC-")

    def test_pickup_drops_shipping(self, make_budget):
        budget = make_budget(delivery_type="pickup", shipping_cost=15)
        assert budget["shipping_cost"] == 15.0
        assert budget["total_value"] == 70.0

    def test_switching_pickup_to_delivery_restores_shipping(self, client, auth, make_budget):
        budget = make_budget(delivery_type="pickup", shipping_cost=15)
        response = client.put(f"/api/budgets/{budget['id']}", json={"delivery_type": "delivery"}, headers=auth("vendor"))
        assert response.status_code == 200
        assert response.json()["shipping_cost"] == 15.0
        assert response.json()["total_value"] == 85.0

    def test_pickup_order_carries_no_shipping(self, make_order):
        order = make_order(delivery_type="pickup", shipping_cost=15)
        assert order["shipping_cost"] == 0.0
        assert order["total_value"] == 70.0

    def test_item_lines_include_customization(self, make_budget, users):
        budget = make_budget(customization_value=1, items=[
            {"product_name": "Cap", "quantity": 4, "unit_price": 5, "producer_id": users["producer_a"],
             "has_item_customization": True, "item_customization_value": 3},
        ])
        # 4 × 5 + 3 + 4 × 1
        assert budget["items"][0]["total_price"] == 27.0
        assert budget["total_value"] == 27.0

class TestBudgetValidation:
    def test_requires_items(self, client, auth, users):
        response = client.post("/api/budgets/", json={"title": "Empty", "items": []}, headers=auth("vendor"))
        assert response.status_code == 422

    def test_rejects_non_positive_quantity(self, client, auth, users):
        payload = {"title": "Bad", "items": [{"product_name": "X", "quantity": 0, "unit_price": 1}]}
        assert client.post("/api/budgets/", json=payload, headers=auth("vendor")).status_code == 422

    def test_rejects_deadline_in_the_past(self, client, auth, users):
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        payload = {
            "title": "Late",
            "delivery_deadline": past,
            "items": [{"product_name": "X", "quantity": 1, "unit_price": 1}],
        }
        response = client.post("/api/budgets/", json=payload, headers=auth("vendor"))
        assert response.status_code == 422
        assert "past" in response.json()["detail"]

    def test_rejects_unknown_producer(self, client, auth, users):
        payload = {"title": "X", "items": [{"product_name": "X", "quantity": 1, "unit_price": 1,
                                            "producer_id": users["client"]}]}
        assert client.post("/api/budgets/", json=payload, headers=auth("vendor")).status_code == 422

    def test_clients_cannot_create_budgets(self, client, auth, users):
        payload = {"title": "X", "items": [{"product_name": "X", "quantity": 1, "unit_price": 1}]}
        assert client.post("/api/budgets/", json=payload, headers=auth("client")).status_code == 403

    def test_admin_must_name_the_vendor(self, client, auth, users):
        payload = {"title": "X", "items": [{"product_name": "X", "quantity": 1, "unit_price": 1}]}
        assert client.post("/api/budgets/", json=payload, headers=auth("admin")).status_code == 422
        payload["vendor_id"] = users["vendor"]
        assert client.post("/api/budgets/", json=payload, headers=auth("admin")).status_code == 201

class TestBudgetLifecycle:
    def test_vendors_only_see_their_own(self, client, auth, make_budget):
        budget = make_budget()
        assert client.get("/api/budgets/", headers=auth("vendor2")).json() == []
        assert client.get(f"/api/budgets/{budget['id']}", headers=auth("vendor2")).status_code == 403
        assert len(client.get("/api/budgets/", headers=auth("vendor")).json()) == 1

    def test_partners_only_see_budgets_they_refer(self, client, auth, users, make_budget):
        budget = make_budget()
        assert client.get(f"/api/budgets/{budget['id']}", headers=auth("partner")).status_code == 403
        referred = make_budget(partner_id=users["partner"])
        assert client.get(f"/api/budgets/{referred['id']}", headers=auth("partner")).status_code == 200
        assert [b["id"] for b in client.get("/api/budgets/", headers=auth("partner")).json()] == [referred["id"]]

    def test_producers_only_see_budgets_with_their_items(self, client, auth, make_budget):
        budget = make_budget()
        assert client.get(f"/api/budgets/{budget['id']}", headers=auth("producer_a")).status_code == 200
        assert client.get(f"/api/budgets/{budget['id']}", headers=auth("producer_c")).status_code == 403

    def test_update_recomputes_totals(self, client, auth, make_budget):
        budget = make_budget()
        response = client.put(f"/api/budgets/{budget['id']}", json={"shipping_cost": 20}, headers=auth("vendor"))
        assert response.status_code == 200
        assert response.json()["total_value"] == 90.0

    def test_update_replaces_items(self, client, auth, make_budget, users):
        budget = make_budget()
        items = [{"product_name": "Pen", "quantity": 10, "unit_price": 2, "producer_id": users["producer_a"]}]
        response = client.put(f"/api/budgets/{budget['id']}", json={"items": items}, headers=auth("vendor"))
        assert [i["product_name"] for i in response.json()["items"]] == ["Pen"]
        assert response.json()["subtotal"] == 20.0

    def test_illegal_status_change_is_a_conflict(self, client, auth, make_budget):
        budget = make_budget()
        response = client.put(f"/api/budgets/{budget['id']}/status", json={"status": "approved"}, headers=auth("vendor"))
        assert response.status_code == 409
        assert response.json()["from"] == "draft"
        assert response.json()["to"] == "approved"

    def test_status_endpoint_does_not_convert(self, client, auth, make_budget):
        budget = make_budget()
        client.put(f"/api/budgets/{budget['id']}/status", json={"status": "sent"}, headers=auth("vendor"))
        response = client.put(f"/api/budgets/{budget['id']}/status", json={"status": "converted"}, headers=auth("vendor"))
        assert response.status_code == 422

class TestBudgetConversion:
    def test_draft_cannot_be_converted(self, client, auth, make_budget):
        budget = make_budget()
        assert client.post(f"/api/budgets/{budget['id']}/convert", json={}, headers=auth("vendor")).status_code == 409

    def test_conversion_creates_confirmed_order(self, client, auth, make_budget):
        budget = make_budget(has_discount=True, discount_percentage=10, shipping_cost=15)
        client.put(f"/api/budgets/{budget['id']}/status", json={"status": "sent"}, headers=auth("vendor"))
        response = client.post(f"/api/budgets/{budget['id']}/convert", json={}, headers=auth("vendor"))
        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "confirmed"
        assert order["order_number"].startswith("PED-")
        assert order["budget_id"] == budget["id"]
        assert order["total_value"] == 78.0
        assert order["discount_amount"] == 7.0
        assert order["payment_status"] == "pending"
        assert order["remaining_value"] == 78.0
        assert len(order["items"]) == 2

        assert client.get(f"/api/budgets/{budget['id']}", headers=auth("vendor")).json()["status"] == "converted"

    def test_second_conversion_is_rejected(self, client, auth, make_budget):
        budget = make_budget()
        client.put(f"/api/budgets/{budget['id']}/status", json={"status": "sent"}, headers=auth("vendor"))
        assert client.post(f"/api/budgets/{budget['id']}/convert", json={}, headers=auth("vendor")).status_code == 201
        assert client.post(f"/api/budgets/{budget['id']}/convert", json={}, headers=auth("vendor")).status_code == 409
        assert len(client.get("/api/orders/", headers=auth("vendor")).json()) == 1

    def test_converted_budget_cannot_be_edited(self, client, auth, make_order):
        order = make_order()
        response = client.put(f"/api/budgets/{order['budget_id']}", json={"title": "New"}, headers=auth("vendor"))
        assert response.status_code == 409

    def test_default_producer_fills_unassigned_items(self, client, auth, make_budget, users):
        budget = make_budget(items=[
            {"product_name": "Unassigned", "quantity": 1, "unit_price": 10},
            {"product_name": "In house", "quantity": 1, "unit_price": 5, "is_internal": True},
            {"product_name": "Assigned", "quantity": 1, "unit_price": 7, "producer_id": users["producer_a"]},
        ])
        client.put(f"/api/budgets/{budget['id']}/status", json={"status": "sent"}, headers=auth("vendor"))
        response = client.post(f"/api/budgets/{budget['id']}/convert",
                               json={"producer_id": users["producer_c"]}, headers=auth("vendor"))
        items = {i["product_name"]: i for i in response.json()["items"]}
        assert items["Unassigned"]["producer_id"] == users["producer_c"]
        assert items["In house"]["producer_id"] is None
        assert items["Assigned"]["producer_id"] == users["producer_a"]
        assert response.json()["producer_id"] == users["producer_c"]

    def test_conversion_requires_a_client(self, client, auth, make_budget):
        budget = make_budget(client_id=None)
        client.put(f"/api/budgets/{budget['id']}/status", json={"status": "sent"}, headers=auth("vendor"))
        assert client.post(f"/api/budgets/{budget['id']}/convert", json={}, headers=auth("vendor")).status_code == 422

    def test_conversion_is_audited(self, client, auth, make_order):
        make_order()
        logs = client.get("/api/logs/", params={"entity": "budget"}, headers=auth("admin")).json()
        assert [log["action"] for log in logs][:1] == ["CONVERT"]
        assert {"CREATE", "STATUS", "CONVERT"} <= {log["action"] for log in logs}

class TestDocumentNumbers:
    def test_numbers_follow_the_highest_issued(self, make_budget):
        first = make_budget()
        second = make_budget()
        assert int(second["budget_number"].rsplit("-", 1)[1]) == int(first["budget_number"].rsplit("-", 1)[1]) + 1

    def test_taken_number_is_retried(self, client, auth, make_budget, monkeypatch):
        from orderflow.application import budget_service

        first = make_budget()
        issued = budget_service.next_number
        taken = iter([first["budget_number"]])
        monkeypatch.setattr(budget_service, "next_number",
                            lambda db, column, prefix: next(taken, None) or issued(db, column, prefix))
        second = make_budget()
        assert second["budget_number"] != first["budget_number"]
        assert len(client.get("/api/budgets/", headers=auth("vendor")).json()) == 2

    def test_exhausted_retries_are_a_conflict(self, client, auth, users, make_budget, monkeypatch):
        from orderflow.application import budget_service

        first = make_budget()
        monkeypatch.setattr(budget_service, "next_number", lambda db, column, prefix: first["budget_number"])
        payload = {"title": "Clash", "items": [{"product_name": "X", "quantity": 1, "unit_price": 1, "is_internal": True}]}
        assert client.post("/api/budgets/", json=payload, headers=auth("vendor")).status_code == 409
        assert len(client.get("/api/budgets/", headers=auth("vendor")).json()) == 1
