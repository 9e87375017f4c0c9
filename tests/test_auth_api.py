from orderflow.infrastructure.auth_local import create_access_token, decode_access_token

class TestTokens:
    def test_issue_token_for_known_user(self, client, users):
        response = client.post("/api/auth/token", json={"username": "vendor"})
        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "vendor"
        assert body["user_id"] == users["vendor"]
        claims = decode_access_token(body["access_token"])
        assert claims["sub"] == "vendor"
        assert claims["uid"] == users["vendor"]
        assert claims["role"] == "vendor"

    def test_unknown_user(self, client, users):
        assert client.post("/api/auth/token", json={"username": "nobody"}).status_code == 401

    def test_token_is_usable(self, client, users):
        token = client.post("/api/auth/token", json={"username": "vendor"}).json()["access_token"]
        response = client.get("/api/budgets/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200

    def test_missing_token(self, client, users):
        assert client.get("/api/orders/").status_code == 401

    def test_garbage_token(self, client, users):
        assert client.get("/api/orders/", headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_expired_token(self, client, users):
        token = create_access_token("vendor", users["vendor"], "vendor", expires_minutes=-1)
        assert client.get("/api/orders/", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_inactive_user_is_locked_out(self, client, auth, users, db):
        from orderflow.domain.models import User

        headers = auth("vendor2")
        db.get(User, users["vendor2"]).is_active = False
        db.commit()
        assert client.get("/api/orders/", headers=headers).status_code == 401
        assert client.post("/api/auth/token", json={"username": "vendor2"}).status_code == 401

class TestUsers:
    def test_admin_lists_by_role(self, client, auth, users):
        producers = client.get("/api/users/", params={"role": "producer"}, headers=auth("admin")).json()
        assert sorted(u["username"] for u in producers) == ["producer_a", "producer_b", "producer_c"]

    def test_only_admin_manages_users(self, client, auth, users):
        assert client.get("/api/users/", headers=auth("vendor")).status_code == 403
        payload = {"username": "new", "name": "New", "role": "client"}
        assert client.post("/api/users/", json=payload, headers=auth("finance")).status_code == 403

    def test_create_user_with_default_rate(self, client, auth, users):
        response = client.post("/api/users/", json={"username": "p2", "name": "Partner 2", "role": "partner"},
                               headers=auth("admin"))
        assert response.status_code == 201
        assert response.json()["commission_rate"] == 15.0

    def test_duplicate_username(self, client, auth, users):
        payload = {"username": "vendor", "name": "Again", "role": "vendor"}
        assert client.post("/api/users/", json=payload, headers=auth("admin")).status_code == 409

    def test_commission_rate_only_for_payees(self, client, auth, users):
        response = client.put(f"/api/users/{users['client']}/commission-rate", json={"commission_rate": 5},
                              headers=auth("admin"))
        assert response.status_code == 422

    def test_me(self, client, auth, users):
        assert client.get("/api/users/me", headers=auth("logistics")).json()["role"] == "logistics"

    def test_user_changes_are_audited(self, client, auth, users):
        client.post("/api/users/", json={"username": "c2", "name": "Client 2", "role": "client"}, headers=auth("admin"))
        logs = client.get("/api/logs/", params={"entity": "user"}, headers=auth("admin")).json()
        assert logs[0]["action"] == "CREATE"
        assert logs[0]["username"] == "admin"
