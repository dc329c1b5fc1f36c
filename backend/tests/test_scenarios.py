"""
End-to-end flows through the HTTP API.
"""

from conftest import PASSWORD, get_auth_token, auth_headers


def _register(client, username):
    return client.post("/api/auth/register", json={
        "username": username,
        "password": PASSWORD,
        "email": f"{username}@example.com",
        "name": username.title(),
    })


COMPLETE_COSMETIC = {
    "name": "Crema Viso Idratante",
    "type": "cosmetic",
    "code": "987654321",
    "date": "2026-03-01",
    "content": "50 ml",
    "category": "Prodotti per la cura della pelle",
    "packaging": "Vaso in vetro",
    "ingredients": "Aqua, Glycerin",
    "characteristics": "Idratazione profonda",
    "usage": "Applicare mattina e sera",
}


class TestPendingRegistration:

    def test_register_then_login_is_pending(self, client, db_session):
        resp = _register(client, "mario")
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["role"] == "guest"
        assert user["approved"] is False

        resp = client.post("/api/auth/login", json={"username": "mario", "password": PASSWORD})
        assert resp.status_code == 403
        assert "token" not in resp.get_json()


class TestApprovedViewerScope:

    def test_viewer_lists_only_allowed_group(self, client, admin_headers, group_a, group_b, make_product):
        make_product("Crema A", group=group_a)
        make_product("Crema B", group=group_b)
        make_product("Crema senza gruppo")

        user_id = _register(client, "mario").get_json()["user"]["id"]
        resp = client.post(
            f"/api/admin/users/{user_id}/approve",
            json={"role": "viewer", "allowed_groups": [str(group_a.id)]},
            headers=admin_headers,
        )
        assert resp.status_code == 200

        token = get_auth_token(client, "mario")
        assert token

        resp = client.get("/api/products", headers=auth_headers(token))
        assert resp.status_code == 200
        items = resp.get_json()["items"]
        assert [p["name"] for p in items] == ["Crema A"]
        assert all(p["group_id"] == group_a.id for p in items)


class TestCompletenessFlow:

    def test_missing_ph_then_supplied(self, client, compiler_headers):
        resp = client.post(
            "/api/products",
            json={"product": COMPLETE_COSMETIC, "details": {"color": "Bianco", "fragrance": "Floreale"}},
            headers=compiler_headers,
        )
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["product"]["is_complete"] is False
        assert data["missing_fields"] == ["details.ph"]
        product_id = data["product"]["id"]

        resp = client.put(f"/api/products/{product_id}", json={"details": {"ph": "5.5"}},
                          headers=compiler_headers)
        assert resp.status_code == 200

        resp = client.get(f"/api/products/{product_id}", headers=compiler_headers)
        assert resp.get_json()["product"]["is_complete"] is True
        assert resp.get_json()["details"]["ph"] == "5.5"


class TestGroupDeletionFlow:

    def test_deleted_group_products_survive_ungrouped(self, client, admin_headers, viewer_user,
                                                      group_a, make_product):
        p1 = make_product("Crema", group=group_a)
        p2 = make_product("Siero", group=group_a)

        resp = client.put(f"/api/admin/users/{viewer_user.id}/groups",
                          json={"allowed_groups": [group_a.id]}, headers=admin_headers)
        assert resp.status_code == 200
        viewer = auth_headers(get_auth_token(client, "viewer"))
        assert client.get("/api/products", headers=viewer).get_json()["count"] == 2

        assert client.delete(f"/api/groups/{group_a.id}", headers=admin_headers).status_code == 200
        assert client.get("/api/groups", headers=admin_headers).get_json()["count"] == 0

        for pid in (p1.id, p2.id):
            resp = client.get(f"/api/products/{pid}", headers=admin_headers)
            assert resp.status_code == 200
            assert resp.get_json()["product"]["group_id"] is None

        assert client.get("/api/products", headers=viewer).get_json()["count"] == 0
