"""
Group registry tests.

Verifies:
- Unique names (409 on duplicates)
- Compilers manage groups but only administrators delete them
- Deleting a group leaves its products in place, ungrouped
"""

import pytest

from techsheet.extensions import db
from techsheet.models import Group
from techsheet.services import group_service, products_service
from techsheet.services.group_service import DuplicateGroupNameError
from techsheet.validation import NotFoundError, ValidationError


class TestGroupService:

    def test_duplicate_name(self, group_a):
        with pytest.raises(DuplicateGroupNameError):
            group_service.create_group({"name": "Linea Viso"})

    def test_name_required(self, db_session):
        with pytest.raises(ValidationError):
            group_service.create_group({"description": "senza nome"})

    def test_rename_to_existing(self, group_a, group_b):
        with pytest.raises(DuplicateGroupNameError):
            group_service.update_group(group_b.id, {"name": group_a.name})

    def test_rename_to_same_name(self, group_a):
        group = group_service.update_group(group_a.id, {"name": group_a.name, "description": "viso"})
        assert group.description == "viso"

    def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            group_service.get_group(404)

    def test_delete_orphans_products(self, group_a, make_product):
        p1 = make_product("Crema", group=group_a)
        p2 = make_product("Siero", group=group_a)
        group_id = group_a.id

        assert group_service.delete_group(group_id) == 2

        assert db.session.get(Group, group_id) is None
        assert products_service.get_product(p1.id).group_id is None
        assert products_service.get_product(p2.id).group_id is None

    def test_list_group_users(self, viewer_user, admin_user, group_a, group_b):
        viewer_user.allowed_groups = [str(group_a.id)]
        admin_user.allowed_groups = [str(group_a.id)]
        db.session.commit()

        assert [u.username for u in group_service.list_group_users(group_a.id)] == ["viewer"]
        assert group_service.list_group_users(group_b.id) == []


class TestGroupRoutes:

    def test_compiler_creates_group(self, client, compiler_headers):
        resp = client.post("/api/groups", json={"name": "Integratori"}, headers=compiler_headers)
        assert resp.status_code == 201
        assert resp.get_json()["name"] == "Integratori"

    def test_duplicate_is_409(self, client, compiler_headers, group_a):
        resp = client.post("/api/groups", json={"name": group_a.name}, headers=compiler_headers)
        assert resp.status_code == 409

    def test_compiler_cannot_delete(self, client, compiler_headers, group_a):
        resp = client.delete(f"/api/groups/{group_a.id}", headers=compiler_headers)
        assert resp.status_code == 403

    def test_viewer_cannot_list(self, client, viewer_headers):
        assert client.get("/api/groups", headers=viewer_headers).status_code == 403

    def test_admin_deletes(self, client, admin_headers, group_a, make_product):
        make_product("Crema", group=group_a)
        resp = client.delete(f"/api/groups/{group_a.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["ungrouped_products"] == 1

        resp = client.get("/api/groups", headers=admin_headers)
        assert resp.get_json()["count"] == 0

    def test_delete_missing_is_404(self, client, admin_headers):
        assert client.delete("/api/groups/777", headers=admin_headers).status_code == 404

    def test_group_products(self, client, compiler_headers, group_a, make_product):
        make_product("Crema", group=group_a)
        make_product("Senza gruppo")
        resp = client.get(f"/api/groups/{group_a.id}/products", headers=compiler_headers)
        assert resp.status_code == 200
        assert [p["name"] for p in resp.get_json()["items"]] == ["Crema"]
