"""
Visibility filter tests.

Verifies:
- Administrators and compilers see every product
- Viewers see exactly the products of their allowed groups, never ungrouped ones
- Guests and unapproved accounts see nothing
- A viewer fetching a product outside their groups gets 403, not 404
"""

import pytest

from techsheet.extensions import db
from techsheet.models import Product
from techsheet.services import visibility_service, products_service
from techsheet.services.permission_service import PermissionDeniedError
from conftest import auth_headers, get_auth_token


@pytest.fixture
def catalog(group_a, group_b, make_product):
    return {
        "a": make_product("Crema A", group=group_a),
        "b": make_product("Crema B", group=group_b),
        "none": make_product("Crema senza gruppo"),
    }


def _visible_names(user):
    query = visibility_service.filter_visible_products(user, products_service.product_query())
    return [p.name for p in query.all()]


class TestFilter:

    def test_admin_and_compiler_see_all(self, admin_user, compiler_user, catalog):
        assert len(_visible_names(admin_user)) == 3
        assert len(_visible_names(compiler_user)) == 3

    def test_viewer_sees_allowed_groups(self, viewer_user, group_a, catalog):
        viewer_user.allowed_groups = [str(group_a.id)]
        db.session.commit()
        assert _visible_names(viewer_user) == ["Crema A"]

    def test_viewer_partition(self, viewer_user, group_a, group_b, catalog):
        """Visible set equals exactly the products whose group is allowed."""
        viewer_user.allowed_groups = [str(group_a.id), str(group_b.id)]
        db.session.commit()

        allowed = set(viewer_user.allowed_groups)
        expected = sorted(
            p.name for p in db.session.query(Product).all()
            if p.group_id is not None and str(p.group_id) in allowed
        )
        assert sorted(_visible_names(viewer_user)) == expected

    def test_viewer_without_groups_sees_nothing(self, viewer_user, catalog):
        assert _visible_names(viewer_user) == []

    def test_guest_sees_nothing(self, pending_user, group_a, catalog):
        pending_user.allowed_groups = [str(group_a.id)]
        db.session.commit()
        assert _visible_names(pending_user) == []

    def test_allowed_groups_ignored_for_compiler(self, compiler_user, group_a, catalog):
        compiler_user.allowed_groups = [str(group_a.id)]
        db.session.commit()
        assert len(_visible_names(compiler_user)) == 3

    def test_require_visible(self, viewer_user, catalog):
        with pytest.raises(PermissionDeniedError):
            visibility_service.require_product_visible(viewer_user, catalog["none"])


class TestVisibilityRoutes:

    def test_viewer_forbidden_not_hidden(self, client, viewer_user, group_a, catalog):
        viewer_user.allowed_groups = [str(group_a.id)]
        db.session.commit()
        headers = auth_headers(get_auth_token(client, "viewer"))

        assert client.get(f"/api/products/{catalog['a'].id}", headers=headers).status_code == 200
        assert client.get(f"/api/products/{catalog['b'].id}", headers=headers).status_code == 403
        assert client.get(f"/api/products/{catalog['none'].id}", headers=headers).status_code == 403
        assert client.get("/api/products/9999", headers=headers).status_code == 404

    def test_viewer_export_respects_groups(self, client, viewer_headers, catalog):
        resp = client.get(f"/api/products/{catalog['a'].id}/export.md", headers=viewer_headers)
        assert resp.status_code == 403

    def test_viewer_group_filter_cannot_widen(self, client, viewer_user, group_a, group_b, catalog):
        viewer_user.allowed_groups = [str(group_a.id)]
        db.session.commit()
        headers = auth_headers(get_auth_token(client, "viewer"))

        resp = client.get(f"/api/products?group_id={group_b.id}", headers=headers)
        assert resp.get_json()["count"] == 0

    def test_viewer_cannot_write(self, client, viewer_headers, catalog):
        resp = client.put(f"/api/products/{catalog['a'].id}", json={"product": {"code": "1"}},
                          headers=viewer_headers)
        assert resp.status_code == 403
