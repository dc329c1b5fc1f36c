"""
Product repository tests.

Verifies:
- Create inserts the product and its matching detail record together
- Partial updates only touch provided keys; type is immutable
- Group references are validated
- Autosave never touches committed fields
- Delete cascades to details
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from techsheet.extensions import db
from techsheet.models import Product, CosmeticDetails, SupplementDetails
from techsheet.services import products_service, suggestion_service
from techsheet.validation import ValidationError, NotFoundError, InvalidTransitionError


class TestCreateProduct:

    def test_cosmetic_gets_cosmetic_details(self, make_product):
        p = make_product("Crema", details={"color": "Bianco"})
        assert p.cosmetic_details is not None
        assert p.cosmetic_details.color == "Bianco"
        assert p.supplement_details is None

    def test_supplement_gets_supplement_details(self, make_product):
        p = make_product("Magnesio", product_type="supplement", details={"dosage": "1 compressa"})
        assert p.supplement_details.dosage == "1 compressa"
        assert p.cosmetic_details is None

    def test_details_created_even_when_empty(self, make_product):
        p = make_product("Crema")
        assert db.session.query(CosmeticDetails).filter_by(product_id=p.id).count() == 1

    def test_unknown_type(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(product={"name": "X", "type": "food"})

    def test_name_required(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(product={"type": "cosmetic"})

    def test_detail_fields_must_match_type(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(
                product={"name": "Crema", "type": "cosmetic"},
                details={"dosage": "2 al giorno"},
            )
        assert db.session.query(Product).count() == 0

    def test_missing_group(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(product={"name": "Crema", "type": "cosmetic", "group_id": 42})

    def test_is_complete_not_client_settable(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(product={"name": "Crema", "type": "cosmetic", "is_complete": True})

    def test_failed_insert_leaves_nothing(self, db_session, monkeypatch):
        def boom(product):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(suggestion_service, "record_product", boom)
        with pytest.raises(SQLAlchemyError):
            products_service.create_product(product={"name": "Crema", "type": "cosmetic"})

        assert db.session.query(Product).count() == 0
        assert db.session.query(CosmeticDetails).count() == 0


class TestUpdateProduct:

    def test_partial_merge(self, make_product):
        p = make_product("Crema", code="123", details={"color": "Bianco"})
        products_service.update_product(p.id, product={"subtitle": "Viso"}, details={"fragrance": "Rosa"})

        p = products_service.get_product(p.id)
        assert p.code == "123"
        assert p.subtitle == "Viso"
        assert p.cosmetic_details.color == "Bianco"
        assert p.cosmetic_details.fragrance == "Rosa"

    def test_type_change_rejected(self, make_product):
        p = make_product("Crema")
        with pytest.raises(InvalidTransitionError):
            products_service.update_product(p.id, product={"type": "supplement"})
        assert products_service.get_product(p.id).type == "cosmetic"

    def test_same_type_is_allowed(self, make_product):
        p = make_product("Crema")
        products_service.update_product(p.id, product={"type": "cosmetic", "code": "1"})
        assert products_service.get_product(p.id).code == "1"

    def test_missing_detail_record_is_created(self, make_product):
        p = make_product("Crema")
        db.session.delete(p.cosmetic_details)
        db.session.commit()
        assert products_service.get_product(p.id).details is None

        products_service.update_product(p.id, details={"ph": "5.5"})
        assert products_service.get_product(p.id).details.ph == "5.5"

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            products_service.update_product(999, product={"code": "1"})

    def test_version_increments(self, make_product):
        p = make_product("Crema")
        before = p.version_id
        products_service.update_product(p.id, product={"code": "1"})
        assert products_service.get_product(p.id).version_id == before + 1


class TestDeleteProduct:

    def test_cascade(self, make_product):
        p = make_product("Integratore", product_type="supplement", details={"dosage": "1"})
        products_service.delete_product(p.id)
        assert db.session.query(Product).count() == 0
        assert db.session.query(SupplementDetails).count() == 0

    def test_missing(self, db_session):
        with pytest.raises(NotFoundError):
            products_service.delete_product(1)


class TestAutosave:

    def test_autosave_does_not_touch_committed_state(self, make_product):
        p = make_product("Crema")
        products_service.autosave_product(p.id, {"name": "Bozza", "code": "draft"})

        p = products_service.get_product(p.id)
        assert p.name == "Crema"
        assert p.code is None
        assert p.is_complete is False

        saved = products_service.get_autosave(p.id)
        assert saved["autosave"] == {"name": "Bozza", "code": "draft"}
        assert saved["autosaved_at"] is not None

    def test_autosave_overwrites(self, make_product):
        p = make_product("Crema")
        products_service.autosave_product(p.id, {"step": 1})
        products_service.autosave_product(p.id, {"step": 2})
        assert products_service.get_autosave(p.id)["autosave"] == {"step": 2}


class TestProductRoutes:

    def test_create_requires_product_object(self, client, compiler_headers):
        resp = client.post("/api/products", json={"details": {}}, headers=compiler_headers)
        assert resp.status_code == 400

    def test_create_and_fetch(self, client, compiler_headers):
        resp = client.post(
            "/api/products",
            json={"product": {"name": "Crema", "type": "cosmetic"}, "details": {"ph": "5.5"}},
            headers=compiler_headers,
        )
        assert resp.status_code == 201
        product_id = resp.get_json()["product"]["id"]

        resp = client.get(f"/api/products/{product_id}", headers=compiler_headers)
        assert resp.status_code == 200
        assert resp.get_json()["details"]["ph"] == "5.5"

    def test_get_missing_is_404(self, client, compiler_headers):
        assert client.get("/api/products/404", headers=compiler_headers).status_code == 404

    def test_type_change_is_400(self, client, compiler_headers, make_product):
        p = make_product("Crema")
        resp = client.patch(f"/api/products/{p.id}", json={"product": {"type": "supplement"}},
                            headers=compiler_headers)
        assert resp.status_code == 400

    def test_filter_by_type(self, client, compiler_headers, make_product):
        make_product("Crema")
        make_product("Magnesio", product_type="supplement")
        resp = client.get("/api/products?type=supplement", headers=compiler_headers)
        assert [p["name"] for p in resp.get_json()["items"]] == ["Magnesio"]

    def test_filter_bad_type(self, client, compiler_headers):
        assert client.get("/api/products?type=food", headers=compiler_headers).status_code == 400

    def test_filter_by_group(self, client, compiler_headers, make_product, group_a):
        make_product("Crema", group=group_a)
        make_product("Siero")
        resp = client.get(f"/api/products?group_id={group_a.id}", headers=compiler_headers)
        assert [p["name"] for p in resp.get_json()["items"]] == ["Crema"]

    def test_filter_non_integer_group_is_400(self, client, compiler_headers, make_product):
        make_product("Crema")
        resp = client.get("/api/products?group_id=abc", headers=compiler_headers)
        assert resp.status_code == 400
        assert "group_id" in resp.get_json()["error"]

    def test_non_integer_page_is_400(self, client, compiler_headers):
        assert client.get("/api/products?page=two", headers=compiler_headers).status_code == 400

    def test_pagination(self, client, compiler_headers, make_product):
        for i in range(5):
            make_product(f"Prodotto {i}")
        resp = client.get("/api/products?page=2&per_page=2", headers=compiler_headers)
        data = resp.get_json()
        assert data["count"] == 2
        assert data["pagination"]["total"] == 5
        assert data["pagination"]["total_pages"] == 3
        assert data["pagination"]["has_next"] is True

    def test_compiler_cannot_delete(self, client, compiler_headers, make_product):
        p = make_product("Crema")
        assert client.delete(f"/api/products/{p.id}", headers=compiler_headers).status_code == 403

    def test_admin_deletes(self, client, admin_headers, make_product):
        p = make_product("Crema")
        resp = client.delete(f"/api/products/{p.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True}

    def test_autosave_routes(self, client, compiler_headers, make_product):
        p = make_product("Crema")
        resp = client.put(f"/api/products/{p.id}/autosave", json={"name": "Bozza"}, headers=compiler_headers)
        assert resp.status_code == 200
        resp = client.get(f"/api/products/{p.id}/autosave", headers=compiler_headers)
        assert resp.get_json()["autosave"] == {"name": "Bozza"}
