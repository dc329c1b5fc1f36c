"""
Markdown and HTML export tests.
"""

from datetime import date

from techsheet.extensions import db
from techsheet.services import export_service, approval_service


class TestRenderMarkdown:

    def test_cosmetic_sheet(self, make_product):
        p = make_product(
            "Crema Viso",
            code="987654321",
            date="2026-03-01",
            ingredients="Aqua, Glycerin",
            details={"ph": "5.5", "color": "Bianco"},
        )
        body = export_service.render_markdown(p)
        assert body.startswith("# Crema Viso")
        assert "**Data:** 01/03/2026" in body
        assert "**pH:** 5.5" in body
        assert "Aqua, Glycerin" in body
        assert "Revisione interna: in attesa" in body

    def test_supplement_sheet(self, make_product):
        p = make_product("Magnesio", product_type="supplement", details={"dosage": "1 compressa"})
        body = export_service.render_markdown(p)
        assert "Scheda Tecnica Integratore" in body
        assert "**Dose giornaliera:** 1 compressa" in body

    def test_missing_details_render_placeholders(self, make_product):
        p = make_product("Crema")
        db.session.delete(p.cosmetic_details)
        db.session.commit()

        body = export_service.render_markdown(p)
        assert "**pH:** " in body
        assert "Codice Notifica Prodotto in Farmadati: 000000000" in body

    def test_approved_sheet(self, admin_user, make_product):
        p = make_product("Crema")
        approval_service.approve_product(p.id, admin_user.id)
        body = export_service.render_markdown(p)
        assert "Revisione interna: approvata il" in body

    def test_date_formats(self):
        assert export_service.format_sheet_date("2026-12-31") == "31/12/2026"
        assert export_service.format_sheet_date("dicembre 2026") == "dicembre 2026"
        assert export_service.format_sheet_date("") == date.today().strftime("%d/%m/%Y")

    def test_filename(self, make_product):
        p = make_product("Crema Viso  Notte")
        assert export_service.export_filename(p) == "scheda-tecnica-crema-viso-notte.md"


class TestRenderHtml:

    def test_cosmetic_sheet(self, make_product):
        p = make_product(
            "Crema Viso",
            date="2026-03-01",
            ingredients="Aqua, Glycerin",
            details={"ph": "5.5"},
        )
        body = export_service.render_html(p)
        assert body.lstrip().startswith("<!DOCTYPE html>")
        assert "<title>Scheda Tecnica - Crema Viso</title>" in body
        assert "Codice Notifica Prodotto in Farmadati" in body
        assert "01/03/2026" in body
        assert "5.5" in body
        assert "MODULO DI APPROVAZIONE" in body

    def test_supplement_sheet(self, make_product):
        p = make_product(
            "Magnesio",
            product_type="supplement",
            special_warnings="Non superare la dose",
            details={"dosage": "1 compressa"},
        )
        body = export_service.render_html(p)
        assert "Scheda Tecnica Integratore" in body
        assert "1 compressa" in body
        assert "Non superare la dose" in body

    def test_values_are_escaped(self, make_product):
        p = make_product("Crema", ingredients="<script>alert(1)</script>")
        body = export_service.render_html(p)
        assert "<script>" not in body
        assert "&lt;script&gt;" in body

    def test_missing_details_render_placeholders(self, make_product):
        p = make_product("Crema")
        db.session.delete(p.cosmetic_details)
        db.session.commit()

        body = export_service.render_html(p)
        assert "ANALISI ORGANOLETTICA" in body
        assert "000000000" in body


class TestExportRoute:

    def test_download(self, client, compiler_headers, make_product):
        p = make_product("Crema Viso")
        resp = client.get(f"/api/products/{p.id}/export.md", headers=compiler_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "text/markdown"
        assert "scheda-tecnica-crema-viso.md" in resp.headers["Content-Disposition"]
        assert resp.get_data(as_text=True).startswith("# Crema Viso")

    def test_missing(self, client, compiler_headers):
        assert client.get("/api/products/1/export.md", headers=compiler_headers).status_code == 404

    def test_html_download(self, client, compiler_headers, make_product):
        p = make_product("Crema Viso")
        resp = client.get(f"/api/products/{p.id}/export.html", headers=compiler_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "text/html"
        assert "scheda-tecnica-crema-viso.html" in resp.headers["Content-Disposition"]
        assert "Crema Viso" in resp.get_data(as_text=True)

    def test_html_missing(self, client, compiler_headers):
        assert client.get("/api/products/1/export.html", headers=compiler_headers).status_code == 404

    def test_html_respects_visibility(self, client, viewer_headers, make_product, group_a):
        p = make_product("Crema Viso", group=group_a)
        resp = client.get(f"/api/products/{p.id}/export.html", headers=viewer_headers)
        assert resp.status_code == 403

    def test_render_failure_rolls_back(self, client, compiler_headers, make_product, monkeypatch):
        p = make_product("Crema Viso")
        rollbacks = []
        original_rollback = db.session.rollback

        def boom(product):
            raise RuntimeError("template exploded")

        def spy():
            rollbacks.append(True)
            return original_rollback()

        monkeypatch.setattr(export_service, "render_markdown", boom)
        monkeypatch.setattr(db.session, "rollback", spy)

        resp = client.get(f"/api/products/{p.id}/export.md", headers=compiler_headers)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}
        assert rollbacks
